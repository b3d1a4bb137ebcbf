# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
"""exceptions contains all custom exceptions that can be raised by aureate_lib"""

import os
from typing import Optional, Sequence


class LauncherError(Exception):
    """Base class of every error raised by aureate_lib"""


class NetworkError(LauncherError):
    """
    Raised when a download still fails after every retry was used.
    The last underlying error is available as ``cause`` and as ``__cause__``.
    """

    def __init__(self, url: str, cause: Optional[BaseException] = None) -> None:
        self.url = url
        "The URL that could not be fetched"

        self.cause = cause
        "The error of the last attempt"

        self.msg = f"Failed to download {url}: {cause}" if cause is not None else f"Failed to download {url}"
        super().__init__(self.msg)


class CorruptArtifact(LauncherError):
    """
    Raised when a downloaded file is unusable: it is empty, contains an HTML page instead of JSON
    or could not be parsed. The file is never repaired in place, it is fetched again.
    """

    def __init__(self, path: str | os.PathLike, reason: str) -> None:
        self.path = str(path)
        "The path of the unusable file"

        self.reason = reason
        "Why the file was rejected"

        self.msg = f"Corrupt artifact {self.path}: {reason}"
        super().__init__(self.msg)


class InvalidChecksum(CorruptArtifact):
    """Raised when a file has the wrong checksum"""

    def __init__(self, url: str, path: str | os.PathLike, expected_checksum: str, actual_checksum: str) -> None:
        self.url = url
        "The URL of the file"

        self.expected_checksum = expected_checksum
        "The expected checksum"

        self.actual_checksum = actual_checksum
        "The actual checksum"

        super().__init__(path, f"checksum mismatch for {url}: expected {expected_checksum}, got {actual_checksum}")


class MissingDependency(LauncherError):
    """
    Raised when files that a launch needs are absent on disk.
    ``paths`` lists every missing file, not only the first one.
    """

    def __init__(self, paths: Sequence[str | os.PathLike], msg: Optional[str] = None) -> None:
        self.paths = [str(p) for p in paths]
        "Every missing path"

        if msg is None:
            listing = "\n".join(f"  {p}" for p in self.paths)
            msg = f"{len(self.paths)} required file(s) are missing, reinstall the version:\n{listing}"
        self.msg = msg
        super().__init__(self.msg)


class VersionNotFound(MissingDependency):
    """Raised when the descriptor of a version does not exist"""

    def __init__(self, version: str, path: Optional[str | os.PathLike] = None) -> None:
        self.version: str = version
        "The version that caused the exception"

        super().__init__([path] if path is not None else [], f"Version {version} was not found")


class DescriptorError(LauncherError):
    """Raised when a version descriptor is malformed or its inheritance chain loops"""

    def __init__(self, version: str, reason: str) -> None:
        self.version = version
        "The descriptor that could not be resolved"

        self.msg = f"Invalid descriptor {version}: {reason}"
        super().__init__(self.msg)


class UnsupportedArchiveFormat(LauncherError):
    """
    Raised when an archive can not be extracted, either because the format is unknown
    or because the external tool it needs is not installed
    """

    def __init__(self, path: str | os.PathLike, tool: Optional[str] = None) -> None:
        self.path = str(path)
        "The archive"

        self.tool = tool
        "The external program that is needed, if any"

        if tool is None:
            self.msg = f"Unsupported archive format: {os.path.basename(self.path)}"
        else:
            self.msg = (
                f"Can't extract {os.path.basename(self.path)}: the '{tool}' program was not found. "
                f"Install {tool} and make sure it is on your PATH, then try again"
            )
        super().__init__(self.msg)


class StageFailure(LauncherError):
    """Wraps the error that made an installation stage fail"""

    def __init__(self, stage: str, cause: BaseException) -> None:
        self.stage = stage
        "The name of the failed stage"

        self.cause = cause
        "The underlying error"

        self.msg = f"Stage {stage} failed: {cause}"
        super().__init__(self.msg)


class ProcessLaunchFailure(LauncherError):
    """Raised when the game process could not be started or died during the early crash window"""

    def __init__(
        self,
        command: Sequence[str],
        reason: str,
        exit_code: Optional[int] = None,
        script_path: Optional[str | os.PathLike] = None,
    ) -> None:
        self.command = list(command)
        "The command that was executed"

        self.reason = reason
        "Human readable reason"

        self.exit_code = exit_code
        "The exit code, if the process exited"

        self.script_path = str(script_path) if script_path is not None else None
        "A script that runs the same command manually"

        self.msg = f"Failed to launch the game: {reason}"
        if script_path is not None:
            self.msg += f". Run {self.script_path} to reproduce"
        super().__init__(self.msg)


class InstallationCancelled(LauncherError):
    """Raised when an installation was cancelled through its cancel token"""

    def __init__(self) -> None:
        super().__init__("The installation was cancelled")


class UnsupportedVersion(LauncherError):
    """Raised when a version is not supported by a loader"""

    def __init__(self, version: str) -> None:
        self.version: str = version
        "The version that caused the exception"

        self.msg = f"Version {version} is not supported"
        super().__init__(self.msg)


class PlatformNotSupported(LauncherError):
    """Raised when the current platform has no matching download"""

    def __init__(self, msg: str = "Your platform is not supported") -> None:
        self.msg = msg
        super().__init__(self.msg)


class FileOutsideInstanceDirectory(LauncherError):
    """Raised when a file would be written outside the launcher directory"""

    def __init__(self, path: str, root: str) -> None:
        self.path = path
        "The path of the file"

        self.root = root
        "The launcher directory"

        self.msg = f"{path} is outside {root}"
        super().__init__(self.msg)


class ExternalProgramError(LauncherError):
    """Raised when an external program fails"""

    def __init__(self, command: list[str], stdout: bytes, stderr: bytes) -> None:
        self.command = command
        "The command that was executed"

        self.stdout = stdout
        "The stdout of the command"

        self.stderr = stderr
        "The stderr of the command"

        super().__init__(f"{command[0]} exited with an error")
