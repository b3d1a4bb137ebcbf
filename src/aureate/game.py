import logging
import os
import shlex
import subprocess
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import IO, Optional

import psutil

from aureate.config import LauncherContext
from aureate_lib.command import LaunchCommand
from aureate_lib.exceptions import ProcessLaunchFailure

LOG_FILE_NAME = "launcher.log"
_POLL_INTERVAL = 0.1


def write_launch_script(command: LaunchCommand, path: str | os.PathLike, os_name: str) -> Path:
    """Write a script that runs the command by hand, for reproducing a failed launch outside the launcher."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if os_name == "windows":
        content = (
            "@echo off\r\n"
            f'cd /d "{command.working_dir}"\r\n'
            f"{subprocess.list2cmdline(command.argv())}\r\n"
            "pause\r\n"
        )
    else:
        content = (
            "#!/bin/sh\n"
            f"cd {shlex.quote(str(command.working_dir))}\n"
            f"exec {shlex.join(command.argv())}\n"
        )
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)
    if os_name != "windows":
        os.chmod(path, 0o755)
    return path


def _script_path(context: LauncherContext, instance_id: str) -> Path:
    suffix = "bat" if context.platform.os_name == "windows" else "sh"
    return context.layout.instance_dir(instance_id) / f"run-minecraft.{suffix}"


def _write_header(log: IO[str], command: LaunchCommand, version_id: Optional[str]) -> None:
    log.write(f"Time: {datetime.now().isoformat(timespec='seconds')}\n")
    log.write(f"Version: {version_id or 'unknown'}\n")
    log.write(f"Java: {command.executable}\n")
    log.write(f"Working directory: {command.working_dir}\n")
    log.write(f"Command: {shlex.join(command.argv())}\n")
    log.write("-" * 40 + "\n")
    log.flush()


def _capture_output(process: subprocess.Popen, log: IO[str]) -> None:
    try:
        for line in process.stdout:
            log.write(line)
            log.flush()
    finally:
        log.close()


class GameProcess:
    """A running game. Its output is written to ``log_path`` until it exits."""

    def __init__(self, process: subprocess.Popen, log_path: Path, reader: threading.Thread) -> None:
        self.process = process
        self.log_path = log_path
        self._reader = reader

    @property
    def pid(self) -> int:
        return self.process.pid

    def is_running(self) -> bool:
        return self.process.poll() is None

    def wait(self, timeout: Optional[float] = None) -> int:
        code = self.process.wait(timeout)
        self._reader.join(timeout)
        return code


def _fail(
    context: LauncherContext, command: LaunchCommand, instance_id: str, reason: str, exit_code: Optional[int] = None
) -> ProcessLaunchFailure:
    script = write_launch_script(command, _script_path(context, instance_id), context.platform.os_name)
    logging.error(f"Launch of {instance_id} failed: {reason}. Wrote {script}")
    return ProcessLaunchFailure(command.argv(), reason, exit_code, script)


def launch(
    context: LauncherContext, command: LaunchCommand, instance_id: str, version_id: Optional[str] = None
) -> GameProcess:
    """
    Start the game in its own session and capture its output into the instance log.

    The process has to survive ``context.crash_grace`` seconds. If it exits earlier, a script with the
    same command is written next to the instance and :class:`ProcessLaunchFailure` is raised.
    """
    logs_dir = context.layout.logs_dir(instance_id)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / LOG_FILE_NAME
    log = open(log_path, "w", encoding="utf-8", errors="replace")
    _write_header(log, command, version_id)

    kwargs = {}
    if context.platform.os_name == "windows":
        kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW  # type: ignore
    try:
        process = subprocess.Popen(
            command.argv(),
            cwd=command.working_dir,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            start_new_session=True,
            **kwargs,
        )
    except OSError as e:
        log.write(f"Could not start the process: {e}\n")
        log.close()
        raise _fail(context, command, instance_id, f"could not start {command.executable}: {e}") from e

    reader = threading.Thread(target=_capture_output, args=(process, log), daemon=True)
    reader.start()
    logging.info(f"Started {instance_id} with pid {process.pid}")

    deadline = time.monotonic() + context.crash_grace
    while time.monotonic() < deadline:
        exit_code = process.poll()
        if exit_code is not None or not psutil.pid_exists(process.pid):
            reader.join(5)
            raise _fail(
                context,
                command,
                instance_id,
                f"the game exited after start with code {exit_code}, see {log_path}",
                exit_code,
            )
        time.sleep(_POLL_INTERVAL)

    return GameProcess(process, log_path, reader)
