# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
"""
archive extracts zip, tar, rar and 7z archives and removes a redundant top level folder.
"""

import logging
import os
import shutil
import subprocess
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Optional

from ._helper import SUBPROCESS_STARTUP_INFO, check_path_inside_directory
from .exceptions import CorruptArtifact, ExternalProgramError, UnsupportedArchiveFormat

__all__ = ["extract_and_normalize", "archive_format"]

_RAR_TOOLS = ("unrar",)
_SEVEN_ZIP_TOOLS = ("7z", "7za", "7zz")


def archive_format(path: str | os.PathLike) -> Optional[str]:
    name = os.path.basename(str(path)).lower()
    if name.endswith((".zip", ".jar", ".mrpack")):
        return "zip"
    if name.endswith((".tar.gz", ".tgz", ".tar")):
        return "tar"
    if name.endswith(".rar"):
        return "rar"
    if name.endswith(".7z"):
        return "7z"
    return None


def _find_tool(tools: tuple[str, ...]) -> Optional[str]:
    for tool in tools:
        found = shutil.which(tool)
        if found:
            return found
    return None


def _extract_zip(archive: Path, dest: Path) -> None:
    with zipfile.ZipFile(archive, "r") as zf:
        for member in zf.namelist():
            check_path_inside_directory(dest, dest / member)
        zf.extractall(dest)


def _extract_tar(archive: Path, dest: Path) -> None:
    with tarfile.open(archive, "r:*") as tf:
        for member in tf.getmembers():
            check_path_inside_directory(dest, dest / member.name)
            if member.issym() or member.islnk():
                check_path_inside_directory(dest, dest / os.path.dirname(member.name) / member.linkname)
        tf.extractall(dest)


def _run_tool(command: list[str]) -> None:
    result = subprocess.run(command, stdout=subprocess.PIPE, stderr=subprocess.PIPE, startupinfo=SUBPROCESS_STARTUP_INFO)
    if result.returncode != 0:
        raise ExternalProgramError(command, result.stdout, result.stderr)


def _extract_rar(archive: Path, dest: Path) -> None:
    tool = _find_tool(_RAR_TOOLS)
    if tool is None:
        raise UnsupportedArchiveFormat(archive, "unrar")
    _run_tool([tool, "x", "-o+", "-y", str(archive), str(dest) + os.sep])


def _extract_7z(archive: Path, dest: Path) -> None:
    tool = _find_tool(_SEVEN_ZIP_TOOLS)
    if tool is None:
        raise UnsupportedArchiveFormat(archive, "7z")
    _run_tool([tool, "x", "-y", f"-o{dest}", str(archive)])


_EXTRACTORS = {
    "zip": _extract_zip,
    "tar": _extract_tar,
    "rar": _extract_rar,
    "7z": _extract_7z,
}


def _copy_contents(source: Path, dest: Path) -> None:
    dest.mkdir(parents=True, exist_ok=True)
    for item in source.iterdir():
        target = dest / item.name
        if item.is_dir() and not item.is_symlink():
            shutil.copytree(item, target, dirs_exist_ok=True)
        else:
            shutil.copy2(item, target)


def extract_and_normalize(archive: str | os.PathLike, dest: str | os.PathLike) -> None:
    """
    Extract an archive into dest.

    When everything in the archive sits below one top level folder, the content of that folder
    is placed directly into dest.

    :raises UnsupportedArchiveFormat: The format is unknown or the program needed for it is not installed
    :raises CorruptArtifact: The archive could not be read or contained nothing
    """
    archive = Path(archive)
    dest = Path(dest)
    fmt = archive_format(archive)
    if fmt is None:
        raise UnsupportedArchiveFormat(archive)

    temp_dir = Path(tempfile.mkdtemp(prefix="aureate-extract-"))
    try:
        try:
            _EXTRACTORS[fmt](archive, temp_dir)
        except (zipfile.BadZipFile, tarfile.TarError) as e:
            raise CorruptArtifact(archive, str(e)) from e

        entries = list(temp_dir.iterdir())
        if len(entries) == 1 and entries[0].is_dir():
            logging.info(f"Removing top level folder {entries[0].name} of {archive.name}")
            _copy_contents(entries[0], dest)
        else:
            _copy_contents(temp_dir, dest)
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    if not dest.is_dir() or not any(dest.iterdir()):
        raise CorruptArtifact(archive, f"nothing was extracted to {dest}")
