# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
"""This module contains some helper functions. It should not be used outside aureate_lib"""

import hashlib
import os
import platform
import subprocess
import sys
import zipfile
from typing import Any, Literal, Optional

from .exceptions import FileOutsideInstanceDirectory
from .version import __version__

if os.name == "nt":
    info = subprocess.STARTUPINFO()  # type: ignore
    info.dwFlags |= subprocess.STARTF_USESHOWWINDOW  # type: ignore
    info.wShowWindow = subprocess.SW_HIDE  # type: ignore
    SUBPROCESS_STARTUP_INFO: Optional[subprocess.STARTUPINFO] = info  # type: ignore
else:
    SUBPROCESS_STARTUP_INFO = None


def empty(*_: Any) -> None:
    """Placeholder function."""
    pass


def check_path_inside_directory(directory: str | os.PathLike, path: str | os.PathLike) -> None:
    """Raise FileOutsideInstanceDirectory if path is not inside directory."""
    abs_dir = os.path.abspath(str(directory))
    abs_path = os.path.abspath(str(path))
    if os.path.commonpath([abs_dir, abs_path]) != abs_dir:
        raise FileOutsideInstanceDirectory(abs_path, abs_dir)


def get_library_path(name: str, libraries_root: str | os.PathLike) -> str:
    """
    Return the path of a library from its maven coordinate.
    ``group:artifact:version[:classifier][@extension]`` becomes
    ``group/as/dirs/artifact/version/artifact-version[-classifier].extension``
    """
    libpath = str(libraries_root)
    parts = name.split(":")
    base_path, libname, version = parts[0:3]
    for part in base_path.split("."):
        libpath = os.path.join(libpath, part)
    fileend = "jar"
    if "@" in version:
        version, fileend = version.split("@", 1)
    classifiers = list(parts[3:])
    if classifiers and "@" in classifiers[-1]:
        classifiers[-1], fileend = classifiers[-1].split("@", 1)
    filename = f"{libname}-{version}{''.join(f'-{p}' for p in classifiers)}.{fileend}"
    return os.path.join(libpath, libname, version, filename)


def get_library_relative_path(name: str) -> str:
    """Return the path of a library relative to the libraries directory, always with forward slashes."""
    return get_library_path(name, "").replace(os.sep, "/").lstrip("/")


def get_jar_mainclass(path: str) -> str:
    """Return the main class of a given jar."""
    with zipfile.ZipFile(path) as zf:
        with zf.open("META-INF/MANIFEST.MF") as f:
            lines = f.read().decode("utf-8").splitlines()
    content = {}
    for line in lines:
        if ":" in line:
            key, value = line.split(":", 1)
            content[key.strip()] = value.strip()
    return content["Main-Class"]


def get_sha1_hash(path: str | os.PathLike) -> str:
    """Calculate the sha1 checksum of a file."""
    BUF_SIZE = 65536
    sha1 = hashlib.sha1()
    with open(path, "rb") as f:
        while True:
            data = f.read(BUF_SIZE)
            if not data:
                break
            sha1.update(data)
    return sha1.hexdigest()


def is_file_present(path: str | os.PathLike, sha1: Optional[str] = None) -> bool:
    """Check that a file exists, is not empty and, when a checksum is given, matches it."""
    if not os.path.isfile(path) or os.path.getsize(path) == 0:
        return False
    return sha1 is None or get_sha1_hash(path) == sha1


def get_os_version() -> str:
    """
    Try to implement System.getProperty("os.version") from Java for use in rules.
    This doesn't work on mac yet.
    """
    if platform.system() == "Windows":
        ver = sys.getwindowsversion()  # type: ignore
        return f"{ver.major}.{ver.minor}"
    elif platform.system() == "Darwin":
        return ""
    else:
        return platform.uname().release


def get_user_agent() -> str:
    """Return the user agent of aureate-launcher."""
    return f"aureate-launcher/{__version__}"


def get_classpath_separator(os_name: Optional[str] = None) -> Literal[":", ";"]:
    """Return the classpath separator for the given OS, or the current one."""
    if os_name is None:
        return ";" if platform.system() == "Windows" else ":"
    return ";" if os_name == "windows" else ":"


def extract_file_from_zip(
    handler: zipfile.ZipFile,
    zip_path: str,
    extract_path: str | os.PathLike,
    root_directory: Optional[str | os.PathLike] = None,
) -> None:
    """Extract a file from a zip handler into the given path."""
    if root_directory is not None:
        check_path_inside_directory(root_directory, extract_path)
    os.makedirs(os.path.dirname(extract_path), exist_ok=True)
    with handler.open(zip_path, "r") as f, open(extract_path, "wb") as w:
        w.write(f.read())
