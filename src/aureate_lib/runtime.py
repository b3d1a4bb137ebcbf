# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause

"""
runtime installs the Java runtime the game needs. The JRE builds come from Azul Zulu.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Optional

import httpx

from ._helper import check_path_inside_directory, empty
from .archive import extract_and_normalize
from .download import Downloader
from .exceptions import PlatformNotSupported, VersionNotFound
from .layout import InstanceLayout
from .rules import Platform
from .types import CallbackDict

__all__ = ["required_java_version", "get_executable_path", "install_java_runtime"]

# Azul Zulu API endpoint
AZUL_API = "https://api.azul.com/metadata/v1/zulu/packages"


def required_java_version(minecraft_version: str) -> int:
    """
    Guess the Java major version a Minecraft release needs, for versions whose descriptor
    is not downloaded yet.
    """
    parts = minecraft_version.split("-")[0].split(".")
    try:
        major = int(parts[0])
        minor = int(parts[1]) if len(parts) > 1 else 0
        patch = int(parts[2]) if len(parts) > 2 else 0
    except ValueError:
        return 17
    if major != 1:
        return 21
    if minor > 20 or (minor == 20 and patch >= 5):
        return 21
    if minor >= 18:
        return 17
    if minor == 17:
        return 16
    return 8


def _azul_params(major_version: int, platform: Platform) -> dict[str, str]:
    if platform.os_name == "windows":
        os_name, archive_type = "windows", "zip"
    elif platform.os_name == "osx":
        os_name, archive_type = "macos", "zip"
    elif platform.os_name == "linux":
        os_name, archive_type = "linux", "tar.gz"
    else:
        raise PlatformNotSupported(f"Unsupported OS: {platform.os_name}")

    if platform.arch == "x86_64":
        arch_name = "x64"
    elif platform.arch == "arm64":
        arch_name = "aarch64"
    else:
        raise PlatformNotSupported(f"Unsupported architecture: {platform.arch}")

    return {
        "java_version": str(major_version),
        "os": os_name,
        "arch": arch_name,
        "archive_type": archive_type,
        "java_package_type": "jre",
        "release_status": "ga",
        "latest": "true",
        "availability_types": "CA",
    }


def get_executable_path(layout: InstanceLayout, major_version: int) -> Optional[str]:
    """
    Returns the path to the java executable of an installed runtime. Returns None if none is found.
    """
    base = layout.java_runtime(major_version)
    for java_path in (base / "bin" / "java", base / "bin" / "java.exe"):
        if java_path.is_file():
            return str(java_path)
    # macOS bundles keep the runtime inside Contents/Home
    for bundle in sorted(base.glob("*.j*/Contents/Home/bin/java")):
        if bundle.is_file():
            return str(bundle)
    return None


def install_java_runtime(
    major_version: int,
    layout: InstanceLayout,
    downloader: Downloader,
    platform: Optional[Platform] = None,
    callback: Optional[CallbackDict] = None,
) -> str:
    """
    Installs a Java runtime of the given major version into ``runtime/java-<major>`` and returns
    the path of its executable. Nothing is downloaded when the runtime is already there.

    :raises PlatformNotSupported: Azul has no builds for this platform
    :raises VersionNotFound: Azul has no build of this Java version
    """
    callback = callback or {}
    platform = platform or Platform.current()

    existing = get_executable_path(layout, major_version)
    if existing is not None:
        return existing

    callback.get("setStatus", empty)(f"Installing Java {major_version}")
    query = httpx.URL(AZUL_API, params=_azul_params(major_version, platform))
    pkgs = downloader.get_json(str(query))
    if not pkgs:
        raise VersionNotFound(f"java-{major_version}")
    pkg = pkgs[0]
    download_url = pkg["download_url"]
    filename = download_url.split("/")[-1]

    base_path = layout.java_runtime(major_version)
    if base_path.is_dir():
        shutil.rmtree(base_path, ignore_errors=True)
    layout.runtime_dir.mkdir(parents=True, exist_ok=True)
    archive_path = layout.runtime_dir / filename

    try:
        downloader.fetch(download_url, archive_path)
        extract_and_normalize(archive_path, base_path)
    except Exception:
        shutil.rmtree(base_path, ignore_errors=True)
        raise
    finally:
        archive_path.unlink(missing_ok=True)

    version_path = base_path / ".version"
    check_path_inside_directory(layout.root, version_path)
    with open(version_path, "w", encoding="utf-8") as f:
        f.write(".".join(str(v) for v in pkg.get("java_version", [major_version])))

    # make java executable (linux, macos)
    if platform.os_name != "windows":
        for root, _, files in os.walk(base_path):
            for file in files:
                file_path = os.path.join(root, file)
                if os.access(file_path, os.X_OK):
                    continue
                try:
                    os.chmod(file_path, 0o755)
                except PermissionError:
                    pass

    executable = get_executable_path(layout, major_version)
    if executable is None:
        raise VersionNotFound(f"java-{major_version}", base_path / "bin" / "java")
    logging.info(f"Installed Java {major_version} to {base_path}")
    return executable
