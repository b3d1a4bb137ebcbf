# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause

"""
.. note::
    Before using this module, please read this comment from the forge developers:

    .. code:: text

        Please do not automate the download and installation of Forge.
        Our efforts are supported by ads from the download page.
        If you MUST automate this, please consider supporting the project through https://www.patreon.com/LexManos/

    It's your choice, if you want to respect that and support forge.

forge installs the Forge modloader. The official installer is downloaded and its processors are run.
When that is not possible a minimal descriptor is written instead, so the game can at least be started
with the Forge jar on the classpath.
"""

import json
import logging
import os
import subprocess
import tempfile
import zipfile
from typing import NamedTuple, Optional

from ._helper import (
    SUBPROCESS_STARTUP_INFO,
    empty,
    extract_file_from_zip,
    get_classpath_separator,
    get_jar_mainclass,
    get_library_path,
)
from ._internal_types.forge_types import ForgeInstallProfile, ForgePromotions
from .descriptor import LibraryEntry, load_descriptor
from .download import Downloader
from .exceptions import ExternalProgramError, InstallationCancelled, LauncherError, VersionNotFound
from .install import install_minecraft_version, is_version_installed, library_tasks
from .layout import InstanceLayout
from .rules import Platform
from .runtime import get_executable_path, required_java_version
from .types import CallbackDict

__all__ = [
    "ForgeInstallResult",
    "install_forge_version",
    "forge_to_installed_version",
    "find_installed_forge",
    "get_promoted_forge_version",
    "write_manual_forge_version",
]

FORGE_PROMOTIONS_URL = "https://files.minecraftforge.net/net/minecraftforge/forge/promotions_slim.json"
FORGE_DOWNLOAD_URL = "https://maven.minecraftforge.net/net/minecraftforge/forge/{version}/forge-{version}-installer.jar"

_DEFAULT_MAIN_CLASS = "net.minecraft.client.main.Main"


class ForgeInstallResult(NamedTuple):
    version_id: str
    "The id of the installed version"

    warning: Optional[str] = None
    "Set when only the minimal fallback version could be written"


def forge_to_installed_version(minecraft_version: str, forge_version: str) -> str:
    """
    Returns the Version under which Forge will be installed.

    :param minecraft_version: The vanilla version, e.g. ``1.20.1``
    :param forge_version: The Forge version without the Minecraft part, e.g. ``47.2.0``
    """
    return f"{minecraft_version}-forge-{forge_version}"


def find_installed_forge(
    minecraft_version: str, layout: InstanceLayout, platform: Optional[Platform] = None
) -> Optional[str]:
    """Returns the id of an already installed Forge version for the given Minecraft version."""
    prefix = f"{minecraft_version}-forge-"
    for version_id in layout.installed_versions():
        if version_id.startswith(prefix) and is_version_installed(version_id, layout, platform):
            return version_id
    return None


def get_promoted_forge_version(minecraft_version: str, downloader: Downloader) -> str:
    """
    Returns the recommended Forge version for a Minecraft version, or the latest one if nothing is recommended.

    :raises VersionNotFound: Forge has no build for this Minecraft version
    """
    promotions: ForgePromotions = downloader.get_json(FORGE_PROMOTIONS_URL)
    promos = promotions.get("promos", {})
    for key in (f"{minecraft_version}-recommended", f"{minecraft_version}-latest"):
        if key in promos:
            return promos[key]
    raise VersionNotFound(f"forge for {minecraft_version}")


def _extract_maven_files(zf: zipfile.ZipFile, layout: InstanceLayout) -> int:
    """Copy the jars the installer bundles below ``maven/`` into the libraries directory."""
    count = 0
    for name in zf.namelist():
        if not name.startswith("maven/") or name.endswith("/"):
            continue
        dest = layout.artifact_path(name[len("maven/"):])
        extract_file_from_zip(zf, name, dest, root_directory=layout.root)
        count += 1
    return count


def forge_processors(
    data: ForgeInstallProfile,
    layout: InstanceLayout,
    installer: zipfile.ZipFile,
    installer_path: str,
    java: str,
    callback: CallbackDict,
) -> None:
    """
    Run the processors of the install_profile.json

    :raises ExternalProgramError: A processor exited with an error
    """
    libraries = str(layout.libraries_dir)
    with tempfile.TemporaryDirectory(prefix="aureate-forge-processors-") as root_path:
        argument_vars = {
            "{MINECRAFT_JAR}": str(layout.version_jar(data["minecraft"])),
            "{INSTALLER}": installer_path,
            "{ROOT}": root_path,
            "{SIDE}": "client",
        }
        for key, value in data.get("data", {}).items():
            client = value["client"]
            if client.startswith("[") and client.endswith("]"):
                argument_vars[f"{{{key}}}"] = get_library_path(client[1:-1], libraries)
            elif client.startswith("/"):
                # Files inside the installer, e.g. the binary patches
                target = os.path.join(root_path, client.lstrip("/"))
                extract_file_from_zip(installer, client.lstrip("/"), target)
                argument_vars[f"{{{key}}}"] = target
            else:
                argument_vars[f"{{{key}}}"] = client

        classpath_sep = get_classpath_separator()
        processors = [p for p in data.get("processors", []) if "client" in p.get("sides", ["client"])]
        callback.get("setMax", empty)(len(processors))
        for count, proc in enumerate(processors):
            jar_path = get_library_path(proc["jar"], libraries)
            classpath = classpath_sep.join([get_library_path(c, libraries) for c in proc.get("classpath", [])] + [jar_path])
            command = [java, "-cp", classpath, get_jar_mainclass(jar_path)]

            for arg in proc.get("args", []):
                var = argument_vars.get(arg, arg)
                if var.startswith("[") and var.endswith("]"):
                    command.append(get_library_path(var[1:-1], libraries))
                else:
                    command.append(var)

            for key, val in argument_vars.items():
                command = [c.replace(key, val) for c in command]

            logging.info(f"Running Forge processor {proc['jar']}")
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=root_path,
                startupinfo=SUBPROCESS_STARTUP_INFO,
            )
            if result.returncode != 0:
                raise ExternalProgramError(command, result.stdout, result.stderr)
            callback.get("setProgress", empty)(count + 1)


def _run_installer(
    minecraft_version: str,
    forge_version: str,
    layout: InstanceLayout,
    downloader: Downloader,
    platform: Platform,
    java: Optional[str],
    callback: CallbackDict,
) -> str:
    full_version = f"{minecraft_version}-{forge_version}"
    with tempfile.TemporaryDirectory(prefix="aureate-forge-install-") as tempdir:
        installer_path = os.path.join(tempdir, "installer.jar")
        downloader.fetch(FORGE_DOWNLOAD_URL.format(version=full_version), installer_path)

        with zipfile.ZipFile(installer_path, "r") as zf:
            with zf.open("install_profile.json", "r") as f:
                profile: ForgeInstallProfile = json.load(f)

            if "versionInfo" in profile:
                # Installers before 1.13 embed the version json in the profile
                version_data = profile["versionInfo"]  # type: ignore
                version_id = version_data["id"]
                json_path = layout.version_json(version_id)
                json_path.parent.mkdir(parents=True, exist_ok=True)
                with open(json_path, "w", encoding="utf-8") as f:
                    json.dump(version_data, f, ensure_ascii=False, indent=4)
            else:
                with zf.open("version.json", "r") as f:
                    version_id = json.load(f)["id"]
                extract_file_from_zip(zf, "version.json", layout.version_json(version_id), root_directory=layout.root)

            callback.get("setStatus", empty)("Installing Forge libraries")
            if profile.get("libraries"):
                entries = [LibraryEntry.from_dict(lib) for lib in profile["libraries"]]
                downloader.fetch_all(library_tasks(entries, layout, platform))
            _extract_maven_files(zf, layout)

            if profile.get("processors"):
                if java is None:
                    major = load_descriptor(minecraft_version, layout).java_version or required_java_version(minecraft_version)
                    java = get_executable_path(layout, major) or "java"
                callback.get("setStatus", empty)("Running Forge processors")
                forge_processors(profile, layout, zf, installer_path, java, callback)

    install_minecraft_version(version_id, layout, downloader, platform, callback)
    return version_id


def write_manual_forge_version(minecraft_version: str, forge_version: str, layout: InstanceLayout) -> str:
    """
    Write a minimal Forge version that inherits the base game, together with a placeholder Forge jar
    when the real one is missing. Returns the id of the written version.
    """
    version_id = forge_to_installed_version(minecraft_version, forge_version)
    coordinate = f"net.minecraftforge:forge:{minecraft_version}-{forge_version}"
    main_class = load_descriptor(minecraft_version, layout).main_class or _DEFAULT_MAIN_CLASS

    # No arguments of its own, so the ones of the base game are used
    descriptor = {
        "id": version_id,
        "inheritsFrom": minecraft_version,
        "type": "release",
        "mainClass": main_class,
        "libraries": [{"name": coordinate}],
    }
    json_path = layout.version_json(version_id)
    json_path.parent.mkdir(parents=True, exist_ok=True)
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(descriptor, f, ensure_ascii=False, indent=4)

    jar_path = layout.library_path(coordinate)
    if not jar_path.is_file():
        jar_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(jar_path, "w") as zf:
            zf.writestr("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\r\n\r\n")
    return version_id


def install_forge_version(
    minecraft_version: str,
    layout: InstanceLayout,
    downloader: Downloader,
    forge_version: Optional[str] = None,
    platform: Optional[Platform] = None,
    java: Optional[str] = None,
    callback: Optional[CallbackDict] = None,
) -> ForgeInstallResult:
    """
    Installs the given Forge version

    The base game must already be installed. If the installer can't be downloaded or fails, a minimal
    version is written instead and the result carries a warning.

    :param minecraft_version: The vanilla version Forge is installed for
    :param layout: The launcher directory
    :param downloader: Used for every request
    :param forge_version: The Forge version, e.g. ``47.2.0``. The recommended one is used if not given
    :param java: The java executable used for the processors
    :param callback: Receives the progress
    :raises VersionNotFound: No Forge version is known for this Minecraft version
    """
    callback = callback or {}
    platform = platform or Platform.current()

    if forge_version is None:
        existing = find_installed_forge(minecraft_version, layout, platform)
        if existing is not None:
            return ForgeInstallResult(existing)
        forge_version = get_promoted_forge_version(minecraft_version, downloader)

    version_id = forge_to_installed_version(minecraft_version, forge_version)
    if is_version_installed(version_id, layout, platform):
        return ForgeInstallResult(version_id)

    callback.get("setStatus", empty)(f"Installing Forge {forge_version}")
    try:
        version_id = _run_installer(minecraft_version, forge_version, layout, downloader, platform, java, callback)
    except InstallationCancelled:
        raise
    except (LauncherError, OSError, zipfile.BadZipFile, KeyError, ValueError) as e:
        logging.warning(f"Forge installer failed, writing a minimal Forge version instead: {e}")
        version_id = write_manual_forge_version(minecraft_version, forge_version, layout)
        return ForgeInstallResult(
            version_id,
            f"Forge {forge_version} was installed without its installer ({e}). Some mods may not load",
        )

    logging.info(f"Installed Forge {forge_version} for {minecraft_version}")
    return ForgeInstallResult(version_id)
