# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
"""fabric contains functions for dealing with the `Fabric modloader <https://fabricmc.net/>`_."""

import logging
import os
from typing import Optional

from ._helper import empty
from .descriptor import load_descriptor
from .download import Downloader
from .exceptions import UnsupportedVersion
from .install import install_minecraft_version, is_version_installed
from .layout import InstanceLayout
from .rules import Platform
from .types import CallbackDict, FabricLoader

__all__ = ["install_fabric", "fabric_version_id", "find_installed_fabric", "get_latest_loader_version"]

FABRIC_META_URL = "https://meta.fabricmc.net/v2"


def fabric_version_id(minecraft_version: str, loader_version: str) -> str:
    """Returns the id under which a Fabric version is installed."""
    return f"fabric-loader-{loader_version}-{minecraft_version}"


def find_installed_fabric(
    minecraft_version: str, layout: InstanceLayout, platform: Optional[Platform] = None
) -> Optional[str]:
    """Returns the id of a complete Fabric installation for the given Minecraft version, if there is one."""
    suffix = f"-{minecraft_version}"
    for version_id in layout.installed_versions():
        if version_id.startswith("fabric-loader-") and version_id.endswith(suffix):
            if is_version_installed(version_id, layout, platform):
                return version_id
    return None


def get_latest_loader_version(minecraft_version: str, downloader: Downloader) -> str:
    """
    Returns the newest Fabric loader version for a Minecraft version.

    :raises UnsupportedVersion: Fabric doesn't support this Minecraft version
    """
    loaders: list[dict[str, FabricLoader]] = downloader.get_json(
        f"{FABRIC_META_URL}/versions/loader/{minecraft_version}"
    )
    if not loaders:
        raise UnsupportedVersion(minecraft_version)
    return loaders[0]["loader"]["version"]


def install_fabric(
    minecraft_version: str,
    layout: InstanceLayout,
    downloader: Downloader,
    loader_version: Optional[str] = None,
    platform: Optional[Platform] = None,
    callback: Optional[CallbackDict] = None,
) -> str:
    """
    Installs the Fabric modloader and returns the id of the installed version.

    The launcher profile is downloaded from the Fabric meta server. Its libraries carry their own
    maven URL, so no installer has to be run.

    :param minecraft_version: A vanilla version that is supported by Fabric
    :param layout: The launcher directory
    :param downloader: Used for every request
    :param loader_version: The fabric loader version. If not given it will use the latest
    :param callback: Receives the download progress
    :raises UnsupportedVersion: The given Minecraft version is not supported by Fabric
    """
    callback = callback or {}
    platform = platform or Platform.current()

    if loader_version is None:
        existing = find_installed_fabric(minecraft_version, layout, platform)
        if existing is not None:
            return existing
        loader_version = get_latest_loader_version(minecraft_version, downloader)

    version_id = fabric_version_id(minecraft_version, loader_version)
    if is_version_installed(version_id, layout, platform):
        return version_id

    callback.get("setStatus", empty)(f"Installing Fabric {loader_version}")
    profile_path = layout.version_json(version_id)
    if not os.path.isfile(profile_path):
        downloader.fetch_json(
            f"{FABRIC_META_URL}/versions/loader/{minecraft_version}/{loader_version}/profile/json",
            profile_path,
        )

    profile = load_descriptor(version_id, layout)
    if profile.inherits_from != minecraft_version:
        raise UnsupportedVersion(version_id)

    # The base game is already present, so this mostly fetches the loader libraries
    install_minecraft_version(version_id, layout, downloader, platform, callback)
    logging.info(f"Installed Fabric {loader_version} for {minecraft_version}")
    return version_id
