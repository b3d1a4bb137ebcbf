# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
"""
install downloads a version with all its libraries and assets.
"""

import json
import logging
from typing import Iterable, Optional

from ._helper import empty, is_file_present
from ._internal_types.install_types import AssetsJson
from ._internal_types.shared_types import VersionListManifestJson
from .descriptor import EffectiveDescriptor, LibraryEntry, load_descriptor, resolve
from .download import Downloader, DownloadTask
from .exceptions import LauncherError, MissingDependency, VersionNotFound
from .layout import InstanceLayout
from .rules import Platform
from .types import CallbackDict

__all__ = ["install_minecraft_version", "is_version_installed", "library_tasks", "VERSION_MANIFEST_URL"]

VERSION_MANIFEST_URL = "https://piston-meta.mojang.com/mc/game/version_manifest_v2.json"
ASSETS_URL = "https://resources.download.minecraft.net"


def library_tasks(
    libraries: Iterable[LibraryEntry], layout: InstanceLayout, platform: Platform
) -> list[DownloadTask]:
    """
    Returns the downloads for all libraries that apply to ``platform``.
    Libraries without a download URL are expected to be placed by their installer and are skipped.
    """
    tasks: dict[str, DownloadTask] = {}
    for lib in libraries:
        if not lib.contributes(platform):
            continue
        if lib.has_primary_artifact and lib.artifact_url:
            dest = layout.artifact_path(lib.artifact_path)
            sha1 = lib.artifact.sha1 if lib.artifact is not None else None
            tasks.setdefault(str(dest), DownloadTask(lib.artifact_url, dest, sha1))
        native = lib.native_artifact(platform)
        native_path = lib.native_path(platform)
        if native is not None and native.url and native_path is not None:
            dest = layout.artifact_path(native_path)
            tasks.setdefault(str(dest), DownloadTask(native.url, dest, native.sha1))
    return list(tasks.values())


def _asset_tasks(descriptor: EffectiveDescriptor, layout: InstanceLayout) -> list[DownloadTask]:
    if descriptor.asset_index is None:
        return []
    index_path = layout.asset_index(descriptor.asset_index.id)
    with open(index_path, "r", encoding="utf-8") as f:
        assets_data: AssetsJson = json.load(f)

    hashes = sorted({obj["hash"] for obj in assets_data.get("objects", {}).values()})
    return [
        DownloadTask(f"{ASSETS_URL}/{filehash[:2]}/{filehash}", layout.asset_object(filehash), filehash)
        for filehash in hashes
    ]


def _collect_tasks(descriptor: EffectiveDescriptor, layout: InstanceLayout, platform: Platform) -> list[DownloadTask]:
    tasks = library_tasks(descriptor.libraries, layout, platform)
    if descriptor.client is not None and descriptor.client.url:
        tasks.append(DownloadTask(descriptor.client.url, layout.version_jar(descriptor.root_id), descriptor.client.sha1))
    tasks += _asset_tasks(descriptor, layout)
    return tasks


def is_version_installed(
    version_id: str,
    layout: InstanceLayout,
    platform: Optional[Platform] = None,
    verify_hashes: bool = False,
) -> bool:
    """
    Check without network access whether a version and everything it needs is on disk.
    """
    platform = platform or Platform.current()
    try:
        descriptor = resolve(version_id, layout)
        if descriptor.asset_index is not None and not layout.asset_index(descriptor.asset_index.id).is_file():
            return False
        tasks = _collect_tasks(descriptor, layout, platform)
    except (LauncherError, OSError, ValueError):
        return False
    if not is_file_present(layout.version_jar(descriptor.root_id)):
        return False
    return all(is_file_present(task.dest, task.sha1 if verify_hashes else None) for task in tasks)


def _ensure_descriptors(version_id: str, layout: InstanceLayout, downloader: Downloader) -> None:
    """Fetch the descriptor of a version and its parents if they are not on disk yet."""
    manifest: Optional[VersionListManifestJson] = None
    current: Optional[str] = version_id
    seen: set[str] = set()
    while current is not None and current not in seen:
        seen.add(current)
        json_path = layout.version_json(current)
        if not json_path.is_file():
            if manifest is None:
                manifest = downloader.get_json(VERSION_MANIFEST_URL)
            for entry in manifest["versions"]:
                if entry["id"] == current:
                    logging.info(f"Downloading descriptor of {current}")
                    downloader.fetch_json(entry["url"], json_path)
                    break
            else:
                raise VersionNotFound(current)
        current = load_descriptor(current, layout).inherits_from


def install_minecraft_version(
    version_id: str,
    layout: InstanceLayout,
    downloader: Downloader,
    platform: Optional[Platform] = None,
    callback: Optional[CallbackDict] = None,
) -> EffectiveDescriptor:
    """
    Install a version with its parents, libraries, client jar and assets.
    Files that are already present are not downloaded again.

    :param version_id: A vanilla version or an installed loader version
    :param layout: The launcher directory
    :param downloader: Used for every request
    :param platform: The platform to install libraries for, defaults to the running one
    :param callback: Receives the progress as the number of finished files
    :raises VersionNotFound: The version does not exist
    :raises NetworkError: A file could not be downloaded
    """
    callback = callback or {}
    platform = platform or Platform.current()

    callback.get("setStatus", empty)(f"Installing {version_id}")
    _ensure_descriptors(version_id, layout, downloader)
    descriptor = resolve(version_id, layout)

    if descriptor.asset_index is not None:
        index_path = layout.asset_index(descriptor.asset_index.id)
        if not index_path.is_file():
            if not descriptor.asset_index.url:
                raise VersionNotFound(descriptor.asset_index.id, index_path)
            downloader.fetch_json(descriptor.asset_index.url, index_path)

    tasks = _collect_tasks(descriptor, layout, platform)
    callback.get("setStatus", empty)("Downloading libraries and assets")
    downloader.fetch_all(tasks, callback)

    client_jar = layout.version_jar(descriptor.root_id)
    if not is_file_present(client_jar):
        raise MissingDependency([client_jar])
    logging.info(f"Installed {version_id} ({len(tasks)} files checked)")
    return descriptor
