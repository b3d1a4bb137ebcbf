# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause

"""
natives contains a function for extracting native libraries to a specific folder
"""

import logging
import os
import shutil
import zipfile
from pathlib import Path
from typing import Iterator, Optional

from .descriptor import EffectiveDescriptor
from .rules import Platform, normalize_arch, normalize_os_name

__all__ = ["extract_natives", "find_native_archives"]

NATIVE_EXTENSIONS = {
    "windows": (".dll",),
    "osx": (".dylib", ".jnilib"),
    "linux": (".so",),
}

_ARCHIVE_EXTENSIONS = (".jar", ".zip")

# Arch suffixes found in native jar names, "64" and "32" come from old twitch/jinput jars
_SUFFIX_ARCHES = {"64": "x86_64", "32": "x86"}


def _walk_files(root: Path) -> Iterator[Path]:
    """Yield every file below root, using an explicit stack instead of recursion."""
    stack = [root]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError:
            continue
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                stack.append(Path(entry.path))
            elif entry.is_file():
                yield Path(entry.path)


def _native_suffix(filename: str) -> Optional[list[str]]:
    stem = os.path.splitext(filename)[0]
    index = stem.rfind("natives-")
    if index == -1:
        return None
    return stem[index + len("natives-"):].split("-")


def _native_prefix(path: Path) -> tuple[Path, str]:
    stem = os.path.splitext(path.name)[0]
    return path.parent, stem[:stem.rfind("natives-")]


def _matches_platform(filename: str, platform: Platform) -> bool:
    suffix = _native_suffix(filename)
    if not suffix or normalize_os_name(suffix[0]) != platform.os_name:
        return False
    if len(suffix) == 1:
        return True
    arch = _SUFFIX_ARCHES.get(suffix[1], suffix[1])
    return normalize_arch(arch) == platform.arch


def find_native_archives(libraries_root: str | os.PathLike, platform: Platform) -> list[Path]:
    """
    Return the native jars below ``libraries_root`` that belong to ``platform``.
    A jar named for the exact arch hides the plain OS jar of the same library next to it.
    If no jar names the platform, every native jar is returned.
    """
    archives = [
        path
        for path in _walk_files(Path(libraries_root))
        if "natives" in path.name and path.suffix.lower() in _ARCHIVE_EXTENSIONS
    ]
    matching = [path for path in archives if _matches_platform(path.name, platform)]
    if matching:
        with_arch = {_native_prefix(path) for path in matching if len(_native_suffix(path.name)) > 1}
        return [
            path
            for path in matching
            if len(_native_suffix(path.name)) > 1 or _native_prefix(path) not in with_arch
        ]
    if archives:
        logging.warning(f"No native archive matches {platform.os_name}-{platform.arch}, using all {len(archives)}")
    return archives


def _declared_archives(descriptor: EffectiveDescriptor, libraries_root: Path, platform: Platform) -> list[Path]:
    """The native jars the resolved libraries of ``descriptor`` point at."""
    declared = []
    for lib in descriptor.libraries:
        if not lib.contributes(platform):
            continue
        native = lib.native_path(platform)
        if native is not None:
            declared.append(libraries_root / native)
        if lib.has_primary_artifact and "natives" in Path(lib.artifact_path).name:
            declared.append(libraries_root / lib.artifact_path)
    return declared


def _clear_directory(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def extract_natives(
    descriptor: EffectiveDescriptor,
    libraries_root: str | os.PathLike,
    target_dir: str | os.PathLike,
    platform: Platform,
) -> int:
    """
    Extract all native libraries for ``platform`` into ``target_dir``.
    The directory is emptied first. Returns the number of extracted files.

    :param descriptor: The resolved version. Its ``extract.exclude`` entries are honored
    :param libraries_root: The libraries directory that is scanned for native jars
    :param target_dir: The directory to extract natives to
    :param platform: The platform to extract natives for
    """
    target = Path(target_dir)
    _clear_directory(target)

    extensions = NATIVE_EXTENSIONS.get(platform.os_name, ())
    excludes = {e for lib in descriptor.libraries for e in lib.extract_exclude}
    excludes.add("META-INF/")

    found = find_native_archives(libraries_root, platform)
    declared = [path for path in _declared_archives(descriptor, Path(libraries_root), platform) if path in found]
    # Files from the libraries of this version win over same-named files from other installed versions
    ordered = declared + [path for path in found if path not in declared]

    written: set[str] = set()
    for archive in ordered:
        try:
            with zipfile.ZipFile(archive, "r") as zf:
                for info in zf.infolist():
                    if info.is_dir() or any(info.filename.startswith(e) for e in excludes):
                        continue
                    if not info.filename.lower().endswith(extensions):
                        continue
                    name = os.path.basename(info.filename)
                    if name in written:
                        continue
                    with zf.open(info, "r") as src, open(target / name, "wb") as out:
                        shutil.copyfileobj(src, out)
                    written.add(name)
        except (zipfile.BadZipFile, OSError) as e:
            logging.warning(f"Skipping native archive {archive}: {e}")

    logging.info(f"Extracted {len(written)} native files for {descriptor.id} to {target}")
    return len(written)
