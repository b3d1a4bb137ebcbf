# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
"""
classpath builds the ``-cp`` and ``-p`` values for a resolved descriptor.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from ._helper import get_classpath_separator
from .descriptor import EffectiveDescriptor
from .exceptions import MissingDependency
from .layout import InstanceLayout
from .rules import Platform

__all__ = ["ResolvedLibrarySet", "assemble", "is_module", "NATIVES_MARKER"]

NATIVES_MARKER = "natives"

# Jars that modern Forge expects on the module path instead of the classpath
MODULE_NAMES = frozenset(
    {
        "bootstraplauncher",
        "securejarhandler",
        "asm",
        "asm-commons",
        "asm-util",
        "asm-analysis",
        "asm-tree",
        "JarJarFileSystems",
    }
)

_ARTIFACT_NAME_RE = re.compile(r"^(?P<artifact>.+?)-\d")


def is_module(filename: str) -> bool:
    """Check the artifact part of a jar name (``name-1.2.3.jar`` -> ``name``) against the module set."""
    match = _ARTIFACT_NAME_RE.match(filename)
    artifact = match.group("artifact") if match else os.path.splitext(filename)[0]
    return artifact in MODULE_NAMES


@dataclass
class ResolvedLibrarySet:
    classpath: list[Path] = field(default_factory=list)
    modulepath: list[Path] = field(default_factory=list)
    entries: list[Path] = field(default_factory=list, repr=False)
    "Every jar of both lists in first-seen order"

    def classpath_string(self, os_name: str | None = None) -> str:
        return get_classpath_separator(os_name).join(str(p) for p in self.classpath)

    def modulepath_string(self, os_name: str | None = None) -> str:
        return get_classpath_separator(os_name).join(str(p) for p in self.modulepath)

    def without_modules(self) -> "ResolvedLibrarySet":
        """The same jars with all of them on the classpath."""
        return ResolvedLibrarySet(classpath=list(self.entries), entries=list(self.entries))


def assemble(descriptor: EffectiveDescriptor, layout: InstanceLayout, platform: Platform) -> ResolvedLibrarySet:
    """
    Collect the jars of ``descriptor`` that exist for ``platform``.

    The base game's client jar is always part of the classpath, the jar of an inheriting version is
    added too when it exists. Native jars are never part of the result.

    :raises MissingDependency: One or more files are absent. All of them are listed.
    """
    missing: list[Path] = []
    candidates: list[Path] = []

    for lib in descriptor.libraries:
        if not lib.contributes(platform):
            continue
        if lib.has_primary_artifact:
            candidates.append(layout.artifact_path(lib.artifact_path))
        native_path = lib.native_path(platform)
        if native_path is not None:
            native_file = layout.artifact_path(native_path)
            if not native_file.is_file():
                missing.append(native_file)

    base_jar = layout.version_jar(descriptor.root_id)
    candidates.append(base_jar)
    if descriptor.inherits:
        own_jar = layout.version_jar(descriptor.id)
        if own_jar.is_file():
            candidates.append(own_jar)

    result = ResolvedLibrarySet()
    seen: set[Path] = set()
    for path in candidates:
        path = Path(os.path.normpath(path))
        if not path.is_file():
            if path not in missing:
                missing.append(path)
            continue
        if path in seen or NATIVES_MARKER in path.name:
            continue
        seen.add(path)
        result.entries.append(path)
        if is_module(path.name):
            result.modulepath.append(path)
        else:
            result.classpath.append(path)

    if missing:
        raise MissingDependency(missing)
    return result
