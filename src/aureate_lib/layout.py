# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
"""
layout knows where every file lives inside the launcher directory.
All paths are derived from ids, maven coordinates and hashes, nothing is stored.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from ._helper import check_path_inside_directory, get_library_path

__all__ = ["InstanceLayout"]


@dataclass(frozen=True)
class InstanceLayout:
    root: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", Path(self.root).absolute())

    def _inside(self, path: Path) -> Path:
        check_path_inside_directory(self.root, path)
        return path

    @property
    def versions_dir(self) -> Path:
        return self.root / "versions"

    @property
    def libraries_dir(self) -> Path:
        return self.root / "libraries"

    @property
    def assets_dir(self) -> Path:
        return self.root / "assets"

    @property
    def runtime_dir(self) -> Path:
        return self.root / "runtime"

    @property
    def instances_dir(self) -> Path:
        return self.root / "instances"

    def version_dir(self, version_id: str) -> Path:
        return self._inside(self.versions_dir / version_id)

    def version_json(self, version_id: str) -> Path:
        return self.version_dir(version_id) / f"{version_id}.json"

    def version_jar(self, version_id: str) -> Path:
        return self.version_dir(version_id) / f"{version_id}.jar"

    def library_path(self, name: str) -> Path:
        """Path of a library given by its maven coordinate."""
        return self._inside(Path(get_library_path(name, self.libraries_dir)))

    def artifact_path(self, relative_path: str) -> Path:
        """Path of a library given by the ``path`` of its download entry."""
        return self._inside(self.libraries_dir / relative_path)

    def asset_index(self, index_id: str) -> Path:
        return self._inside(self.assets_dir / "indexes" / f"{index_id}.json")

    def asset_object(self, filehash: str) -> Path:
        return self._inside(self.assets_dir / "objects" / filehash[:2] / filehash)

    def java_runtime(self, major_version: int) -> Path:
        return self.runtime_dir / f"java-{major_version}"

    def instance_dir(self, instance_id: str) -> Path:
        return self._inside(self.instances_dir / instance_id)

    def natives_dir(self, instance_id: str) -> Path:
        return self.instance_dir(instance_id) / "natives"

    def mods_dir(self, instance_id: str) -> Path:
        return self.instance_dir(instance_id) / "mods"

    def logs_dir(self, instance_id: str) -> Path:
        return self.instance_dir(instance_id) / "logs"

    def installed_flag(self, instance_id: str) -> Path:
        return self.instance_dir(instance_id) / "installed.json"

    def installed_versions(self) -> list[str]:
        """Ids of all versions that have a descriptor on disk."""
        try:
            entries = os.listdir(self.versions_dir)
        except FileNotFoundError:
            return []
        return sorted(e for e in entries if (self.versions_dir / e / f"{e}.json").is_file())
