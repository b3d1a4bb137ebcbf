# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
"""
descriptor models the version json files and resolves ``inheritsFrom`` chains.

The raw JSON is parsed once into the dataclasses of this module. Everything else in aureate_lib
works with these objects and never looks at the raw dicts again.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

from ._helper import get_library_relative_path
from ._internal_types.shared_types import (
    ClientJson,
    ClientJsonArgumentRule,
    ClientJsonArtifact,
    ClientJsonLibrary,
)
from .exceptions import DescriptorError, VersionNotFound
from .layout import InstanceLayout
from .rules import Platform, Rule, evaluate, parse_rules

__all__ = [
    "Artifact",
    "LibraryEntry",
    "ConditionalArgument",
    "Argument",
    "ArgumentTemplates",
    "AssetIndexRef",
    "VersionDescriptor",
    "EffectiveDescriptor",
    "load_descriptor",
    "resolve",
]


@dataclass(frozen=True)
class Artifact:
    path: Optional[str] = None
    url: Optional[str] = None
    sha1: Optional[str] = None
    size: Optional[int] = None

    @classmethod
    def from_dict(cls, data: ClientJsonArtifact) -> "Artifact":
        return cls(
            path=data.get("path"),
            url=data.get("url") or None,
            sha1=data.get("sha1"),
            size=data.get("size"),
        )


@dataclass(frozen=True)
class LibraryEntry:
    name: str
    artifact: Optional[Artifact] = None
    classifiers: Mapping[str, Artifact] = field(default_factory=dict)
    natives: Mapping[str, str] = field(default_factory=dict)
    rules: tuple[Rule, ...] = ()
    url: Optional[str] = None
    extract_exclude: tuple[str, ...] = ()
    has_downloads: bool = False

    @classmethod
    def from_dict(cls, data: ClientJsonLibrary) -> "LibraryEntry":
        downloads = data.get("downloads")
        artifact = None
        classifiers: dict[str, Artifact] = {}
        if downloads:
            if "artifact" in downloads:
                artifact = Artifact.from_dict(downloads["artifact"])
            for key, value in downloads.get("classifiers", {}).items():
                classifiers[key] = Artifact.from_dict(value)
        return cls(
            name=data["name"],
            artifact=artifact,
            classifiers=classifiers,
            natives=dict(data.get("natives", {})),
            rules=parse_rules(data.get("rules")),
            url=data.get("url"),
            extract_exclude=tuple(data.get("extract", {}).get("exclude", [])),
            has_downloads=downloads is not None,
        )

    def is_allowed(self, platform: Platform) -> bool:
        return evaluate(self.rules, platform)

    def native_key(self, platform: Platform) -> Optional[str]:
        """The classifier that holds this library's natives on ``platform``, if it declares one."""
        key = self.natives.get(platform.os_name)
        if key is None:
            return None
        arch_bits = "64" if platform.arch in ("x86_64", "arm64") else "32"
        return key.replace("${arch}", arch_bits)

    def native_artifact(self, platform: Platform) -> Optional[Artifact]:
        key = self.native_key(platform)
        if key is None:
            return None
        return self.classifiers.get(key)

    def contributes(self, platform: Platform) -> bool:
        """False when the rules exclude the library or its natives have no classifier for ``platform``."""
        if not self.is_allowed(platform):
            return False
        if self.native_key(platform) is not None and self.native_artifact(platform) is None:
            return False
        return True

    @property
    def has_primary_artifact(self) -> bool:
        # Libraries with a downloads block but no artifact only ship classifier jars
        return self.artifact is not None or not self.has_downloads

    @property
    def artifact_path(self) -> str:
        """Path of the primary jar relative to the libraries directory."""
        if self.artifact is not None and self.artifact.path:
            return self.artifact.path
        return get_library_relative_path(self.name)

    @property
    def artifact_url(self) -> Optional[str]:
        if self.artifact is not None and self.artifact.url:
            return self.artifact.url
        if self.url:
            return self.url.rstrip("/") + "/" + get_library_relative_path(self.name)
        return None

    def native_path(self, platform: Platform) -> Optional[str]:
        native = self.native_artifact(platform)
        if native is None:
            return None
        if native.path:
            return native.path
        return get_library_relative_path(f"{self.name}:{self.native_key(platform)}")


@dataclass(frozen=True)
class ConditionalArgument:
    values: tuple[str, ...]
    rules: tuple[Rule, ...] = ()


Argument = Union[str, ConditionalArgument]


def parse_argument(item: Union[str, ClientJsonArgumentRule]) -> Argument:
    if isinstance(item, str):
        return item
    value = item.get("value", [])
    values = (value,) if isinstance(value, str) else tuple(value)
    rules = item.get("rules", item.get("compatibilityRules"))
    return ConditionalArgument(values, parse_rules(rules))


@dataclass(frozen=True)
class ArgumentTemplates:
    jvm: tuple[Argument, ...] = ()
    game: tuple[Argument, ...] = ()


@dataclass(frozen=True)
class AssetIndexRef:
    id: str
    url: Optional[str] = None
    sha1: Optional[str] = None
    size: Optional[int] = None


@dataclass(frozen=True)
class VersionDescriptor:
    id: str
    inherits_from: Optional[str] = None
    main_class: Optional[str] = None
    libraries: tuple[LibraryEntry, ...] = ()
    arguments: Optional[ArgumentTemplates] = None
    legacy_arguments: Optional[str] = None
    asset_index: Optional[AssetIndexRef] = None
    assets: Optional[str] = None
    client: Optional[Artifact] = None
    java_version: Optional[int] = None
    type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: ClientJson) -> "VersionDescriptor":
        arguments = None
        if "arguments" in data:
            raw = data["arguments"]
            arguments = ArgumentTemplates(
                jvm=tuple(parse_argument(a) for a in raw.get("jvm", [])),
                game=tuple(parse_argument(a) for a in raw.get("game", [])),
            )
        asset_index = None
        if "assetIndex" in data:
            raw_index = data["assetIndex"]
            asset_index = AssetIndexRef(
                id=raw_index["id"],
                url=raw_index.get("url"),
                sha1=raw_index.get("sha1"),
                size=raw_index.get("size"),
            )
        client = None
        if "client" in data.get("downloads", {}):
            client = Artifact.from_dict(data["downloads"]["client"])
        java_version = None
        if "javaVersion" in data:
            java_version = data["javaVersion"].get("majorVersion")
        return cls(
            id=data["id"],
            inherits_from=data.get("inheritsFrom"),
            main_class=data.get("mainClass"),
            libraries=tuple(LibraryEntry.from_dict(lib) for lib in data.get("libraries", [])),
            arguments=arguments,
            legacy_arguments=data.get("minecraftArguments"),
            asset_index=asset_index,
            assets=data.get("assets", asset_index.id if asset_index else None),
            client=client,
            java_version=java_version,
            type=data.get("type"),
        )


@dataclass(frozen=True)
class EffectiveDescriptor:
    """A descriptor with its whole inheritance chain applied."""

    id: str
    chain: tuple[str, ...]
    main_class: Optional[str]
    libraries: tuple[LibraryEntry, ...]
    arguments: Optional[ArgumentTemplates]
    legacy_arguments: Optional[str]
    asset_index: Optional[AssetIndexRef]
    assets: Optional[str]
    client: Optional[Artifact]
    java_version: Optional[int]
    type: Optional[str]
    argument_chain: tuple[ArgumentTemplates, ...] = ()
    "The structured templates of every descriptor in the chain, root first"

    @property
    def root_id(self) -> str:
        """The base game at the end of the chain, whose client jar is always needed"""
        return self.chain[-1]

    @property
    def inherits(self) -> bool:
        return len(self.chain) > 1


def load_descriptor(version_id: str, layout: InstanceLayout) -> VersionDescriptor:
    """
    Load ``versions/<id>/<id>.json``.

    :raises VersionNotFound: The file does not exist
    :raises DescriptorError: The file is not a valid descriptor
    """
    path = layout.version_json(version_id)
    if not os.path.isfile(path):
        raise VersionNotFound(version_id, path)
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            data: ClientJson = json.load(f)
        return VersionDescriptor.from_dict(data)
    except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
        raise DescriptorError(version_id, str(e)) from e


def resolve(version_id: str, layout: InstanceLayout) -> EffectiveDescriptor:
    """
    Resolve a version and all of its parents.

    Libraries are the parent's followed by the child's own, with nothing removed. The asset index,
    java version and type are inherited when the child has none. The main class and the argument
    templates come from the child, a parent is only used when the child has none at all.

    :raises VersionNotFound: A descriptor of the chain does not exist
    :raises DescriptorError: The chain contains a cycle
    """
    chain: list[VersionDescriptor] = []
    names: list[str] = []
    seen: set[str] = set()
    current: Optional[str] = version_id
    while current is not None:
        if current in seen:
            raise DescriptorError(version_id, f"inheritance cycle at {current}")
        seen.add(current)
        descriptor = load_descriptor(current, layout)
        chain.append(descriptor)
        names.append(current)
        current = descriptor.inherits_from

    def first(attribute: str):
        for descriptor in chain:
            value = getattr(descriptor, attribute)
            if value is not None:
                return value
        return None

    libraries: list[LibraryEntry] = []
    for descriptor in reversed(chain):
        libraries.extend(descriptor.libraries)

    arguments = None
    legacy_arguments = None
    for descriptor in chain:
        if descriptor.arguments is not None or descriptor.legacy_arguments is not None:
            arguments = descriptor.arguments
            legacy_arguments = descriptor.legacy_arguments
            break

    return EffectiveDescriptor(
        id=version_id,
        chain=tuple(names),
        main_class=first("main_class"),
        libraries=tuple(libraries),
        arguments=arguments,
        legacy_arguments=legacy_arguments,
        asset_index=first("asset_index"),
        assets=first("assets"),
        client=chain[-1].client,
        java_version=first("java_version"),
        type=first("type"),
        argument_chain=tuple(d.arguments for d in reversed(chain) if d.arguments is not None),
    )
