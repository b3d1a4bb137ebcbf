# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
"""Shapes of the JSON documents that are read from disk or from the network"""
from typing import Literal, TypedDict, Union


class ClientJsonRuleOs(TypedDict, total=False):
    name: str
    arch: str
    version: str


class ClientJsonRule(TypedDict, total=False):
    action: Literal["allow", "disallow"]
    os: ClientJsonRuleOs
    features: dict[str, bool]


class ClientJsonArgumentRule(TypedDict, total=False):
    value: Union[str, list[str]]
    rules: list[ClientJsonRule]
    compatibilityRules: list[ClientJsonRule]


class ClientJsonArguments(TypedDict, total=False):
    game: list[Union[str, ClientJsonArgumentRule]]
    jvm: list[Union[str, ClientJsonArgumentRule]]


class ClientJsonArtifact(TypedDict, total=False):
    path: str
    sha1: str
    size: int
    url: str


class ClientJsonLibraryDownloads(TypedDict, total=False):
    artifact: ClientJsonArtifact
    classifiers: dict[str, ClientJsonArtifact]


class ClientJsonLibraryExtract(TypedDict, total=False):
    exclude: list[str]


class ClientJsonLibrary(TypedDict, total=False):
    name: str
    url: str
    downloads: ClientJsonLibraryDownloads
    natives: dict[str, str]
    extract: ClientJsonLibraryExtract
    rules: list[ClientJsonRule]


class ClientJsonAssetIndex(TypedDict, total=False):
    id: str
    sha1: str
    size: int
    totalSize: int
    url: str


class ClientJsonDownloads(TypedDict, total=False):
    client: ClientJsonArtifact
    server: ClientJsonArtifact


class ClientJsonJavaVersion(TypedDict, total=False):
    component: str
    majorVersion: int


class ClientJson(TypedDict, total=False):
    id: str
    inheritsFrom: str
    jar: str
    type: str
    mainClass: str
    arguments: ClientJsonArguments
    minecraftArguments: str
    libraries: list[ClientJsonLibrary]
    assetIndex: ClientJsonAssetIndex
    assets: str
    downloads: ClientJsonDownloads
    javaVersion: ClientJsonJavaVersion


class VersionListManifestJsonVersion(TypedDict):
    id: str
    type: str
    url: str
    time: str
    releaseTime: str
    sha1: str
    complianceLevel: int


class VersionListManifestJsonLatest(TypedDict):
    release: str
    snapshot: str


class VersionListManifestJson(TypedDict):
    latest: VersionListManifestJsonLatest
    versions: list[VersionListManifestJsonVersion]
