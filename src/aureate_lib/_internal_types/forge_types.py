# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
from typing import TypedDict

from .shared_types import ClientJsonLibrary


class ForgeInstallProcessor(TypedDict, total=False):
    sides: list[str]
    jar: str
    classpath: list[str]
    args: list[str]


class ForgeInstallProfileData(TypedDict):
    client: str
    server: str


class ForgeInstallProfile(TypedDict, total=False):
    spec: int
    profile: str
    version: str
    path: str
    minecraft: str
    json: str
    data: dict[str, ForgeInstallProfileData]
    processors: list[ForgeInstallProcessor]
    libraries: list[ClientJsonLibrary]


class ForgePromotions(TypedDict):
    homepage: str
    promos: dict[str, str]
