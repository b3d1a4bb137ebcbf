# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
from typing import TypedDict


class AssetsJsonObject(TypedDict):
    hash: str
    size: int


class AssetsJson(TypedDict, total=False):
    objects: dict[str, AssetsJsonObject]
    map_to_resources: bool
    virtual: bool
