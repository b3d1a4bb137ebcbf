# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
"""
This module contains the public Types of aureate_lib. It may help your IDE.
For more information about TypedDict see `PEP 589 <https://peps.python.org/pep-0589/>`_.
"""
from typing import Callable, TypedDict


class LaunchOptions(TypedDict, total=False):
    username: str
    uuid: str
    token: str
    executablePath: str
    jvmArguments: list[str]
    memoryMb: int
    launcherName: str
    launcherVersion: str
    gameDirectory: str
    demo: bool
    customResolution: bool
    resolutionWidth: str
    resolutionHeight: str
    server: str
    port: str


class CallbackDict(TypedDict, total=False):
    setStatus: Callable[[str], None]
    setProgress: Callable[[int], None]
    setMax: Callable[[int], None]


class FabricLoader(TypedDict):
    separator: str
    build: int
    maven: str
    version: str
    stable: bool
