# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
from . import (
    archive,
    classpath,
    command,
    descriptor,
    download,
    exceptions,
    fabric,
    forge,
    install,
    layout,
    natives,
    rules,
    runtime,
    types,
    version,
)

__all__ = [
    "archive",
    "classpath",
    "command",
    "descriptor",
    "download",
    "exceptions",
    "fabric",
    "forge",
    "install",
    "layout",
    "natives",
    "rules",
    "runtime",
    "types",
    "version",
]
