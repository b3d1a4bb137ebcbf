# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
"""
rules contains the predicate engine for the ``rules`` lists found in version descriptors.
The same :func:`evaluate` decides which libraries get downloaded, which end up on the classpath
and which conditional launch arguments are used.
"""

import platform as _platform
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from ._helper import get_os_version
from ._internal_types.shared_types import ClientJsonRule

__all__ = ["Platform", "OsConstraint", "Rule", "evaluate", "normalize_arch", "normalize_os_name"]

_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
}

_OS_ALIASES = {
    "windows": "windows",
    "win32": "windows",
    "osx": "osx",
    "macos": "osx",
    "darwin": "osx",
    "linux": "linux",
}


def normalize_arch(arch: str) -> str:
    """Map architecture synonyms like ``amd64`` and ``x64`` to one canonical name."""
    return _ARCH_ALIASES.get(arch.lower(), arch.lower())


def normalize_os_name(name: str) -> str:
    """Map OS synonyms like ``macos`` to the names used in descriptors."""
    return _OS_ALIASES.get(name.lower(), name.lower())


@dataclass(frozen=True)
class Platform:
    """The platform rules are evaluated against. ``features`` holds the launch feature flags."""

    os_name: str
    arch: str
    os_version: str = ""
    features: Mapping[str, bool] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "os_name", normalize_os_name(self.os_name))
        object.__setattr__(self, "arch", normalize_arch(self.arch))

    @classmethod
    def current(cls, features: Optional[Mapping[str, bool]] = None) -> "Platform":
        system = _platform.system()
        os_name = {"Windows": "windows", "Darwin": "osx"}.get(system, "linux")
        arch = _platform.machine() or ("x86_64" if _platform.architecture()[0] == "64bit" else "x86")
        return cls(os_name, arch, get_os_version(), dict(features or {}))

    def with_features(self, **features: bool) -> "Platform":
        merged = dict(self.features)
        merged.update(features)
        return Platform(self.os_name, self.arch, self.os_version, merged)


@dataclass(frozen=True)
class OsConstraint:
    name: Optional[str] = None
    arch: Optional[str] = None
    version: Optional[str] = None

    def matches(self, platform: Platform) -> bool:
        if self.name is not None and normalize_os_name(self.name) != platform.os_name:
            return False
        if self.arch is not None and normalize_arch(self.arch) != platform.arch:
            return False
        if self.version is not None and not re.match(self.version, platform.os_version):
            return False
        return True


@dataclass(frozen=True)
class Rule:
    action: str
    os: Optional[OsConstraint] = None
    features: Mapping[str, bool] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: ClientJsonRule) -> "Rule":
        os_data = data.get("os")
        os_constraint = None
        if os_data:
            os_constraint = OsConstraint(
                name=os_data.get("name"),
                arch=os_data.get("arch"),
                version=os_data.get("version"),
            )
        return cls(
            action=data.get("action", "allow"),
            os=os_constraint,
            features=dict(data.get("features", {})),
        )

    def matches(self, platform: Platform) -> bool:
        """A rule without constraints matches unconditionally."""
        if self.os is not None and not self.os.matches(platform):
            return False
        for key, value in self.features.items():
            if bool(platform.features.get(key, False)) != bool(value):
                return False
        return True


def parse_rules(data: Optional[Sequence[ClientJsonRule]]) -> tuple[Rule, ...]:
    return tuple(Rule.from_dict(rule) for rule in data or ())


def evaluate(rules: Sequence[Rule], platform: Platform) -> bool:
    """
    Decide whether an entry guarded by ``rules`` applies to ``platform``.

    An empty list is allowed. Otherwise the entry starts disallowed and every matching
    rule sets the decision to its own action, so the last match wins.
    """
    if not rules:
        return True

    allowed = False
    for rule in rules:
        if rule.matches(platform):
            allowed = rule.action == "allow"
    return allowed
