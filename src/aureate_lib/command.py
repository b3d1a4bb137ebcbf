# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
"""
command turns a resolved version into the command that starts the game.
"""

import copy
import hashlib
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ._helper import get_classpath_separator
from .classpath import assemble
from .descriptor import Argument, ArgumentTemplates, ConditionalArgument, EffectiveDescriptor, resolve
from .exceptions import DescriptorError
from .layout import InstanceLayout
from .natives import extract_natives
from .rules import Platform, evaluate
from .runtime import get_executable_path
from .types import LaunchOptions
from .version import __version__

__all__ = [
    "LaunchCommand",
    "render",
    "split_legacy",
    "dedupe_arguments",
    "offline_uuid",
    "build_launch_command",
    "requests_module_path",
]

DEFAULT_VARIABLES: Mapping[str, str] = {
    "resolution_width": "854",
    "resolution_height": "480",
}

_TOKEN_RE = re.compile(r"\$\{([^}]+)\}")

# Flags that take the next token as their value without starting with "--"
_VALUE_FLAGS = ("-cp", "-classpath", "-p")


@dataclass
class LaunchCommand:
    executable: str
    jvm_args: list[str]
    main_class: str
    game_args: list[str]
    working_dir: Path

    def argv(self) -> list[str]:
        return [self.executable, *self.jvm_args, self.main_class, *self.game_args]


def substitute(template: str, variables: Mapping[str, str], defaults: Mapping[str, str] = DEFAULT_VARIABLES) -> str:
    """Replace every ``${key}`` in template. Unknown keys are left as they are."""

    def replace(match: re.Match) -> str:
        key = match.group(1)
        if key in variables:
            return str(variables[key])
        if key in defaults:
            return defaults[key]
        return match.group(0)

    return _TOKEN_RE.sub(replace, template)


def render(
    templates: Sequence[Argument],
    variables: Mapping[str, str],
    platform: Platform,
    defaults: Mapping[str, str] = DEFAULT_VARIABLES,
) -> list[str]:
    """
    Render a list of argument templates.
    Literals are substituted, conditional blocks are only used when their rules allow ``platform``.
    """
    args: list[str] = []
    for item in templates:
        if isinstance(item, ConditionalArgument):
            if not evaluate(item.rules, platform):
                continue
            args.extend(substitute(value, variables, defaults) for value in item.values)
        else:
            args.append(substitute(item, variables, defaults))
    return args


def split_legacy(arguments: str) -> list[Argument]:
    """Turn a ``minecraftArguments`` string into a list of templates."""
    return list(arguments.split())


MODULE_PATH_FLAGS = ("-p", "--module-path", "--add-modules")


def requests_module_path(chain: Sequence[ArgumentTemplates]) -> bool:
    """True when the jvm templates set up a module path themselves, as modern Forge does."""
    for templates in chain:
        for arg in templates.jvm:
            values = (arg,) if isinstance(arg, str) else arg.values
            if any(v.split("=", 1)[0] in MODULE_PATH_FLAGS for v in values):
                return True
    return False


def _takes_value(token: str) -> bool:
    return token.startswith("--") or token in _VALUE_FLAGS


def dedupe_arguments(args: Sequence[str]) -> list[str]:
    """
    Remove repeated arguments while keeping the first occurrence.
    A flag and its value count as one argument, so ``--tweakClass a --tweakClass b`` is kept.
    """
    result: list[str] = []
    seen: set[tuple[str, ...]] = set()
    i = 0
    while i < len(args):
        token = args[i]
        if _takes_value(token) and i + 1 < len(args) and not args[i + 1].startswith("-"):
            group = (token, args[i + 1])
            i += 2
        else:
            group = (token,)
            i += 1
        if group in seen:
            continue
        seen.add(group)
        result.extend(group)
    return result


def offline_uuid(username: str) -> str:
    """A stable uuid derived from the player name, used when no account is given."""
    return str(uuid.UUID(bytes=hashlib.md5(username.encode("utf-8")).digest()))


def get_variables(
    descriptor: EffectiveDescriptor,
    layout: InstanceLayout,
    options: LaunchOptions,
    classpath: str,
    natives_directory: str,
    game_directory: str,
    os_name: str,
) -> dict[str, str]:
    username = options.get("username", "Player")
    player_uuid = options.get("uuid") or offline_uuid(username)
    token = options.get("token") or player_uuid
    variables = {
        "natives_directory": natives_directory,
        "launcher_name": options.get("launcherName", "aureate-launcher"),
        "launcher_version": options.get("launcherVersion", __version__),
        "classpath": classpath,
        "classpath_separator": get_classpath_separator(os_name),
        "library_directory": str(layout.libraries_dir),
        "auth_player_name": username,
        "version_name": descriptor.id,
        "game_directory": game_directory,
        "assets_root": str(layout.assets_dir),
        "assets_index_name": descriptor.assets or descriptor.root_id,
        "game_assets": str(layout.assets_dir / "virtual" / "legacy"),
        "auth_uuid": player_uuid,
        "auth_access_token": token,
        "auth_session": token,
        "user_type": "legacy",
        "version_type": descriptor.type or "release",
        "user_properties": "{}",
        "clientid": "",
        "auth_xuid": "",
    }
    if "resolutionWidth" in options:
        variables["resolution_width"] = str(options["resolutionWidth"])
    if "resolutionHeight" in options:
        variables["resolution_height"] = str(options["resolutionHeight"])
    return variables


def build_launch_command(
    layout: InstanceLayout,
    version_id: str,
    instance_id: str,
    options: LaunchOptions,
    platform: Optional[Platform] = None,
) -> LaunchCommand:
    """
    Build the command for starting the given version.

    The version is resolved, its classpath is checked and the natives are extracted into the
    instance directory, so this has to be called right before every launch.

    :param layout: The launcher directory
    :param version_id: The version to start, e.g. ``fabric-loader-0.15.11-1.20.1``
    :param instance_id: The instance whose directory is used for natives, logs and the game
    :param options: Player name, memory and the other launch options
    :param platform: The platform, defaults to the running one
    :raises VersionNotFound: The version or one of its parents is not installed
    :raises MissingDependency: Libraries or the client jar are missing
    """
    options = copy.deepcopy(options)
    platform = platform or Platform.current()
    platform = platform.with_features(
        has_custom_resolution=options.get("customResolution", False),
        is_demo_user=options.get("demo", False),
    )

    descriptor = resolve(version_id, layout)
    if not descriptor.main_class:
        raise DescriptorError(version_id, "no mainClass in the inheritance chain")

    # Loader profiles only list what they add, so the templates of the whole chain are used
    structured = descriptor.argument_chain if descriptor.legacy_arguments is None else ()

    libraries = assemble(descriptor, layout, platform)
    if not requests_module_path(structured):
        # The main class is loaded from the classpath and would not see jars on a module path
        libraries = libraries.without_modules()
    natives_directory = layout.natives_dir(instance_id)
    extract_natives(descriptor, layout.libraries_dir, natives_directory, platform)

    game_directory = Path(options.get("gameDirectory", layout.instance_dir(instance_id)))
    game_directory.mkdir(parents=True, exist_ok=True)

    classpath = libraries.classpath_string(platform.os_name)
    variables = get_variables(
        descriptor,
        layout,
        options,
        classpath,
        str(natives_directory),
        str(game_directory),
        platform.os_name,
    )

    if "executablePath" in options:
        java_exec = options["executablePath"]
    elif descriptor.java_version is not None:
        java_exec = get_executable_path(layout, descriptor.java_version) or "java"
    else:
        java_exec = "java"

    jvm_args: list[str] = []
    if "memoryMb" in options:
        memory = int(options["memoryMb"])
        jvm_args += [f"-Xmx{memory}M", f"-Xms{memory // 2}M"]
    jvm_args += options.get("jvmArguments", [])
    for templates in structured:
        jvm_args += render(templates.jvm, variables, platform)

    # Old descriptors and most loader profiles don't set these themselves
    if "-cp" not in jvm_args and "-classpath" not in jvm_args:
        if not any(a.startswith("-Djava.library.path=") for a in jvm_args):
            jvm_args.append(f"-Djava.library.path={natives_directory}")
        jvm_args += ["-cp", classpath]
    if libraries.modulepath and "-p" not in jvm_args and "--module-path" not in jvm_args:
        jvm_args += ["-p", libraries.modulepath_string(platform.os_name)]

    if descriptor.legacy_arguments is not None:
        game_args = render(split_legacy(descriptor.legacy_arguments), variables, platform)
        if options.get("customResolution", False):
            game_args += ["--width", variables.get("resolution_width", "854")]
            game_args += ["--height", variables.get("resolution_height", "480")]
        if options.get("demo", False):
            game_args.append("--demo")
    else:
        game_args = []
        for templates in structured:
            game_args += render(templates.game, variables, platform)

    if "server" in options:
        game_args += ["--server", options["server"]]
        if "port" in options:
            game_args += ["--port", options["port"]]

    return LaunchCommand(
        executable=str(java_exec),
        jvm_args=dedupe_arguments(jvm_args),
        main_class=descriptor.main_class,
        game_args=dedupe_arguments(game_args),
        working_dir=game_directory,
    )
