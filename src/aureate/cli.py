import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Optional, Sequence

from aureate.config import CONFIG_FILE_NAME, LAUNCHER_NAME, LAUNCHER_VERSION, APPDATA_FOLDER, LauncherContext, setup_logging
from aureate.events import EventStream, ProgressEvent, StageEvent
from aureate.game import launch
from aureate.pipeline import InstallationPipeline, ModpackSpec, read_installed_flag
from aureate_lib.command import build_launch_command
from aureate_lib.exceptions import LauncherError
from aureate_lib.types import LaunchOptions


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aureate", description=f"{LAUNCHER_NAME} {LAUNCHER_VERSION}")
    parser.add_argument(
        "--root",
        type=Path,
        default=APPDATA_FOLDER / ".minecraft",
        help="The launcher directory, its config.json is read if present",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    install = subparsers.add_parser("install", help="Install a modpack")
    install.add_argument("modpack", type=Path, help="Path to the modpack json")

    run = subparsers.add_parser("launch", help="Start an installed modpack")
    run.add_argument("modpack", type=Path, help="Path to the modpack json")
    run.add_argument("--username", required=True)
    run.add_argument("--uuid")
    run.add_argument("--token")
    run.add_argument("--width", type=int)
    run.add_argument("--height", type=int)
    run.add_argument("--server")
    run.add_argument("--port")
    return parser


def _print_events(events: EventStream) -> None:
    for event in events:
        if isinstance(event, ProgressEvent):
            print(f"{event.stage}: {event.percent}%")
        elif isinstance(event, StageEvent):
            line = f"{event.stage}: {event.status.value}"
            if event.error:
                line += f" ({event.error})"
            if event.warning:
                line += f" [warning: {event.warning}]"
            print(line)


def install_command(context: LauncherContext, modpack: Path) -> int:
    spec = ModpackSpec.load(modpack)
    events = EventStream()
    printer = threading.Thread(target=_print_events, args=(events,), daemon=True)
    printer.start()
    pipeline = InstallationPipeline(context, events=events)
    try:
        job = pipeline.install(spec)
    finally:
        pipeline.downloader.close()
        printer.join()
    print(f"Installed {spec.id} as {job.version_id}")
    return 0


def launch_command(context: LauncherContext, args: argparse.Namespace) -> int:
    spec = ModpackSpec.load(args.modpack)
    installed = read_installed_flag(context, spec.id)
    if installed is None:
        print(f"{spec.id} is not installed, run the install command first", file=sys.stderr)
        return 1

    options: LaunchOptions = {
        "username": args.username,
        "launcherName": context.launcher_name,
        "launcherVersion": context.launcher_version,
        "memoryMb": context.memory_mb,
        "jvmArguments": context.jvm_args,
    }
    java_path = context.java_path or installed.get("java_path")
    if java_path:
        options["executablePath"] = java_path
    if args.uuid:
        options["uuid"] = args.uuid
    if args.token:
        options["token"] = args.token
    if args.width and args.height:
        options["customResolution"] = True
        options["resolutionWidth"] = str(args.width)
        options["resolutionHeight"] = str(args.height)
    if args.server:
        options["server"] = args.server
        if args.port:
            options["port"] = args.port

    version_id = installed["version_id"]
    command = build_launch_command(context.layout, version_id, spec.id, options, context.platform)
    game = launch(context, command, spec.id, version_id)
    print(f"Started {spec.id} (pid {game.pid}), log: {game.log_path}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging(args.root)
    context = LauncherContext.load(args.root / CONFIG_FILE_NAME)
    logging.info(f"Launcher version: {LAUNCHER_VERSION}")
    logging.info(f"Launcher directory: {context.root}")
    try:
        if args.command == "install":
            return install_command(context, args.modpack)
        return launch_command(context, args)
    except LauncherError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
