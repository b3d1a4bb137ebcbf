import json
import logging
import os
import platform
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import psutil

from aureate_lib.download import CancelToken, Downloader
from aureate_lib.layout import InstanceLayout
from aureate_lib.rules import Platform
from aureate_lib.version import __version__

_COMPILED = getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS")

LAUNCHER_NAME = "Aureate Launcher"
LAUNCHER_VERSION = __version__ if _COMPILED else f"{__version__}-dev"

SYSTEM_OS = platform.system()

if SYSTEM_OS == "Windows":
    APPDATA_FOLDER = Path.home() / "AppData" / "Roaming"
elif SYSTEM_OS == "Darwin":
    APPDATA_FOLDER = Path.home() / "Library" / "Application Support"
else:
    APPDATA_FOLDER = Path.home() / ".local" / "share"

APPDATA_FOLDER /= "aureate"
CONFIG_FILE_NAME = "config.json"

JVM_ARGS = [
    "-XX:+UnlockExperimentalVMOptions",
    "-XX:+UseG1GC",
    "-XX:G1NewSizePercent=20",
    "-XX:MaxGCPauseMillis=50",
]

# IN MB
RAM_SIZE = psutil.virtual_memory().total // 1024 // 1024

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(module)s:%(funcName)s %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def setup_logging(root: Optional[Path] = None, frozen: bool = _COMPILED) -> None:
    if frozen:
        log_root = Path(root or APPDATA_FOLDER)
        log_root.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(
            filename=log_root / "launcher.log",
            level=logging.INFO,
            # make it more readable for the user
            format=LOG_FORMAT,
            datefmt=LOG_DATE_FORMAT,
        )
    else:
        logging.basicConfig(
            level=logging.INFO,
            format=LOG_FORMAT,
            datefmt=LOG_DATE_FORMAT,
        )
    logging.getLogger("httpx").setLevel(logging.ERROR)


@dataclass
class LauncherContext:
    """Everything the installer and the launcher need to know, passed explicitly to every component."""

    root: Path = APPDATA_FOLDER / ".minecraft"
    retries: int = 3
    retry_delay: float = 1.0
    max_workers: int = 20
    timeout: float = 60.0
    java_path: Optional[str] = None
    memory_mb: int = min(RAM_SIZE // 2, 4 * 1024)
    jvm_args: list[str] = field(default_factory=lambda: list(JVM_ARGS))
    verify_hashes: bool = True
    crash_grace: float = 3.0
    launcher_name: str = LAUNCHER_NAME
    launcher_version: str = LAUNCHER_VERSION
    platform: Platform = field(default_factory=Platform.current)

    _locks: dict[tuple[str, str], threading.Lock] = field(default_factory=dict, init=False, repr=False, compare=False)
    _locks_guard: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    @property
    def layout(self) -> InstanceLayout:
        return InstanceLayout(self.root)

    def _lock(self, kind: str, key: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault((kind, key), threading.Lock())

    def version_lock(self, version_id: str) -> threading.Lock:
        """The lock that serializes writes to the shared files of one version id."""
        return self._lock("version", version_id)

    def instance_lock(self, instance_id: str) -> threading.Lock:
        """The lock that serializes installations into one instance directory."""
        return self._lock("instance", instance_id)

    def create_downloader(self, session=None, cancel: Optional[CancelToken] = None) -> Downloader:
        return Downloader(
            session=session,
            retries=self.retries,
            retry_delay=self.retry_delay,
            max_workers=self.max_workers,
            timeout=self.timeout,
            verify_hashes=self.verify_hashes,
            cancel=cancel,
        )

    @classmethod
    def load(cls, path: str | os.PathLike) -> "LauncherContext":
        """Read a config.json. Missing keys keep their defaults, a missing file gives the defaults."""
        path = Path(path)
        context = cls(root=path.parent)
        if not path.exists():
            return context

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        context.root = Path(data.get("root", str(context.root)))
        context.retries = int(data.get("retries", context.retries))
        context.retry_delay = float(data.get("retry_delay", context.retry_delay))
        context.max_workers = int(data.get("max_workers", context.max_workers))
        context.timeout = float(data.get("timeout", context.timeout))
        context.java_path = data.get("java_path", context.java_path)
        context.memory_mb = int(data.get("memory_mb", context.memory_mb))
        context.jvm_args = list(data.get("jvm_args", context.jvm_args))
        context.verify_hashes = bool(data.get("verify_hashes", context.verify_hashes))
        context.crash_grace = float(data.get("crash_grace", context.crash_grace))
        context.launcher_name = data.get("launcher_name", context.launcher_name)
        context.launcher_version = data.get("launcher_version", context.launcher_version)
        return context

    def to_dict(self) -> dict:
        return {
            "root": str(self.root),
            "retries": self.retries,
            "retry_delay": self.retry_delay,
            "max_workers": self.max_workers,
            "timeout": self.timeout,
            "java_path": self.java_path,
            "memory_mb": self.memory_mb,
            "jvm_args": self.jvm_args,
            "verify_hashes": self.verify_hashes,
            "crash_grace": self.crash_grace,
            "launcher_name": self.launcher_name,
            "launcher_version": self.launcher_version,
        }

    def save(self, path: Optional[str | os.PathLike] = None) -> None:
        path = Path(path) if path is not None else self.root / CONFIG_FILE_NAME
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=4)
