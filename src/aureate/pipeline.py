import json
import logging
import os
import threading
from contextlib import nullcontext
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from aureate.config import LauncherContext
from aureate.content import ModFile, install_content, is_content_installed
from aureate.events import EventStream, ProgressEvent, StageEvent, StageStatus
from aureate_lib.descriptor import load_descriptor
from aureate_lib.download import CancelToken, Downloader
from aureate_lib.exceptions import InstallationCancelled, StageFailure
from aureate_lib.fabric import fabric_version_id, find_installed_fabric, install_fabric
from aureate_lib.forge import find_installed_forge, forge_to_installed_version, install_forge_version
from aureate_lib.install import install_minecraft_version, is_version_installed
from aureate_lib.runtime import get_executable_path, install_java_runtime, required_java_version
from aureate_lib.types import CallbackDict


class LoaderKind(str, Enum):
    NONE = "none"
    FABRIC = "fabric"
    FORGE = "forge"


class Stage(str, Enum):
    RUNTIME = "runtime"
    BASE_GAME = "base-game"
    MODLOADER = "modloader"
    CONTENT = "content"


@dataclass
class ModpackSpec:
    id: str
    minecraft_version: str
    loader: LoaderKind = LoaderKind.NONE
    loader_version: Optional[str] = None
    java_version: Optional[int] = None
    mods: list[ModFile] = field(default_factory=list)
    archive_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ModpackSpec":
        java_version = data.get("java_version")
        return cls(
            id=data["id"],
            minecraft_version=data.get("minecraft_version") or data["minecraft"],
            loader=LoaderKind(str(data.get("loader") or "none").lower()),
            loader_version=data.get("loader_version"),
            java_version=int(java_version) if java_version is not None else None,
            mods=[ModFile.from_dict(mod) for mod in data.get("mods", [])],
            archive_url=data.get("archive_url"),
        )

    @classmethod
    def load(cls, path: str | os.PathLike) -> "ModpackSpec":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))


@dataclass
class StageState:
    stage: Stage
    status: StageStatus = StageStatus.PENDING
    error: Optional[str] = None
    warning: Optional[str] = None


@dataclass
class InstallationJob:
    target_id: str
    stages: list[StageState]
    version_id: Optional[str] = None
    java_path: Optional[str] = None
    installed: bool = False

    def state(self, stage: Stage) -> StageState:
        for state in self.stages:
            if state.stage == stage:
                return state
        raise KeyError(stage)


def read_installed_flag(context: LauncherContext, instance_id: str) -> Optional[dict]:
    """Returns the content of the installed flag of an instance, or None if it was never installed completely."""
    path = context.layout.installed_flag(instance_id)
    if not path.is_file():
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class InstallationPipeline:
    """
    Installs a modpack in four stages: the Java runtime, the base game, the modloader and the mods.

    Every stage first checks locally whether its work is already done and is skipped without any
    request if it is. Progress and stage changes are emitted on ``events``.
    """

    def __init__(
        self,
        context: LauncherContext,
        downloader: Optional[Downloader] = None,
        events: Optional[EventStream] = None,
        cancel: Optional[CancelToken] = None,
    ) -> None:
        self.context = context
        self.layout = context.layout
        if downloader is None:
            downloader = context.create_downloader(cancel=cancel)
        elif cancel is not None:
            downloader.cancel = cancel
        self.downloader = downloader
        self.cancel = downloader.cancel
        self.events = events or EventStream()

    def _callback(self, stage: Stage) -> CallbackDict:
        """Turns the count based callbacks of aureate_lib into percent events that never go backwards."""
        progress = {"max": 0, "percent": 0}

        def set_status(status: str) -> None:
            logging.info(f"[{stage.value}] {status}")

        def set_max(value: int) -> None:
            progress["max"] = value

        def set_progress(value: int) -> None:
            if progress["max"] <= 0:
                return
            percent = min(100, value * 100 // progress["max"])
            if percent > progress["percent"]:
                progress["percent"] = percent
                self.events.emit(ProgressEvent(stage.value, percent))

        return {"setStatus": set_status, "setMax": set_max, "setProgress": set_progress}

    def _java_version(self, spec: ModpackSpec) -> int:
        if spec.java_version is not None:
            return spec.java_version
        if self.layout.version_json(spec.minecraft_version).is_file():
            major = load_descriptor(spec.minecraft_version, self.layout).java_version
            if major is not None:
                return major
        return required_java_version(spec.minecraft_version)

    def _install_runtime(self, job: InstallationJob, spec: ModpackSpec, callback: CallbackDict) -> Optional[str]:
        if self.context.java_path:
            job.java_path = self.context.java_path
            return None
        major = self._java_version(spec)
        with self.context.version_lock(f"java-{major}"):
            job.java_path = get_executable_path(self.layout, major)
            if job.java_path is None:
                job.java_path = install_java_runtime(major, self.layout, self.downloader, self.context.platform, callback)
        return None

    def _install_base_game(self, job: InstallationJob, spec: ModpackSpec, callback: CallbackDict) -> Optional[str]:
        job.version_id = spec.minecraft_version
        if is_version_installed(spec.minecraft_version, self.layout, self.context.platform):
            return None
        install_minecraft_version(spec.minecraft_version, self.layout, self.downloader, self.context.platform, callback)
        return None

    def _install_modloader(self, job: InstallationJob, spec: ModpackSpec, callback: CallbackDict) -> Optional[str]:
        mc = spec.minecraft_version
        platform = self.context.platform
        if spec.loader == LoaderKind.FABRIC:
            if spec.loader_version is not None:
                existing = fabric_version_id(mc, spec.loader_version)
                if not is_version_installed(existing, self.layout, platform):
                    existing = None
            else:
                existing = find_installed_fabric(mc, self.layout, platform)
            job.version_id = existing or install_fabric(
                mc, self.layout, self.downloader, spec.loader_version, platform, callback
            )
            return None

        if spec.loader == LoaderKind.FORGE:
            if spec.loader_version is not None:
                existing = forge_to_installed_version(mc, spec.loader_version)
                if not is_version_installed(existing, self.layout, platform):
                    existing = None
            else:
                existing = find_installed_forge(mc, self.layout, platform)
            if existing is not None:
                job.version_id = existing
                return None
            result = install_forge_version(
                mc, self.layout, self.downloader, spec.loader_version, platform, job.java_path, callback
            )
            job.version_id = result.version_id
            return result.warning

        return None

    def _install_content(self, job: InstallationJob, spec: ModpackSpec, callback: CallbackDict) -> Optional[str]:
        if not spec.mods and not spec.archive_url:
            return None
        if is_content_installed(spec.id, self.layout, spec.mods, spec.archive_url):
            return None
        install_content(spec.id, self.layout, self.downloader, spec.mods, spec.archive_url, callback)
        return None

    def _run_stage(
        self,
        job: InstallationJob,
        state: StageState,
        spec: ModpackSpec,
        runner: Callable[[InstallationJob, ModpackSpec, CallbackDict], Optional[str]],
        lock: Optional[threading.Lock] = None,
    ) -> None:
        stage = state.stage
        state.status = StageStatus.RUNNING
        self.events.emit(StageEvent(stage.value, StageStatus.RUNNING))
        try:
            self.cancel.raise_if_cancelled()
            with lock or nullcontext():
                state.warning = runner(job, spec, self._callback(stage))
        except InstallationCancelled as e:
            state.status = StageStatus.FAILED
            state.error = str(e)
            self.events.emit(StageEvent(stage.value, StageStatus.FAILED, error=state.error))
            logging.info(f"Installation of {spec.id} cancelled during {stage.value}")
            raise
        except Exception as e:
            state.status = StageStatus.FAILED
            state.error = str(e)
            self.events.emit(StageEvent(stage.value, StageStatus.FAILED, error=state.error))
            logging.error(f"Stage {stage.value} of {spec.id} failed: {e}", exc_info=True)
            raise StageFailure(stage.value, e) from e

        if state.warning:
            logging.warning(f"Stage {stage.value} of {spec.id}: {state.warning}")
        state.status = StageStatus.DONE
        self.events.emit(ProgressEvent(stage.value, 100))
        self.events.emit(StageEvent(stage.value, StageStatus.DONE, warning=state.warning))

    def _write_installed_flag(self, job: InstallationJob, spec: ModpackSpec, previous: Optional[bytes]) -> None:
        path = self.layout.installed_flag(spec.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "id": spec.id,
            "version_id": job.version_id,
            "minecraft_version": spec.minecraft_version,
            "loader": spec.loader.value,
            "java_path": job.java_path,
        }
        if previous is not None:
            try:
                old = json.loads(previous)
            except ValueError:
                old = None
            # An unchanged installation keeps its flag as it was
            if isinstance(old, dict) and {k: v for k, v in old.items() if k != "installed_at"} == data:
                path.write_bytes(previous)
                return
        data["installed_at"] = datetime.now(timezone.utc).isoformat()
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=4)

    def install(self, spec: ModpackSpec) -> InstallationJob:
        """
        Run every stage of the installation. The installed flag is only written when all of them succeed.

        :raises StageFailure: A stage failed, the original error is its cause
        :raises InstallationCancelled: The cancel token was triggered
        """
        job = InstallationJob(spec.id, [StageState(stage) for stage in Stage])
        runners = {
            Stage.RUNTIME: self._install_runtime,
            Stage.BASE_GAME: self._install_base_game,
            Stage.MODLOADER: self._install_modloader,
            Stage.CONTENT: self._install_content,
        }

        # Base game and loader files are shared by every instance on the same Minecraft version
        shared = self.context.version_lock(spec.minecraft_version)
        locks = {Stage.BASE_GAME: shared, Stage.MODLOADER: shared}

        with self.context.instance_lock(spec.id):
            logging.info(f"Installing {spec.id} (Minecraft {spec.minecraft_version}, loader {spec.loader.value})")
            try:
                flag = self.layout.installed_flag(spec.id)
                previous = None
                if flag.is_file():
                    previous = flag.read_bytes()
                    flag.unlink()
                for state in job.stages:
                    self.events.emit(StageEvent(state.stage.value, StageStatus.PENDING))
                for state in job.stages:
                    self._run_stage(job, state, spec, runners[state.stage], locks.get(state.stage))
                self._write_installed_flag(job, spec, previous)
                job.installed = True
                logging.info(f"{spec.id} installed as {job.version_id}")
            finally:
                self.events.close()
        return job
