import logging
import os
import shutil
from dataclasses import dataclass
from typing import Optional, Sequence

import httpx

from aureate_lib._helper import empty, is_file_present
from aureate_lib.archive import extract_and_normalize
from aureate_lib.download import Downloader, DownloadTask
from aureate_lib.layout import InstanceLayout
from aureate_lib.types import CallbackDict

ARCHIVE_MARKER = ".archive"


@dataclass(frozen=True)
class ModFile:
    name: str
    url: str
    file_name: str
    sha1: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ModFile":
        url = data["url"]
        file_name = data.get("file_name") or os.path.basename(httpx.URL(url).path)
        return cls(
            name=data.get("name", file_name),
            url=url,
            file_name=file_name,
            sha1=data.get("sha1"),
        )


def _mod_tasks(mods: Sequence[ModFile], layout: InstanceLayout, instance_id: str) -> list[DownloadTask]:
    mods_dir = layout.mods_dir(instance_id)
    return [DownloadTask(mod.url, mods_dir / os.path.basename(mod.file_name), mod.sha1) for mod in mods]


def _read_marker(layout: InstanceLayout, instance_id: str) -> Optional[str]:
    marker = layout.instance_dir(instance_id) / ARCHIVE_MARKER
    if not marker.is_file():
        return None
    return marker.read_text(encoding="utf-8").strip()


def is_content_installed(
    instance_id: str,
    layout: InstanceLayout,
    mods: Sequence[ModFile],
    archive_url: Optional[str] = None,
    verify_hashes: bool = False,
) -> bool:
    """Check without network access that every mod is in place and the archive was extracted."""
    if archive_url and _read_marker(layout, instance_id) != archive_url:
        return False
    return all(
        is_file_present(task.dest, task.sha1 if verify_hashes else None)
        for task in _mod_tasks(mods, layout, instance_id)
    )


def install_content(
    instance_id: str,
    layout: InstanceLayout,
    downloader: Downloader,
    mods: Sequence[ModFile] = (),
    archive_url: Optional[str] = None,
    callback: Optional[CallbackDict] = None,
) -> None:
    """
    Download the mods of an instance into its mods folder and unpack its archive into the instance folder.
    The archive is only extracted again when its URL changed.
    """
    callback = callback or {}
    instance_dir = layout.instance_dir(instance_id)
    instance_dir.mkdir(parents=True, exist_ok=True)

    tasks = _mod_tasks(mods, layout, instance_id)
    if archive_url and _read_marker(layout, instance_id) != archive_url:
        download_dir = instance_dir / ".download"
        archive_path = download_dir / os.path.basename(httpx.URL(archive_url).path)
        tasks.append(DownloadTask(archive_url, archive_path))
    else:
        archive_path = None

    callback.get("setStatus", empty)("Downloading mods")
    downloader.fetch_all(tasks, callback)

    if archive_path is not None:
        callback.get("setStatus", empty)("Extracting files")
        try:
            extract_and_normalize(archive_path, instance_dir)
        finally:
            shutil.rmtree(archive_path.parent, ignore_errors=True)
        with open(instance_dir / ARCHIVE_MARKER, "w", encoding="utf-8") as f:
            f.write(archive_url)
        logging.info(f"Extracted {archive_path.name} into {instance_dir}")

    logging.info(f"Installed {len(mods)} mods for {instance_id}")
