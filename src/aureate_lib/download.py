# This file is part of aureate-launcher
# SPDX-FileCopyrightText: Copyright (c) 2025 Aureate Launcher contributors
# SPDX-License-Identifier: BSD-2-Clause
"""
download contains the retrying file and JSON fetcher and the bounded worker pool used for bulk downloads.

Transient problems (connection errors, bad status codes, empty files, HTML error pages, broken JSON)
are retried here and never leave this module. Callers only see :class:`NetworkError` after the last
attempt, or :class:`InstallationCancelled`.
"""

import json
import logging
import os
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, TypeVar

import httpx

from ._helper import empty, get_sha1_hash, get_user_agent, is_file_present
from .exceptions import CorruptArtifact, InstallationCancelled, InvalidChecksum, NetworkError
from .types import CallbackDict

__all__ = ["CancelToken", "DownloadTask", "DownloadPool", "Downloader", "looks_like_html"]

T = TypeVar("T")

_CHUNK_SIZE = 1024 * 64


class CancelToken:
    """A flag that is checked between downloads and between chunks of a download."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise InstallationCancelled()


@dataclass
class DownloadTask:
    url: str
    dest: Path
    sha1: Optional[str] = None
    max_retries: int = 3
    attempts: int = 0


def looks_like_html(content: bytes) -> bool:
    """Check if a payload is an HTML page, which some hosts send with status 200 instead of an error."""
    head = content[:512].lstrip().lower()
    return head.startswith(b"<!doctype html") or head.startswith(b"<html")


def _remove(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


class DownloadPool:
    """
    Runs a function for many items with at most ``max_workers`` of them in flight.
    Submitting blocks while the pool is full, items are never dropped.
    """

    def __init__(self, max_workers: int = 20, cancel: Optional[CancelToken] = None) -> None:
        self.max_workers = max_workers
        self.cancel = cancel or CancelToken()

    def run(self, func: Callable[[T], Any], items: Iterable[T], callback: Optional[CallbackDict] = None) -> int:
        """
        Call ``func`` for every item and return the number of completed items.
        Progress is reported through ``setMax`` and ``setProgress`` of ``callback`` and only ever grows.
        After the first failure no new items are started and the error is raised once the running ones finish.
        """
        items = list(items)
        callback = callback or {}
        callback.get("setMax", empty)(len(items))

        slots = threading.BoundedSemaphore(self.max_workers)
        lock = threading.Lock()
        failed = threading.Event()
        errors: list[BaseException] = []
        completed = 0

        def on_done(future: Future) -> None:
            nonlocal completed
            try:
                error = future.exception()
                with lock:
                    if error is not None:
                        errors.append(error)
                        failed.set()
                        return
                    completed += 1
                    callback.get("setProgress", empty)(completed)
            finally:
                slots.release()

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for item in items:
                slots.acquire()
                if failed.is_set() or self.cancel.cancelled:
                    slots.release()
                    break
                executor.submit(func, item).add_done_callback(on_done)

        if errors:
            raise errors[0]
        self.cancel.raise_if_cancelled()
        return completed


class Downloader:
    """
    Fetches files and JSON documents over HTTP.

    :param session: The httpx client to use. A new one is created if not given
    :param retries: How many attempts every download gets
    :param retry_delay: The delay after the first failed attempt, it doubles after every further one
    :param max_workers: The size of the pool used by :meth:`fetch_all`
    :param verify_hashes: Check the sha1 of files that are already on disk before skipping them
    :param cancel: Token that aborts the running downloads
    """

    def __init__(
        self,
        session: Optional[httpx.Client] = None,
        retries: int = 3,
        retry_delay: float = 1.0,
        max_workers: int = 20,
        timeout: float = 60.0,
        verify_hashes: bool = True,
        cancel: Optional[CancelToken] = None,
    ) -> None:
        self.session = session or httpx.Client(
            follow_redirects=True,
            timeout=timeout,
            headers={"user-agent": get_user_agent()},
        )
        self.retries = retries
        self.retry_delay = retry_delay
        self.max_workers = max_workers
        self.verify_hashes = verify_hashes
        self.cancel = cancel or CancelToken()

    def _retry(
        self,
        url: str,
        attempt: Callable[[], T],
        cleanup: Callable[[], None] = empty,
        retries: Optional[int] = None,
        on_attempt: Callable[[], None] = empty,
    ) -> T:
        if retries is None:
            retries = self.retries
        last_error: Optional[BaseException] = None
        for count in range(retries):
            self.cancel.raise_if_cancelled()
            on_attempt()
            try:
                return attempt()
            except InstallationCancelled:
                cleanup()
                raise
            except (httpx.HTTPError, OSError, CorruptArtifact) as e:
                cleanup()
                last_error = e
                logging.info(f"Download of {url} failed (attempt {count + 1}/{retries}): {e}")
                if count < retries - 1:
                    time.sleep(self.retry_delay * 2**count)
        raise NetworkError(url, last_error) from last_error

    def _get(self, url: str) -> bytes:
        response = self.session.get(url)
        if response.status_code != 200:
            raise httpx.HTTPStatusError(
                f"HTTP {response.status_code} for {url}", request=response.request, response=response
            )
        return response.content

    def fetch(self, url: str, dest: str | os.PathLike, sha1: Optional[str] = None) -> Path:
        """
        Download url to dest. The partial file is deleted whenever an attempt fails.

        :raises NetworkError: Every attempt failed
        """
        return self.fetch_task(DownloadTask(url, Path(dest), sha1, self.retries))

    def fetch_task(self, task: DownloadTask) -> Path:
        url, path, sha1 = task.url, task.dest, task.sha1
        path.parent.mkdir(parents=True, exist_ok=True)

        def count_attempt() -> None:
            task.attempts += 1

        def attempt() -> Path:
            with self.session.stream("GET", url) as response:
                if response.status_code != 200:
                    raise httpx.HTTPStatusError(
                        f"HTTP {response.status_code} for {url}", request=response.request, response=response
                    )
                with open(path, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=_CHUNK_SIZE):
                        self.cancel.raise_if_cancelled()
                        f.write(chunk)
            if path.stat().st_size == 0:
                raise CorruptArtifact(path, "downloaded file is empty")
            if sha1 is not None:
                checksum = get_sha1_hash(path)
                if checksum != sha1:
                    raise InvalidChecksum(url, path, sha1, checksum)
            return path

        return self._retry(url, attempt, lambda: _remove(path), task.max_retries, count_attempt)

    def get_json(self, url: str) -> Any:
        """Fetch and parse a JSON document without storing it."""

        def attempt() -> Any:
            content = self._get(url)
            return self._parse_json(url, content)

        return self._retry(url, attempt)

    def fetch_json(self, url: str, dest: str | os.PathLike) -> Any:
        """
        Fetch a JSON document, store it at dest and return it parsed.
        The stored file contains exactly the bytes that were validated.

        :raises NetworkError: Every attempt failed
        """
        path = Path(dest)
        path.parent.mkdir(parents=True, exist_ok=True)

        def attempt() -> Any:
            content = self._get(url)
            document = self._parse_json(url, content)
            with open(path, "wb") as f:
                f.write(content)
            return document

        return self._retry(url, attempt, lambda: _remove(path))

    @staticmethod
    def _parse_json(url: str, content: bytes) -> Any:
        if not content.strip():
            raise CorruptArtifact(url, "empty response")
        if looks_like_html(content):
            raise CorruptArtifact(url, "received an HTML page instead of JSON")
        try:
            return json.loads(content)
        except ValueError as e:
            raise CorruptArtifact(url, f"malformed JSON: {e}") from e

    def ensure(self, url: str, dest: str | os.PathLike, sha1: Optional[str] = None) -> bool:
        """Download a file unless a valid copy is already present. Returns True if it was downloaded."""
        if is_file_present(dest, sha1 if self.verify_hashes else None):
            return False
        self.fetch(url, dest, sha1)
        return True

    def run_task(self, task: DownloadTask) -> bool:
        if is_file_present(task.dest, task.sha1 if self.verify_hashes else None):
            return False
        self.fetch_task(task)
        return True

    def fetch_all(self, tasks: Iterable[DownloadTask], callback: Optional[CallbackDict] = None) -> int:
        """Download many files through a pool of ``max_workers`` threads."""
        pool = DownloadPool(self.max_workers, self.cancel)
        return pool.run(self.run_task, tasks, callback)

    def close(self) -> None:
        self.session.close()
