import hashlib
import json
import threading
import time

import httpx
import pytest

from aureate_lib import download
from aureate_lib.download import CancelToken, DownloadPool, DownloadTask, Downloader, looks_like_html
from aureate_lib.exceptions import CorruptArtifact, InstallationCancelled, InvalidChecksum, NetworkError


def _sha1(content):
    return hashlib.sha1(content).hexdigest()


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []
    monkeypatch.setattr(download.time, "sleep", recorded.append)
    return recorded


def _flaky(failures, content, status=500):
    """A route that fails ``failures`` times before it answers with content."""
    calls = {"count": 0}

    def respond(request):
        calls["count"] += 1
        if calls["count"] <= failures:
            return httpx.Response(status, content=b"oops")
        return httpx.Response(200, content=content)

    return respond


def test_retry_delays_double(router, sleeps, tmp_path):

    router.add("https://files.example/a.bin", _flaky(2, b"payload"))
    downloader = Downloader(router.client(), retries=3, retry_delay=1.0)

    path = downloader.fetch("https://files.example/a.bin", tmp_path / "a.bin")

    assert path.read_bytes() == b"payload"
    assert router.count("https://files.example/a.bin") == 3
    assert sleeps == [1.0, 2.0]


def test_network_error_after_last_attempt(router, sleeps, tmp_path):

    router.add("https://files.example/a.bin", 503)
    downloader = Downloader(router.client(), retries=4, retry_delay=0.5)

    with pytest.raises(NetworkError) as excinfo:
        downloader.fetch("https://files.example/a.bin", tmp_path / "a.bin")

    assert router.count("https://files.example/a.bin") == 4
    assert sleeps == [0.5, 1.0, 2.0]
    assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)
    assert excinfo.value.cause is excinfo.value.__cause__
    assert not (tmp_path / "a.bin").exists()


def test_task_retries_override_downloader(router, sleeps, tmp_path):

    router.add("https://files.example/a.bin", 503)
    downloader = Downloader(router.client(), retries=3)

    with pytest.raises(NetworkError):
        downloader.fetch_task(DownloadTask("https://files.example/a.bin", tmp_path / "a.bin", max_retries=1))
    assert router.count("https://files.example/a.bin") == 1
    assert sleeps == []

    with pytest.raises(NetworkError):
        downloader.fetch_task(DownloadTask("https://files.example/a.bin", tmp_path / "a.bin", max_retries=0))
    assert router.count("https://files.example/a.bin") == 1


def test_checksum_mismatch_deletes_file(router, sleeps, tmp_path):

    router.add("https://files.example/a.bin", b"wrong content")
    downloader = Downloader(router.client(), retries=2)
    task = DownloadTask("https://files.example/a.bin", tmp_path / "a.bin", _sha1(b"right content"), max_retries=2)

    with pytest.raises(NetworkError) as excinfo:
        downloader.fetch_task(task)

    assert isinstance(excinfo.value.__cause__, InvalidChecksum)
    assert isinstance(excinfo.value.__cause__, CorruptArtifact)
    assert task.attempts == 2
    assert not task.dest.exists()


def test_empty_file_is_retried(router, sleeps, tmp_path):
    # The first answer is an empty 200
    router.add("https://files.example/a.bin", _empty_then(b"data"))
    downloader = Downloader(router.client())

    assert downloader.fetch("https://files.example/a.bin", tmp_path / "a.bin").read_bytes() == b"data"
    assert router.count("https://files.example/a.bin") == 2


def _empty_then(content):
    calls = {"count": 0}

    def respond(request):
        calls["count"] += 1
        return httpx.Response(200, content=b"" if calls["count"] == 1 else content)

    return respond


def test_html_is_rejected_and_exact_bytes_are_stored(router, sleeps, tmp_path):

    document = b'{"id": "1.20.1",  "type": "release"}\n'
    calls = {"count": 0}

    def respond(request):
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(200, content=b"<!DOCTYPE html><html><body>Rate limited</body></html>")
        if calls["count"] == 2:
            return httpx.Response(200, content=b'{"id": ')
        return httpx.Response(200, content=document)

    router.add("https://meta.example/1.20.1.json", respond)
    downloader = Downloader(router.client(), retries=3)
    dest = tmp_path / "versions" / "1.20.1.json"

    result = downloader.fetch_json("https://meta.example/1.20.1.json", dest)

    assert result == {"id": "1.20.1", "type": "release"}
    assert dest.read_bytes() == document
    assert calls["count"] == 3


def test_get_json_gives_up_on_html(router, sleeps):
    router.add("https://meta.example/list.json", b"<html><body>maintenance</body></html>")
    downloader = Downloader(router.client(), retries=2)
    with pytest.raises(NetworkError) as excinfo:
        downloader.get_json("https://meta.example/list.json")
    assert isinstance(excinfo.value.__cause__, CorruptArtifact)


def test_looks_like_html():
    assert looks_like_html(b"  <!doctype html><html></html>")
    assert looks_like_html(b"<HTML>")
    assert not looks_like_html(json.dumps({"html": "<html>"}).encode())


def test_pool_limits_concurrency(router, tmp_path):

    lock = threading.Lock()
    state = {"in_flight": 0, "max": 0}

    def respond(request):
        with lock:
            state["in_flight"] += 1
            state["max"] = max(state["max"], state["in_flight"])
        time.sleep(0.01)
        with lock:
            state["in_flight"] -= 1
        return httpx.Response(200, content=request.url.path.encode())

    tasks = []
    for i in range(100):
        url = f"https://resources.example/{i:02x}/{i}"
        router.add(url, respond)
        tasks.append(DownloadTask(url, tmp_path / "objects" / str(i)))

    progress = []
    downloader = Downloader(router.client(), max_workers=20)

    completed = downloader.fetch_all(tasks, {"setProgress": progress.append})

    assert completed == 100
    assert state["max"] <= 20
    assert len(router.requests) == 100
    assert progress == sorted(progress)
    assert progress[-1] == 100
    assert all(task.dest.is_file() for task in tasks)


def test_fetch_all_skips_present_files(router, tmp_path):

    content = b"asset"
    dest = tmp_path / "a"
    dest.write_bytes(content)
    router.add("https://resources.example/a", content)
    downloader = Downloader(router.client())

    assert downloader.fetch_all([DownloadTask("https://resources.example/a", dest, _sha1(content))]) == 1
    assert router.requests == []


def test_pool_stops_after_failure():

    started = []

    def work(item):
        started.append(item)
        if item == 0:
            raise ValueError("broken")

    with pytest.raises(ValueError):
        DownloadPool(max_workers=1).run(work, range(50))

    assert len(started) < 50


def test_cancelled_before_start(router, tmp_path):

    cancel = CancelToken()
    cancel.cancel()
    router.add("https://resources.example/a", b"a")
    downloader = Downloader(router.client(), cancel=cancel)

    with pytest.raises(InstallationCancelled):
        downloader.fetch_all([DownloadTask("https://resources.example/a", tmp_path / "a")])
    assert router.requests == []


def test_cancel_during_stream_removes_partial_file(router, tmp_path):

    cancel = CancelToken()

    def respond(request):
        cancel.cancel()
        return httpx.Response(200, content=b"x" * (1024 * 256))

    router.add("https://files.example/big.bin", respond)
    downloader = Downloader(router.client(), cancel=cancel)

    with pytest.raises(InstallationCancelled):
        downloader.fetch("https://files.example/big.bin", tmp_path / "big.bin")
    assert not (tmp_path / "big.bin").exists()
    assert router.count("https://files.example/big.bin") == 1
