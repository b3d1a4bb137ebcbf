import io
import os
import tarfile

import httpx
import pytest

from aureate_lib import runtime
from aureate_lib.download import Downloader
from aureate_lib.exceptions import PlatformNotSupported, VersionNotFound
from aureate_lib.rules import Platform
from aureate_lib.runtime import get_executable_path, install_java_runtime, required_java_version


@pytest.mark.parametrize("version, expected", [
    ("1.8.9", 8),
    ("1.16.5", 8),
    ("1.17.1", 16),
    ("1.18", 17),
    ("1.20.4", 17),
    ("1.20.5", 21),
    ("1.21", 21),
    ("2.0", 21),
    ("24w14a", 17),
])
def test_required_java_version(version, expected):
    assert required_java_version(version) == expected


def _jre_tarball():
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tf:
        content = b"#!/bin/sh\necho java\n"
        info = tarfile.TarInfo("zulu17.48.15-ca-jre17.0.10-linux_x64/bin/java")
        info.size = len(content)
        info.mode = 0o644
        tf.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def _azul_url(major, platform):
    return str(httpx.URL(runtime.AZUL_API, params=runtime._azul_params(major, platform)))


def test_install_java_runtime(router, layout, linux):

    download_url = "https://cdn.azul.example/zulu/bin/zulu17.48.15-ca-jre17.0.10-linux_x64.tar.gz"
    router.add_json(_azul_url(17, linux), [{"download_url": download_url, "java_version": [17, 0, 10]}])
    router.add(download_url, _jre_tarball())
    downloader = Downloader(router.client(), retry_delay=0)

    java = install_java_runtime(17, layout, downloader, linux)

    assert java == str(layout.java_runtime(17) / "bin" / "java")
    assert os.access(java, os.X_OK)
    assert (layout.java_runtime(17) / ".version").read_text(encoding="utf-8") == "17.0.10"
    assert not list(layout.runtime_dir.glob("*.tar.gz"))
    assert get_executable_path(layout, 17) == java

    router.requests.clear()
    assert install_java_runtime(17, layout, downloader, linux) == java
    assert router.requests == []


def test_no_runtime_available(router, layout, linux):
    router.add_json(_azul_url(11, linux), [])
    with pytest.raises(VersionNotFound):
        install_java_runtime(11, layout, Downloader(router.client()), linux)


def test_unsupported_platform(router, layout):
    with pytest.raises(PlatformNotSupported):
        install_java_runtime(17, layout, Downloader(router.client()), Platform("linux", "x86"))
    assert router.requests == []
