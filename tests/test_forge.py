import io
import json
import zipfile

import pytest

from aureate_lib.download import Downloader
from aureate_lib.exceptions import VersionNotFound
from aureate_lib.forge import (
    FORGE_DOWNLOAD_URL,
    FORGE_PROMOTIONS_URL,
    get_promoted_forge_version,
    install_forge_version,
    write_manual_forge_version,
)
from aureate_lib.install import is_version_installed


def _installer(profile, files):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("install_profile.json", json.dumps(profile))
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def _base_game(write_descriptor, touch, layout, version="1.12.2"):
    write_descriptor({
        "id": version,
        "mainClass": "net.minecraft.client.main.Main",
        "minecraftArguments": "--username ${auth_player_name}",
        "libraries": [],
    })
    touch(layout.version_jar(version))


def test_promoted_version(router):

    router.add_json(FORGE_PROMOTIONS_URL, {"promos": {
        "1.20.1-latest": "47.2.20",
        "1.20.1-recommended": "47.2.0",
        "1.20.4-latest": "49.0.30",
    }})
    downloader = Downloader(router.client())

    assert get_promoted_forge_version("1.20.1", downloader) == "47.2.0"
    assert get_promoted_forge_version("1.20.4", downloader) == "49.0.30"
    with pytest.raises(VersionNotFound):
        get_promoted_forge_version("1.5.2", downloader)


def test_legacy_installer(router, layout, write_descriptor, touch, linux):

    _base_game(write_descriptor, touch, layout)
    coordinate = "net.minecraftforge:forge:1.12.2-14.23.5.2860"
    router.add(FORGE_DOWNLOAD_URL.format(version="1.12.2-14.23.5.2860"), _installer(
        {
            "install": {"target": "1.12.2-forge-14.23.5.2860"},
            "versionInfo": {
                "id": "1.12.2-forge-14.23.5.2860",
                "inheritsFrom": "1.12.2",
                "mainClass": "net.minecraft.launchwrapper.Launch",
                "minecraftArguments": "--username ${auth_player_name} --tweakClass net.minecraftforge.fml.common.launcher.FMLTweaker",
                "libraries": [{"name": coordinate}],
            },
        },
        {"maven/net/minecraftforge/forge/1.12.2-14.23.5.2860/forge-1.12.2-14.23.5.2860.jar": b"forge universal"},
    ))

    result = install_forge_version("1.12.2", layout, Downloader(router.client()), "14.23.5.2860", linux)

    assert result.version_id == "1.12.2-forge-14.23.5.2860"
    assert result.warning is None
    assert layout.library_path(coordinate).read_bytes() == b"forge universal"
    assert is_version_installed(result.version_id, layout, linux)


def test_broken_installer_falls_back(router, layout, write_descriptor, touch, linux):

    _base_game(write_descriptor, touch, layout)
    router.add(FORGE_DOWNLOAD_URL.format(version="1.12.2-14.23.5.2860"), b"not a jar")

    result = install_forge_version("1.12.2", layout, Downloader(router.client()), "14.23.5.2860", linux)

    assert result.version_id == "1.12.2-forge-14.23.5.2860"
    assert result.warning is not None
    assert is_version_installed(result.version_id, layout, linux)


def test_manual_version_keeps_existing_jar(layout, write_descriptor, touch):

    _base_game(write_descriptor, touch, layout, "1.20.1")
    jar = touch(layout.library_path("net.minecraftforge:forge:1.20.1-47.2.0"), b"real forge")

    version_id = write_manual_forge_version("1.20.1", "47.2.0", layout)

    with open(layout.version_json(version_id), "r", encoding="utf-8") as f:
        descriptor = json.load(f)
    assert descriptor["mainClass"] == "net.minecraft.client.main.Main"
    assert "arguments" not in descriptor
    assert jar.read_bytes() == b"real forge"
