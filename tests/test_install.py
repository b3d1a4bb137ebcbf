from aureate_lib.descriptor import LibraryEntry
from aureate_lib.install import is_version_installed, library_tasks
from aureate_lib.rules import Platform


def test_library_tasks(layout, linux):

    libraries = [
        LibraryEntry.from_dict({
            "name": "com.mojang:brigadier:1.1.8",
            "downloads": {"artifact": {
                "path": "com/mojang/brigadier/1.1.8/brigadier-1.1.8.jar",
                "url": "https://libraries.minecraft.net/com/mojang/brigadier/1.1.8/brigadier-1.1.8.jar",
                "sha1": "5244ce82c3337bba4a196a3ce858bfaecc74404a",
            }},
        }),
        LibraryEntry.from_dict({"name": "net.fabricmc:intermediary:1.20.1", "url": "https://maven.fabricmc.net/"}),
        LibraryEntry.from_dict({"name": "net.minecraftforge:forge:1.20.1-47.2.0"}),
        LibraryEntry.from_dict({
            "name": "ca.weblite:java-objc-bridge:1.1",
            "rules": [{"action": "allow", "os": {"name": "osx"}}],
            "downloads": {"artifact": {"path": "ca/weblite/java-objc-bridge/1.1/java-objc-bridge-1.1.jar", "url": "https://libraries.example/objc.jar"}},
        }),
        LibraryEntry.from_dict({
            "name": "org.lwjgl.lwjgl:lwjgl-platform:2.9.4",
            "natives": {"linux": "natives-linux", "windows": "natives-windows-${arch}"},
            "downloads": {"classifiers": {"natives-linux": {
                "path": "org/lwjgl/lwjgl/lwjgl-platform/2.9.4/lwjgl-platform-2.9.4-natives-linux.jar",
                "url": "https://libraries.example/lwjgl-platform-2.9.4-natives-linux.jar",
            }}},
        }),
    ]

    tasks = {task.url: task for task in library_tasks(libraries, layout, linux)}

    assert sorted(tasks) == [
        "https://libraries.example/lwjgl-platform-2.9.4-natives-linux.jar",
        "https://libraries.minecraft.net/com/mojang/brigadier/1.1.8/brigadier-1.1.8.jar",
        "https://maven.fabricmc.net/net/fabricmc/intermediary/1.20.1/intermediary-1.20.1.jar",
    ]
    brigadier = tasks["https://libraries.minecraft.net/com/mojang/brigadier/1.1.8/brigadier-1.1.8.jar"]
    assert brigadier.dest == layout.library_path("com.mojang:brigadier:1.1.8")
    assert brigadier.sha1 == "5244ce82c3337bba4a196a3ce858bfaecc74404a"

    # Natives for windows only exist as a classifier that is not in the downloads
    assert library_tasks(libraries[4:], layout, Platform("windows", "x86_64")) == []


def test_is_version_installed(layout, write_descriptor, touch, linux):

    assert not is_version_installed("1.20.1", layout, linux)
    write_descriptor({"id": "1.20.1", "assetIndex": {"id": "5"}, "libraries": []})
    touch(layout.version_jar("1.20.1"))
    assert not is_version_installed("1.20.1", layout, linux)

    touch(layout.asset_index("5"), b'{"objects": {}}')
    assert is_version_installed("1.20.1", layout, linux)
