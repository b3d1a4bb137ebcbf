from aureate_lib.descriptor import resolve
from aureate_lib.natives import extract_natives, find_native_archives
from aureate_lib.rules import Platform


def _descriptor(layout, write_descriptor, exclude=None):
    lib = {"name": "org.lwjgl:lwjgl:3.3.1"}
    if exclude:
        lib["extract"] = {"exclude": exclude}
    write_descriptor({"id": "1.20.1", "libraries": [lib]})
    return resolve("1.20.1", layout)


def test_extracts_platform_natives_flat(layout, write_descriptor, make_zip, linux, tmp_path):

    descriptor = _descriptor(layout, write_descriptor)
    libs = layout.libraries_dir
    make_zip(libs / "org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1-natives-linux.jar", {
        "linux/x64/org/lwjgl/liblwjgl.so": b"so",
        "META-INF/MANIFEST.MF": b"Manifest-Version: 1.0\n",
        "META-INF/native.so": b"ignored",
        "readme.txt": b"text",
    })
    make_zip(libs / "org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1-natives-windows.jar", {"lwjgl.dll": b"dll"})
    target = tmp_path / "natives"

    count = extract_natives(descriptor, libs, target, linux)

    assert count == 1
    assert sorted(p.name for p in target.iterdir()) == ["liblwjgl.so"]


def test_target_is_cleared(layout, write_descriptor, make_zip, linux, tmp_path):
    descriptor = _descriptor(layout, write_descriptor)
    make_zip(layout.libraries_dir / "x/natives-linux.jar", {"a.so": b"a"})
    target = tmp_path / "natives"
    target.mkdir()
    (target / "stale.so").write_bytes(b"old")

    extract_natives(descriptor, layout.libraries_dir, target, linux)

    assert sorted(p.name for p in target.iterdir()) == ["a.so"]


def test_extract_exclude(layout, write_descriptor, make_zip, linux, tmp_path):
    descriptor = _descriptor(layout, write_descriptor, exclude=["skip/"])
    make_zip(layout.libraries_dir / "x/thing-natives-linux.jar", {"skip/b.so": b"b", "keep/c.so": b"c"})
    target = tmp_path / "natives"

    assert extract_natives(descriptor, layout.libraries_dir, target, linux) == 1
    assert (target / "c.so").is_file()


def test_arch_suffix(layout, make_zip):

    libs = layout.libraries_dir
    arm = make_zip(libs / "a/lwjgl-3.3.1-natives-linux-arm64.jar", {"a.so": b"a"})
    x64 = make_zip(libs / "b/lwjgl-3.3.1-natives-linux.jar", {"b.so": b"b"})
    old64 = make_zip(libs / "c/twitch-natives-windows-64.jar", {"c.dll": b"c"})
    old32 = make_zip(libs / "d/twitch-natives-windows-32.jar", {"d.dll": b"d"})

    assert sorted(find_native_archives(libs, Platform("linux", "aarch64"))) == sorted([arm, x64])
    assert find_native_archives(libs, Platform("linux", "x86_64")) == [x64]
    assert find_native_archives(libs, Platform("windows", "amd64")) == [old64]
    assert find_native_archives(libs, Platform("windows", "x86")) == [old32]


def test_falls_back_to_all_archives(layout, write_descriptor, make_zip, tmp_path):
    descriptor = _descriptor(layout, write_descriptor)
    make_zip(layout.libraries_dir / "x/natives-linux.jar", {"a.so": b"a", "a.dylib": b"mac"})

    count = extract_natives(descriptor, layout.libraries_dir, tmp_path / "natives", Platform("osx", "arm64"))

    assert count == 1
    assert (tmp_path / "natives" / "a.dylib").is_file()


def test_broken_archive_is_skipped(layout, write_descriptor, make_zip, linux, tmp_path):
    descriptor = _descriptor(layout, write_descriptor)
    broken = layout.libraries_dir / "x/broken-natives-linux.jar"
    broken.parent.mkdir(parents=True)
    broken.write_bytes(b"this is not a zip")
    make_zip(layout.libraries_dir / "y/good-natives-linux.jar", {"good.so": b"g"})

    assert extract_natives(descriptor, layout.libraries_dir, tmp_path / "natives", linux) == 1


def test_plain_os_jar_is_hidden_by_arch_jar(layout, make_zip):

    folder = layout.libraries_dir / "org/lwjgl/lwjgl/3.3.1"
    plain = make_zip(folder / "lwjgl-3.3.1-natives-linux.jar", {"liblwjgl.so": b"x64"})
    arm = make_zip(folder / "lwjgl-3.3.1-natives-linux-arm64.jar", {"liblwjgl.so": b"arm64"})

    assert find_native_archives(layout.libraries_dir, Platform("linux", "aarch64")) == [arm]
    assert find_native_archives(layout.libraries_dir, Platform("linux", "x86_64")) == [plain]


def test_arm64_extracts_arch_jar(layout, write_descriptor, make_zip, tmp_path):

    write_descriptor({"id": "1.20.1", "libraries": [
        {"name": "org.lwjgl:lwjgl:3.3.1:natives-linux"},
        {"name": "org.lwjgl:lwjgl:3.3.1:natives-linux-arm64"},
    ]})
    descriptor = resolve("1.20.1", layout)
    folder = layout.libraries_dir / "org/lwjgl/lwjgl/3.3.1"
    make_zip(folder / "lwjgl-3.3.1-natives-linux.jar", {"linux/x64/liblwjgl.so": b"x64"})
    make_zip(folder / "lwjgl-3.3.1-natives-linux-arm64.jar", {"linux/arm64/liblwjgl.so": b"arm64"})
    target = tmp_path / "natives"

    assert extract_natives(descriptor, layout.libraries_dir, target, Platform("linux", "aarch64")) == 1
    assert (target / "liblwjgl.so").read_bytes() == b"arm64"


def test_own_version_wins_name_collision(layout, write_descriptor, make_zip, linux, tmp_path):

    write_descriptor({"id": "1.20.1", "libraries": [{"name": "org.lwjgl:lwjgl:3.3.1:natives-linux"}]})
    descriptor = resolve("1.20.1", layout)
    libs = layout.libraries_dir
    make_zip(libs / "org/lwjgl/lwjgl/3.2.2/lwjgl-3.2.2-natives-linux.jar", {"liblwjgl.so": b"3.2.2", "libextra.so": b"e"})
    make_zip(libs / "org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1-natives-linux.jar", {"liblwjgl.so": b"3.3.1"})
    target = tmp_path / "natives"

    assert extract_natives(descriptor, libs, target, linux) == 2
    assert (target / "liblwjgl.so").read_bytes() == b"3.3.1"
