from aureate_lib.rules import Platform, evaluate, normalize_arch, parse_rules


def test_empty_rules_allow():
    assert evaluate((), Platform("linux", "x86_64"))


def test_last_matching_rule_wins():

    rules = parse_rules([
        {"action": "allow"},
        {"action": "disallow", "os": {"name": "osx"}},
    ])

    assert evaluate(rules, Platform("linux", "x86_64"))
    assert evaluate(rules, Platform("windows", "x86_64"))
    assert not evaluate(rules, Platform("osx", "arm64"))


def test_no_matching_rule_disallows():
    rules = parse_rules([{"action": "allow", "os": {"name": "windows"}}])
    assert not evaluate(rules, Platform("linux", "x86_64"))
    assert evaluate(rules, Platform("windows", "x86_64"))


def test_arch_synonyms():

    assert normalize_arch("amd64") == normalize_arch("x86_64") == normalize_arch("x64")
    assert normalize_arch("aarch64") == normalize_arch("arm64")
    assert normalize_arch("x86") != normalize_arch("x86_64")

    rules = parse_rules([{"action": "allow", "os": {"arch": "x64"}}])
    assert evaluate(rules, Platform("windows", "AMD64"))
    assert not evaluate(rules, Platform("windows", "x86"))


def test_os_name_synonyms():
    assert Platform("macos", "arm64").os_name == "osx"
    assert Platform("Darwin", "arm64").os_name == "osx"


def test_os_version_regex():
    rules = parse_rules([
        {"action": "allow"},
        {"action": "disallow", "os": {"name": "osx", "version": "^10\\.5\\.\\d$"}},
    ])
    assert evaluate(rules, Platform("osx", "x86_64", "10.6.1"))
    assert not evaluate(rules, Platform("osx", "x86_64", "10.5.8"))


def test_features():

    rules = parse_rules([{"action": "allow", "features": {"has_custom_resolution": True}}])
    platform = Platform("linux", "x86_64")

    assert not evaluate(rules, platform)
    assert evaluate(rules, platform.with_features(has_custom_resolution=True))
    assert not evaluate(rules, platform.with_features(is_demo_user=True))
