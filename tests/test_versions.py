from bootstrapcli.versions import (
    SemanticVersion,
    ZERO,
    max_version,
    parse_forced_version,
    parse_version,
    pick_max,
)


def _mkdirs(root, *names):
    for n in names:
        (root / n).mkdir(parents=True)
    return root


def test_picks_highest_release(tmp_path):
    d = _mkdirs(tmp_path / "fw", "2.0.0", "2.0.1-preview1", "2.1.0")
    assert str(max_version(d)) == "2.1.0"


def test_missing_directory_is_zero(tmp_path):
    assert max_version(tmp_path / "nope") == ZERO
    assert str(max_version(tmp_path / "nope")) == "0.0.0"


def test_empty_directory_is_zero(tmp_path):
    d = tmp_path / "empty"
    d.mkdir()
    assert str(max_version(d)) == "0.0.0"


def test_non_version_entries_and_files_are_ignored(tmp_path):
    d = _mkdirs(tmp_path / "sdk", "NuGetFallbackFolder", "2.0.0", "latest")
    (d / "9.9.9").write_text("a file, not a version directory")
    assert str(max_version(d)) == "2.0.0"


def test_release_outranks_prerelease_of_same_triple():
    assert str(pick_max(["2.0.0-preview2", "2.0.0", "2.0.0-rc1"])) == "2.0.0"
    assert str(pick_max(["2.0.0", "2.0.0-zzz"])) == "2.0.0"


def test_numeric_triple_wins_over_tags():
    assert str(pick_max(["1.9.9", "2.0.0-alpha", "1.10.0"])) == "2.0.0-alpha"
    assert str(pick_max(["10.0.0", "9.0.0"])) == "10.0.0"
    assert str(pick_max(["2.0.10", "2.0.9"])) == "2.0.10"


def test_prerelease_tags_compare_as_plain_strings():
    # lexicographic: "9" sorts after "10"
    assert str(pick_max(["2.1.0-preview-10", "2.1.0-preview-9"])) == "2.1.0-preview-9"
    assert str(pick_max(["2.1.0-beta", "2.1.0-alpha"])) == "2.1.0-beta"


def test_ordering_operators():
    assert SemanticVersion(2, 0, 0, "rc1") < SemanticVersion(2, 0, 0)
    assert SemanticVersion(2, 0, 1, "rc1") > SemanticVersion(2, 0, 0)
    assert SemanticVersion(1, 0, 0) <= SemanticVersion(1, 0, 0)


def test_parse_version():
    assert parse_version("2.0.1-preview1-002111") == SemanticVersion(2, 0, 1, "preview1-002111")
    assert parse_version("2.0") is None
    assert parse_version("v2.0.0") is None


def test_forced_version_strict_form():
    assert parse_forced_version("2.0.99") == SemanticVersion(2, 0, 99)
    for bad in ("2.0", "2.a.0", "2.0.0-beta", "", "2.0.0.1", " 2.0.0"):
        assert parse_forced_version(bad) is None, bad
