import json

import pytest

from bootstrapcli.errors import AssemblyError
from bootstrapcli.manifest import MANIFEST_NAME, ManifestPatcher, patch_text

from conftest import SAMPLE_MANIFEST


def test_three_spellings_are_replaced():
    out = patch_text(SAMPLE_MANIFEST, "rhel.6-x64")
    assert '"runtime.rhel.6-x64.Microsoft.NETCore.App/2.0.0"' in out
    assert '"runtimes/rhel.6-x64/native/libcoreclr.so"' in out
    assert '".NETCoreApp,Version=v2.0/rhel.6-x64"' in out
    assert "runtime.linux-x64" not in out
    assert "runtimes/linux-x64" not in out
    assert "Version=v2.0/linux-x64" not in out


def test_unrelated_rids_untouched():
    out = patch_text(SAMPLE_MANIFEST, "rhel.6-x64")
    assert '"runtime.win-x64.Microsoft.NETCore.App/2.0.0"' in out


def test_new_runtime_entry_is_added():
    out = patch_text(SAMPLE_MANIFEST, "rhel.6-x64")
    assert '"runtimes": {\n    "rhel.6-x64": [\n      "unix", "unix-x64", "any", "base"\n    ],' in out
    doc = json.loads(out)
    assert doc["runtimes"]["rhel.6-x64"] == ["unix", "unix-x64", "any", "base"]
    assert "linux-x64" in doc["runtimes"]


def test_rid_with_regex_characters_is_literal():
    out = patch_text('"runtime.linux-x64/x"', r"weird\1-x64")
    assert out == r'"runtime.weird\1-x64/x"'


def test_patcher_writes_target_and_keeps_seed(tmp_path):
    seed_fw = tmp_path / "seed" / "fw"
    seed_fw.mkdir(parents=True)
    (seed_fw / MANIFEST_NAME).write_text(SAMPLE_MANIFEST, encoding="utf-8")
    target_fw = tmp_path / "out" / "fw"
    dst = ManifestPatcher("rhel.6-x64").patch(seed_fw, target_fw)
    assert dst == target_fw / MANIFEST_NAME
    assert "rhel.6-x64" in dst.read_text(encoding="utf-8")
    assert (seed_fw / MANIFEST_NAME).read_text(encoding="utf-8") == SAMPLE_MANIFEST


def test_missing_seed_manifest(tmp_path):
    with pytest.raises(AssemblyError):
        ManifestPatcher("rhel.6-x64").patch(tmp_path / "nope", tmp_path / "out")
