import pytest

from bootstrapcli.commit_hash import (
    BUILD_STAMP_MARKER,
    commit_hash_from_file,
    extract_pins,
    find_commit_hash,
    iter_strings,
)
from bootstrapcli.errors import CommitHashNotFound

from conftest import CORECLR_HASH, COREFX_HASH, CORESETUP_HASH, make_seed, write_binary


def test_iter_strings_skips_short_runs():
    data = b"\x00ab\x00abcd\x01hello world\x02"
    assert list(iter_strings(data)) == ["abcd", "hello world"]


def test_marker_required_when_given():
    other = "f" * 40
    data = f"\x00{other}\x00@(#)Version 2.0 Commit: {COREFX_HASH}\x00".encode()
    assert find_commit_hash(data, BUILD_STAMP_MARKER) == COREFX_HASH
    assert find_commit_hash(data) == other


def test_uppercase_hex_is_not_a_hash():
    data = b"\x00@(#) " + b"A" * 40 + b"\x00"
    with pytest.raises(CommitHashNotFound):
        find_commit_hash(data, BUILD_STAMP_MARKER)


def test_missing_file_is_not_found(tmp_path):
    with pytest.raises(CommitHashNotFound):
        commit_hash_from_file(tmp_path / "libcoreclr.so")


def test_binary_without_hash(tmp_path):
    p = write_binary(tmp_path / "dotnet", "no hashes in here")
    with pytest.raises(CommitHashNotFound):
        commit_hash_from_file(p)


def test_extract_pins_from_seed(tmp_path):
    seed = make_seed(tmp_path / "seed")
    pins = extract_pins(seed, "2.0.0")
    assert list(pins) == ["coreclr", "corefx", "core-setup"]
    assert pins["coreclr"].commit == CORECLR_HASH
    assert pins["corefx"].commit == COREFX_HASH
    assert pins["core-setup"].commit == CORESETUP_HASH
    assert all(p.pinned for p in pins.values())


def test_missing_hash_means_no_pin(tmp_path):
    seed = make_seed(tmp_path / "seed")
    write_binary(seed / "shared" / "Microsoft.NETCore.App" / "2.0.0" / "libcoreclr.so", "stripped")
    pins = extract_pins(seed, "2.0.0")
    assert pins["coreclr"].commit is None
    assert not pins["coreclr"].pinned
    assert pins["corefx"].commit == COREFX_HASH
