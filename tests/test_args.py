from pathlib import Path

import pytest

from bootstrapcli import args
from bootstrapcli.errors import UsageError


def test_version_mode_defaults(tmp_path):
    inv = args.resolve(["-rid", "rhel.6-x64", "-version", "2.0.99"], cwd=tmp_path)
    assert inv.build.runtime_id == "rhel.6-x64"
    assert inv.build.arch == "x64"
    assert inv.build.os == "Linux"
    assert inv.build.configuration == "debug"
    assert inv.build.clang is None
    assert inv.version == "2.0.99"
    assert not inv.seed_mode
    assert inv.output_path == Path(tmp_path.resolve()) / "rhel.6-x64" / "dotnetcli"
    assert inv.work_dir == tmp_path / "rhel.6-x64"


def test_flags_are_case_insensitive(tmp_path):
    seed = tmp_path / "seed"
    seed.mkdir()
    inv = args.resolve(["-RELEASE", "-RID", "alpine.3.6-arm64", "-SeedCli", "seed", "-Clang", "3.9", "-OS", "FreeBSD"], cwd=tmp_path)
    assert inv.build.configuration == "release"
    assert inv.build.arch == "arm64"
    assert inv.build.clang == "clang3.9"
    assert inv.build.os == "FreeBSD"
    assert inv.seed_cli == seed.resolve()


def test_paths_are_absolute_and_symlink_resolved(tmp_path):
    real = tmp_path / "real-seed"
    real.mkdir()
    (tmp_path / "link").symlink_to(real)
    inv = args.resolve(["-rid", "rhel.6-x64", "-seedcli", "link", "-outputpath", "out", "-corelib", "lib/System.Private.CoreLib.dll"], cwd=tmp_path)
    assert inv.seed_cli == real.resolve()
    assert inv.output_path.is_absolute()
    assert inv.output_path.name == "out"
    assert inv.build.corelib.is_absolute()
    assert inv.build.corelib.name == "System.Private.CoreLib.dll"


def test_arch_is_everything_after_first_dash():
    assert args.arch_of("rhel.6-x64") == "x64"
    assert args.arch_of("linux-musl-x64") == "musl-x64"


@pytest.mark.parametrize("argv, message", [
    (["-rid", "rhel.6-x64", "-seedcli", "/tmp", "-version", "2.0.0"], "mutually exclusive"),
    (["-rid", "rhel.6-x64"], "One of -seedcli or -version is required"),
    (["-version", "2.0.0"], "Missing the required -rid argument"),
    (["-rid", "rhel.6-x64", "-version", "2.0"], "digits.digits.digits"),
    (["-rid", "rhel.6-x64", "-version", "2.a.0"], "digits.digits.digits"),
    (["-rid", "rhel.6-x64", "-version", "2.0.0-beta"], "digits.digits.digits"),
    (["-version", "2.0.0", "-rid"], "expected one argument"),
    (["-rid", "rhel.6-x64", "-version"], "expected one argument"),
    (["-rid", "rhel.6-x64", "-version", "-release"], "expected one argument"),
])
def test_validation_failures_exit_2(tmp_path, argv, message):
    with pytest.raises(UsageError) as exc:
        args.resolve(argv, cwd=tmp_path)
    assert exc.value.exit_code == 2
    assert message in str(exc.value)


def test_validation_does_not_touch_filesystem(tmp_path):
    with pytest.raises(UsageError):
        args.resolve(["-rid", "rhel.6-x64"], cwd=tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_unknown_argument_exits_1(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        args.resolve(["-rid", "rhel.6-x64", "-version", "2.0.0", "-bogus"], cwd=tmp_path)
    assert exc.value.code == 1


def test_help_exits_1(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        args.resolve(["--HELP"], cwd=tmp_path)
    assert exc.value.code == 1
    assert "Usage: bootstrapcli" in capsys.readouterr().out
