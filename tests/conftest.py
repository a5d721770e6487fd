"""
Shared fixtures: every test runs in its own empty cwd with the default config,
and helpers to fake a seed installation and the native build outputs.
"""
from pathlib import Path

import pytest

from bootstrapcli import config


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(config.ENV_VAR, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    config.reset()
    yield
    config.reset()


CORECLR_HASH = "1" * 40
COREFX_HASH = "abcdef0123456789abcdef0123456789abcdef01"
CORESETUP_HASH = "0123456789abcdef0123456789abcdef01234567"

SAMPLE_MANIFEST = """{
  "runtimeTarget": {
    "name": ".NETCoreApp,Version=v2.0/linux-x64"
  },
  "targets": {
    ".NETCoreApp,Version=v2.0/linux-x64": {
      "runtime.linux-x64.Microsoft.NETCore.App/2.0.0": {
        "native": {
          "runtimes/linux-x64/native/libcoreclr.so": {}
        }
      },
      "runtime.win-x64.Microsoft.NETCore.App/2.0.0": {}
    }
  },
  "runtimes": {
    "linux-x64": [
      "linux",
      "unix-x64",
      "unix",
      "any",
      "base"
    ]
  }
}
"""


def write_binary(path: Path, *strings: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    blob = b"\x7fELF\x02\x01\x01\x00"
    for s in strings:
        blob += b"\x00\x01\x02" + s.encode("ascii") + b"\x00"
    path.write_bytes(blob + b"\x00\xff\xfe")
    return path


def make_seed(root: Path, framework_versions=("2.0.0",), sdk_versions=("2.0.0",), fxr_versions=("2.0.0",)) -> Path:
    for v in framework_versions:
        (root / "shared" / "Microsoft.NETCore.App" / v).mkdir(parents=True, exist_ok=True)
    for v in sdk_versions:
        (root / "sdk" / v).mkdir(parents=True, exist_ok=True)
    for v in fxr_versions:
        (root / "host" / "fxr" / v).mkdir(parents=True, exist_ok=True)
    fw = root / "shared" / "Microsoft.NETCore.App" / max(framework_versions)
    write_binary(fw / "libcoreclr.so", "some text", f"@(#)Version 4.6.25211.01 @Commit: {CORECLR_HASH}")
    write_binary(fw / "System.Native.so", f"{'9' * 40} unrelated", f"@(#)Version 4.6 @Commit: {COREFX_HASH}")
    (fw / "Microsoft.NETCore.App.deps.json").write_text(SAMPLE_MANIFEST, encoding="utf-8")
    write_binary(root / "dotnet", "usage text", CORESETUP_HASH)
    return root


def make_build_outputs(root: Path):
    """Directories laid out the way the three native builds leave them."""
    coreclr = root / "coreclr-bin"
    for name in ("libcoreclr.so", "libclrjit.so", "libsos.so", "corerun", "crossgen", "README.md"):
        write_binary(coreclr / name, name)
    corefx = root / "corefx-bin"
    for sub, name in (("System.Native", "System.Native.so"),
                      ("System.Security.Cryptography.Native", "System.Security.Cryptography.Native.OpenSsl.so"),
                      ("System.Native", "libother.so")):
        write_binary(corefx / sub / name, name)
    (corefx / "CMakeFiles" / "System.Native.dir").mkdir(parents=True)
    coresetup = root / "core-setup" / "cli"
    write_binary(coresetup / "exe" / "dotnet" / "dotnet", "dotnet")
    write_binary(coresetup / "dll" / "libhostpolicy.so", "hostpolicy")
    write_binary(coresetup / "fxr" / "libhostfxr.so", "hostfxr")
    return coreclr, corefx, coresetup
