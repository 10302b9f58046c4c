import json
import os
import sys

import pytest

from accord import cli

from fake_cargo import install_fake_cargo

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="fake cargo is a shebang script")


@pytest.fixture
def fake_cargo(tmp_path, monkeypatch):
    cargo = install_fake_cargo(tmp_path / "bin")
    monkeypatch.setenv("ACCORD_CARGO", cargo)
    monkeypatch.delenv("ACCORD_VERBOSE", raising=False)
    caller = tmp_path / "work"
    caller.mkdir()
    monkeypatch.chdir(caller)
    return caller


def _exit_code(argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


def test_run_passes_caller_directory(fake_cargo, capsys):
    assert _exit_code(["-vv"]) == 0
    out = capsys.readouterr().out
    report = json.loads(out)
    assert report["argv"] == ["run", "--release", str(cli.LAUNCHER_DIR), "--", os.getcwd()]
    assert os.path.realpath(report["argv"][-1]) == os.path.realpath(fake_cargo)


def test_build_prints_notice(fake_cargo, capsys):
    assert _exit_code(["build"]) == 0
    assert capsys.readouterr().out.startswith("Compiling rust dependency")


def test_exit_code_propagates(fake_cargo, monkeypatch):
    monkeypatch.setenv("FAKE_CARGO_EXIT", "3")
    assert _exit_code([]) == 3


def test_missing_toolchain_exits_one(fake_cargo, monkeypatch, capsys):
    monkeypatch.setenv("FAKE_CARGO_PROBE_EXIT", "1")
    assert _exit_code(["run"]) == 1
    captured = capsys.readouterr()
    assert "https://www.rust-lang.org/" in captured.err
    assert captured.out == ""


def test_verbosity_option_and_env(fake_cargo, monkeypatch, capsys):
    assert _exit_code(["--verbosity", "1"]) == 0
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.endswith("warning: fake cargo\n")

    monkeypatch.setenv("ACCORD_VERBOSE", "2")
    assert _exit_code([]) == 0
    assert '"argv"' in capsys.readouterr().out


def test_parser_defaults():
    args = cli.build_parser().parse_args([])
    assert args.mode == "run"
    assert args.verbose == 0
    assert cli.build_parser().parse_args(["-v", "-v", "check"]).verbose == 2


def test_features_from_environment(fake_cargo, monkeypatch, capsys):
    monkeypatch.setenv("ACCORD_FEATURES", "native, tls")
    assert cli.get_features() == ("native", "tls")
    assert _exit_code(["build", "-vv"]) == 0
    out = capsys.readouterr().out
    report = json.loads(out.split("\n", 1)[1])
    assert report["argv"][:4] == ["build", "--release", "--features", "native,tls"]


def test_features_unset(monkeypatch):
    monkeypatch.delenv("ACCORD_FEATURES", raising=False)
    assert cli.get_features() == ()
