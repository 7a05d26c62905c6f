"""Tests for the command-line interface."""

import json
import os

import pytest
from click.testing import CliRunner

from hydra_eval_jobs.cli import main

RELEASE_PY = """
from hydra_eval_jobs.evaluator import aggregate, derivation, throw

def release(system="x86_64-linux"):
    hello = derivation(
        "hello",
        system,
        meta={"license": [{"shortName": "GPL-3.0"}], "maintainers": ["alice", "bob"]},
    )
    world = derivation("world", system)
    return {
        "hello": hello,
        "world": world,
        "tested": aggregate("tested", [hello, world], system=system),
        "broken": throw("this job is broken"),
        "nothing": None,
        "nested": {"world": world},
    }
"""

FATAL_PY = """
from hydra_eval_jobs.evaluator import derivation

release = {"ok": derivation("ok", "x86_64-linux"), "bad": 42}
"""

CRASHING_PY = """
from hydra_eval_jobs.evaluator import derivation, lazy

release = {"bad": lazy(lambda: 1 // 0), "ok": derivation("ok", "x86_64-linux")}
"""

COLLIDING_PY = """
from hydra_eval_jobs.evaluator import derivation

release = {"a.b": derivation("x", "x86_64-linux"), "a": {"b": derivation("y", "x86_64-linux")}}
"""


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def release_file(tmp_path):
    path = tmp_path / "release.py"
    path.write_text(RELEASE_PY)
    return path


class TestMain:
    """End-to-end tests for the hydra-eval-jobs command."""

    def test_report(self, runner, release_file, tmp_path):
        gc_dir = tmp_path / "gcroots"
        result = runner.invoke(main, [str(release_file), "--gc-roots-dir", str(gc_dir)])

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)

        assert list(report) == ["hello", "world", "tested", "broken", "nested"]
        assert report["hello"]["license"] == "GPL-3.0"
        assert report["hello"]["maintainers"] == "alice, bob"
        assert report["hello"]["outputs"]["out"].startswith("/nix/store/")
        assert report["broken"] == {"error": "this job is broken"}
        assert report["nested"]["world"]["drvPath"] == report["world"]["drvPath"]
        assert set(report["tested"]["constituents"].split()) == {
            report["hello"]["drvPath"],
            report["world"]["drvPath"],
        }
        assert "constituents" not in report["hello"]
        assert len(os.listdir(gc_dir)) == 3

    def test_flat_report(self, runner, release_file, tmp_path):
        result = runner.invoke(main, [str(release_file), "--flat", "--gc-roots-dir", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert "nested.world" in json.loads(result.stdout)

    def test_argstr(self, runner, release_file, tmp_path):
        result = runner.invoke(
            main,
            [str(release_file), "--argstr", "system", "aarch64-linux", "--gc-roots-dir", str(tmp_path)],
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["hello"]["system"] == "aarch64-linux"

    def test_arg_json(self, runner, release_file, tmp_path):
        result = runner.invoke(
            main,
            [str(release_file), "--arg", "system", '"i686-linux"', "--gc-roots-dir", str(tmp_path)],
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["world"]["system"] == "i686-linux"

    def test_arg_invalid_json(self, runner, release_file):
        result = runner.invoke(main, [str(release_file), "--arg", "system", "not json"])
        assert result.exit_code == 2
        assert "not valid JSON" in result.output

    def test_dry_run(self, runner, release_file, tmp_path):
        gc_dir = tmp_path / "gcroots"
        result = runner.invoke(main, [str(release_file), "--dry-run", "--gc-roots-dir", str(gc_dir)])

        assert result.exit_code == 0, result.output
        assert not gc_dir.exists()

    def test_second_run_identical(self, runner, release_file, tmp_path):
        args = [str(release_file), "--gc-roots-dir", str(tmp_path / "gcroots")]

        first = runner.invoke(main, args)
        roots = sorted(os.listdir(tmp_path / "gcroots"))
        second = runner.invoke(main, args)

        assert first.exit_code == second.exit_code == 0
        assert first.stdout == second.stdout
        assert sorted(os.listdir(tmp_path / "gcroots")) == roots

    def test_fatal_unsupported_value(self, runner, tmp_path):
        """An unsupported value aborts the run and nothing is reported."""
        release = tmp_path / "release.py"
        release.write_text(FATAL_PY)

        result = runner.invoke(main, [str(release), "--gc-roots-dir", str(tmp_path / "gc")])

        assert result.exit_code == 1
        assert "unsupported value: 42" in result.output
        assert "drvPath" not in result.stdout

    def test_python_exception_in_release(self, runner, tmp_path):
        """An exception raised by release code is reported, not dumped as a traceback."""
        release = tmp_path / "release.py"
        release.write_text(CRASHING_PY)

        result = runner.invoke(main, [str(release), "--dry-run", "--gc-roots-dir", str(tmp_path)])

        assert result.exit_code == 1
        assert "error:" in result.output
        assert "by zero" in result.output
        assert "Traceback" not in result.output
        assert "drvPath" not in result.stdout

    def test_python_exception_traceback_when_verbose(self, runner, tmp_path):
        release = tmp_path / "release.py"
        release.write_text(CRASHING_PY)

        result = runner.invoke(main, [str(release), "--dry-run", "-v", "--gc-roots-dir", str(tmp_path)])

        assert result.exit_code == 1
        assert "ZeroDivisionError" in result.output

    def test_syntax_error_in_release(self, runner, tmp_path):
        release = tmp_path / "release.py"
        release.write_text("release = {\n")

        result = runner.invoke(main, [str(release), "--dry-run", "--gc-roots-dir", str(tmp_path)])

        assert result.exit_code == 1
        assert "error:" in result.output

    def test_unwritable_gc_roots_dir(self, runner, release_file, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")

        result = runner.invoke(main, [str(release_file), "--gc-roots-dir", str(blocker / "sub")])

        assert result.exit_code == 1
        assert "error:" in result.output
        assert "drvPath" not in result.stdout

    def test_flat_key_collision(self, runner, tmp_path):
        release = tmp_path / "release.py"
        release.write_text(COLLIDING_PY)

        result = runner.invoke(main, [str(release), "--flat", "--dry-run", "--gc-roots-dir", str(tmp_path)])

        assert result.exit_code == 1
        assert "error: report entry ‘a.b’" in result.output

    def test_missing_expression(self, runner):
        result = runner.invoke(main, [])
        assert result.exit_code == 2
        assert "no expression specified" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(main, [str(tmp_path / "nope.py"), "--dry-run"])
        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_warns_without_gc_roots_dir(self, runner, release_file):
        result = runner.invoke(main, [str(release_file), "--store", "dummy"])

        assert result.exit_code == 0
        assert "--gc-roots-dir' not specified" in result.output

    def test_unknown_store(self, runner, release_file):
        result = runner.invoke(main, [str(release_file), "--store", "ssh://host"])
        assert result.exit_code == 2

    def test_search_path(self, runner, release_file, tmp_path):
        result = runner.invoke(
            main,
            [f"<jobs/{release_file.name}>", "-I", f"jobs={tmp_path}", "--gc-roots-dir", str(tmp_path / "gc")],
        )

        assert result.exit_code == 0, result.output
        assert "hello" in json.loads(result.stdout)

    def test_nix_path_cleared(self, runner, release_file, tmp_path, monkeypatch):
        monkeypatch.setenv("NIX_PATH", "nixpkgs=/somewhere")
        runner.invoke(main, [str(release_file), "--gc-roots-dir", str(tmp_path)])
        assert "NIX_PATH" not in os.environ

    def test_heap_size_from_config(self, runner, release_file, tmp_path, monkeypatch):
        conf = tmp_path / "hydra.conf"
        conf.write_text("evaluator_initial_heap_size = 1G\n")
        monkeypatch.setenv("HYDRA_CONFIG", str(conf))
        monkeypatch.setenv("GC_INITIAL_HEAP_SIZE", "unset")

        runner.invoke(main, [str(release_file), "--gc-roots-dir", str(tmp_path / "gc")])

        assert os.environ["GC_INITIAL_HEAP_SIZE"] == "1G"

    def test_show_stats(self, runner, release_file, tmp_path):
        result = runner.invoke(main, [str(release_file), "--show-stats", "--gc-roots-dir", str(tmp_path)])

        assert result.exit_code == 0
        assert "Evaluation Statistics" in result.output
