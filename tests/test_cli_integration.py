"""Integration tests for CLI commands that verify real workflows.

Remote transfers are mocked; everything else runs against a real
repository in a temporary directory.
"""

import subprocess
from unittest.mock import Mock

import pytest
from typer.testing import CliRunner

from mnemos.cli import app


@pytest.fixture
def runner():
    """Create a CliRunner for in-process testing."""
    return CliRunner()


@pytest.fixture
def project(tmp_path, monkeypatch, runner):
    """An initialized repository as the working directory."""
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0, result.output
    return tmp_path


def _text(result):
    """Output with line wrapping collapsed."""
    return " ".join(result.output.split())


def _head(project):
    return (project / ".mnemos" / "HEAD").read_text().strip()


class TestBasicWorkflow:
    """init → track → commit → revert."""

    def test_init_twice_fails(self, project, runner):
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 1
        assert "✗" in _text(result)
        assert "already initialized" in _text(result)

    def test_init_path(self, tmp_path, monkeypatch, runner):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["init", "sub/dir"])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "sub" / "dir" / ".mnemos" / "index").exists()

    def test_hello_world(self, project, runner):
        (project / "a.txt").write_text("hello")
        assert runner.invoke(app, ["track", "a.txt"]).exit_code == 0

        result = runner.invoke(app, ["commit", "-m", "first"])
        assert result.exit_code == 0, result.output
        first = _head(project)
        assert first in _text(result)

        (project / "a.txt").write_text("world")
        assert runner.invoke(app, ["commit", "-m", "second"]).exit_code == 0
        assert _head(project) != first

        result = runner.invoke(app, ["revert", first])
        assert result.exit_code == 0, result.output
        assert (project / "a.txt").read_text() == "hello"
        assert _head(project) == first

    def test_restore_alias(self, project, runner):
        (project / "a.txt").write_text("v1")
        runner.invoke(app, ["track", "a.txt"])
        runner.invoke(app, ["commit", "-m", "one"])
        first = _head(project)
        (project / "a.txt").write_text("v2")
        runner.invoke(app, ["commit", "-m", "two"])

        result = runner.invoke(app, ["restore", first[:12]])
        assert result.exit_code == 0, result.output
        assert (project / "a.txt").read_text() == "v1"

    def test_track_missing_file(self, project, runner):
        result = runner.invoke(app, ["track", "nope.txt"])
        assert result.exit_code == 1
        assert "does not exist" in _text(result)

    def test_track_requires_argument(self, project, runner):
        result = runner.invoke(app, ["track"])
        assert result.exit_code == 1
        assert "Nothing to track" in _text(result)

    def test_track_all(self, project, runner):
        (project / "a.txt").write_text("a")
        (project / "d").mkdir()
        (project / "d" / "b.txt").write_text("b")
        result = runner.invoke(app, ["track", "--all"])
        assert result.exit_code == 0, result.output
        assert (project / ".mnemos" / "index").read_text() == "a.txt\nd/b.txt\n"

    def test_commit_reports_missing(self, project, runner):
        (project / "a.txt").write_text("a")
        runner.invoke(app, ["track", "a.txt"])
        (project / "a.txt").unlink()
        result = runner.invoke(app, ["commit", "-m", "m"])
        assert result.exit_code == 0
        assert "a.txt is missing" in _text(result)

    def test_revert_unknown(self, project, runner):
        result = runner.invoke(app, ["revert", "abcdef"])
        assert result.exit_code == 1
        assert "not found" in _text(result)

    def test_outside_repository(self, tmp_path, monkeypatch, runner):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 1
        assert "mnemos init" in _text(result)


class TestInspection:
    """log / status / diff output."""

    def test_log(self, project, runner):
        (project / "a.txt").write_text("a")
        runner.invoke(app, ["track", "a.txt"])
        runner.invoke(app, ["commit", "-m", "initial"])
        result = runner.invoke(app, ["log"])
        assert result.exit_code == 0
        assert "initial" in _text(result)
        assert _head(project)[:10] in _text(result)

    def test_log_empty(self, project, runner):
        result = runner.invoke(app, ["log"])
        assert "No commits yet" in _text(result)

    def test_status(self, project, runner):
        (project / "a.txt").write_text("a")
        runner.invoke(app, ["track", "a.txt"])
        runner.invoke(app, ["commit", "-m", "m"])
        result = runner.invoke(app, ["status"])
        assert "matches HEAD" in _text(result)

        (project / "a.txt").write_text("changed")
        result = runner.invoke(app, ["status"])
        assert "modified" in _text(result)

    def test_diff(self, project, runner):
        (project / "a.txt").write_text("line one\n")
        runner.invoke(app, ["track", "a.txt"])
        runner.invoke(app, ["commit", "-m", "m"])

        result = runner.invoke(app, ["diff", "a.txt"])
        assert result.exit_code == 0
        assert "no differences" in _text(result)

        (project / "a.txt").write_text("line two\n")
        result = runner.invoke(app, ["diff", "a.txt"])
        assert result.exit_code == 0
        assert "-line one" in _text(result)
        assert "+line two" in _text(result)

    def test_diff_missing_in_endpoint(self, project, runner):
        (project / "a.txt").write_text("a")
        runner.invoke(app, ["track", "a.txt"])
        runner.invoke(app, ["commit", "-m", "m"])
        (project / "b.txt").write_text("b")
        result = runner.invoke(app, ["diff", "b.txt"])
        assert result.exit_code == 1
        assert "does not exist" in _text(result)

    def test_verbose_flag(self, project, runner):
        result = runner.invoke(app, ["-v", "log"])
        assert result.exit_code == 0


class TestRemoteCommands:
    """remote / send / fetch / create-remote with a mocked subprocess."""

    @pytest.fixture
    def fake_run(self, monkeypatch):
        run = Mock(side_effect=lambda argv, **kw: subprocess.CompletedProcess(argv, 0, stdout="", stderr=""))
        monkeypatch.setattr("mnemos.transport.subprocess.run", run)
        return run

    def test_remote_show_unset(self, project, runner):
        result = runner.invoke(app, ["remote"])
        assert result.exit_code == 1
        assert "No remote configured" in _text(result)

    def test_remote_set_and_send(self, project, runner, fake_run):
        assert runner.invoke(app, ["remote", "host:/srv/r"]).exit_code == 0
        assert runner.invoke(app, ["remote"]).output.strip() == "host:/srv/r"

        result = runner.invoke(app, ["send"])
        assert result.exit_code == 0, result.output
        assert fake_run.call_count == 2

        result = runner.invoke(app, ["fetch"])
        assert result.exit_code == 0, result.output
        assert fake_run.call_count == 4

    def test_send_failure(self, project, runner, monkeypatch):
        run = Mock(return_value=subprocess.CompletedProcess([], 12, stdout="", stderr="protocol error"))
        monkeypatch.setattr("mnemos.transport.subprocess.run", run)
        runner.invoke(app, ["remote", "host:/srv/r"])
        result = runner.invoke(app, ["send"])
        assert result.exit_code == 1
        assert "protocol error" in _text(result)

    def test_create_remote(self, project, runner, fake_run):
        result = runner.invoke(app, ["create-remote", "host:/srv/new"])
        assert result.exit_code == 0, result.output
        assert fake_run.call_args.args[0][:2] == ["ssh", "host"]
        assert (project / ".mnemos" / "remote").read_text() == "host:/srv/new\n"
