"""Tests for remote configuration and rsync/ssh transport."""

import subprocess
from unittest.mock import Mock

import pytest

from mnemos.errors import RemoteNotConfiguredError, TransportError
from mnemos.repository import Repository
from mnemos.transport import RsyncTransport, split_remote


def _ok(*args, **kwargs):
    return subprocess.CompletedProcess(args[0] if args else [], 0, stdout="", stderr="")


@pytest.fixture
def runner():
    return Mock(side_effect=_ok)


@pytest.fixture
def remote_repo(tmp_path, monkeypatch, clock, runner):
    monkeypatch.chdir(tmp_path)
    return Repository.init(tmp_path, clock=clock, transport=RsyncTransport(runner=runner))


class TestRemoteReference:
    """The .mnemos/remote file."""

    def test_unset_remote(self, repo):
        with pytest.raises(RemoteNotConfiguredError):
            repo.get_remote()

    def test_set_and_get(self, repo):
        assert repo.set_remote("  backup:/srv/mnemos  ") == "backup:/srv/mnemos"
        assert repo.get_remote() == "backup:/srv/mnemos"
        assert repo.ctx.remote_path.read_text() == "backup:/srv/mnemos\n"

    @pytest.mark.parametrize("bad", ["", "   ", "a\nb", "a\x00b"])
    def test_invalid_locations(self, repo, bad):
        with pytest.raises(ValueError):
            repo.set_remote(bad)

    def test_split_remote(self):
        assert split_remote("host:/srv/x") == ("host", "/srv/x")
        assert split_remote("user@host:rel") == ("user@host", "rel")
        assert split_remote("/local/path") == (None, "/local/path")
        assert split_remote("./dir:with:colons") == (None, "./dir:with:colons")


class TestTransfers:
    """send / fetch invoke rsync for commits and objects."""

    def test_send(self, remote_repo, runner):
        remote_repo.set_remote("host:/srv/repo")
        assert remote_repo.send() == "host:/srv/repo"

        meta = remote_repo.ctx.meta_dir
        calls = [c.args[0] for c in runner.call_args_list]
        assert calls == [
            ["rsync", "-av", f"{meta / 'commits'}/", "host:/srv/repo/commits/"],
            ["rsync", "-av", f"{meta / 'objects'}/", "host:/srv/repo/objects/"],
        ]

    def test_fetch(self, remote_repo, runner):
        remote_repo.set_remote("/mnt/backup/")
        remote_repo.fetch()

        meta = remote_repo.ctx.meta_dir
        calls = [c.args[0] for c in runner.call_args_list]
        assert calls == [
            ["rsync", "-av", "/mnt/backup/commits/", f"{meta / 'commits'}/"],
            ["rsync", "-av", "/mnt/backup/objects/", f"{meta / 'objects'}/"],
        ]

    def test_send_without_remote(self, remote_repo, runner):
        with pytest.raises(RemoteNotConfiguredError):
            remote_repo.send()
        runner.assert_not_called()

    def test_rsync_failure(self, remote_repo, runner):
        runner.side_effect = lambda *a, **k: subprocess.CompletedProcess(a[0], 23, stdout="", stderr="partial transfer")
        remote_repo.set_remote("host:/srv/repo")
        with pytest.raises(TransportError, match="partial transfer") as exc_info:
            remote_repo.send()
        assert exc_info.value.returncode == 23

    def test_rsync_missing(self, remote_repo, runner):
        runner.side_effect = FileNotFoundError("rsync")
        remote_repo.set_remote("host:/srv/repo")
        with pytest.raises(TransportError) as exc_info:
            remote_repo.fetch()
        assert exc_info.value.returncode is None

    def test_configured_commands(self, tmp_path, monkeypatch, runner):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".mnemos").mkdir()
        (tmp_path / ".mnemos" / "config.yaml").write_text("rsync_command: [rsync, -a, --checksum]\n")
        repo = Repository.open(tmp_path)
        repo.transport.runner = runner
        repo.set_remote("h:/r")
        repo.send()
        assert runner.call_args_list[0].args[0][:3] == ["rsync", "-a", "--checksum"]


class TestCreateRemote:
    """create-remote over ssh or locally."""

    def test_ssh_remote(self, remote_repo, runner):
        assert remote_repo.create_remote("backup:/srv/my repo") == "backup:/srv/my repo"
        argv = runner.call_args.args[0]
        assert argv == ["ssh", "backup", "mkdir -p '/srv/my repo/commits' '/srv/my repo/objects'"]
        assert remote_repo.get_remote() == "backup:/srv/my repo"

    def test_local_remote(self, remote_repo, runner, tmp_path):
        target = tmp_path / "elsewhere"
        remote_repo.create_remote(str(target))
        assert (target / "commits").is_dir()
        assert (target / "objects").is_dir()
        runner.assert_not_called()

    def test_ssh_failure_leaves_remote_unset(self, remote_repo, runner):
        runner.side_effect = lambda *a, **k: subprocess.CompletedProcess(a[0], 255, stdout="", stderr="Connection refused")
        with pytest.raises(TransportError, match="Connection refused"):
            remote_repo.create_remote("backup:/srv/repo")
        with pytest.raises(RemoteNotConfiguredError):
            remote_repo.get_remote()
