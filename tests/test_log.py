"""Tests for commit listings."""

import shutil

from mnemos.repository import Repository


def test_empty_log(repo):
    assert repo.log() == []


def test_newest_first(repo, write_file):
    write_file("a.txt", "1")
    repo.track("a.txt")
    first = repo.commit("first")
    write_file("b.txt", "2")
    repo.track("b.txt")
    second = repo.commit("second")

    infos = repo.log()
    assert [i.commit_id for i in infos] == [second.commit_id, first.commit_id]
    assert [i.message for i in infos] == ["second", "first"]
    assert [i.file_count for i in infos] == [2, 1]
    assert [i.is_head for i in infos] == [True, False]
    assert infos[0].timestamp > infos[1].timestamp
    assert infos[0].short_id == second.commit_id[:10]


def test_head_marker_follows_restore(repo, write_file):
    write_file("a.txt", "1")
    repo.track("a.txt")
    first = repo.commit("first").commit_id
    repo.commit("second")
    repo.restore(first)
    heads = [i.commit_id for i in repo.log() if i.is_head]
    assert heads == [first]


def test_unreadable_commit_skipped(repo, write_file, caplog):
    write_file("a.txt", "1")
    repo.track("a.txt")
    good = repo.commit("good").commit_id
    broken = repo.ctx.commits_dir / "abc123"
    broken.mkdir()
    (broken / "message").write_text("half fetched")

    with caplog.at_level("WARNING", logger="mnemos.commits"):
        infos = repo.log()

    assert [i.commit_id for i in infos] == [good]
    assert "abc123" in caplog.text


def test_commit_roundtrips_through_copy(repo, write_file, tmp_path):
    """Commits and objects directories are self-contained."""
    write_file("a.txt", "portable")
    repo.track("a.txt")
    commit_id = repo.commit("c").commit_id

    clone = Repository.init(tmp_path / "clone")
    shutil.rmtree(clone.ctx.commits_dir)
    shutil.rmtree(clone.ctx.objects_dir)
    shutil.copytree(repo.ctx.commits_dir, clone.ctx.commits_dir)
    shutil.copytree(repo.ctx.objects_dir, clone.ctx.objects_dir)

    result = clone.restore(commit_id)
    assert result.complete
    assert (clone.root / "a.txt").read_text() == "portable"
