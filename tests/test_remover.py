"""Tests for node_modules removal."""

import os
import threading

import pytest

from npmrm.remover import delete_tree, remove_all, remove_dir


def make_targets(tmp_path, count):
    paths = []
    for i in range(count):
        nm = tmp_path / f"project{i}" / "node_modules"
        (nm / "pkg").mkdir(parents=True)
        (nm / "pkg" / "index.js").write_text("module.exports = 1")
        paths.append(str(nm))
    return paths


class TestDeleteTree:
    def test_removes_directory_tree(self, tmp_path):
        [target] = make_targets(tmp_path, 1)

        delete_tree(target)
        assert not os.path.exists(target)

    def test_removes_symlink_not_target(self, tmp_path):
        store = tmp_path / "store"
        (store / "pkg").mkdir(parents=True)
        link = tmp_path / "node_modules"
        os.symlink(store, link)

        delete_tree(str(link))

        assert not os.path.lexists(link)
        assert (store / "pkg").is_dir()


class TestRemoveDir:
    def test_successful_removal(self, tmp_path):
        [target] = make_targets(tmp_path, 1)

        outcome = remove_dir(target, retry_delay=0)

        assert outcome.success
        assert outcome.attempts == 1
        assert not os.path.exists(target)

    def test_already_gone_counts_as_success(self, tmp_path):
        outcome = remove_dir(str(tmp_path / "never-existed"), retry_delay=0)

        assert outcome.success
        assert outcome.error is None

    def test_retries_transient_failure(self, tmp_path):
        [target] = make_targets(tmp_path, 1)
        failures = {"left": 2}

        def flaky(path):
            if failures["left"]:
                failures["left"] -= 1
                raise OSError("resource busy")
            delete_tree(path)

        outcome = remove_dir(target, retries=3, retry_delay=0, remove=flaky)

        assert outcome.success
        assert outcome.attempts == 3
        assert not os.path.exists(target)

    def test_gives_up_after_retries(self, tmp_path):
        [target] = make_targets(tmp_path, 1)
        calls = []

        def always_fails(path):
            calls.append(path)
            raise PermissionError("permission denied")

        outcome = remove_dir(target, retries=2, retry_delay=0, remove=always_fails)

        assert not outcome.success
        assert "permission denied" in outcome.error
        assert len(calls) == 3
        assert os.path.exists(target)

    def test_not_found_while_path_still_exists_is_retried(self, tmp_path):
        [target] = make_targets(tmp_path, 1)
        calls = []

        def racing(path):
            calls.append(path)
            if len(calls) == 1:
                raise FileNotFoundError("child vanished")
            delete_tree(path)

        outcome = remove_dir(target, retries=1, retry_delay=0, remove=racing)

        assert outcome.success
        assert outcome.attempts == 2


class TestRemoveAll:
    def test_partial_failure_does_not_stop_batch(self, tmp_path):
        paths = make_targets(tmp_path, 5)
        bad = paths[2]

        def remove(path):
            if path == bad:
                raise PermissionError(f"Permission denied: '{path}'")
            delete_tree(path)

        summary = remove_all(paths, retry_delay=0, remove=remove)

        assert summary.removed_count == 4
        assert summary.failed_count == 1
        assert [f.path for f in summary.failures] == [bad]
        assert "Permission denied" in summary.failures[0].error_message
        for path in paths:
            assert os.path.exists(path) == (path == bad)

    def test_outcomes_keep_input_order(self, tmp_path):
        paths = make_targets(tmp_path, 6)

        summary = remove_all(paths, concurrency=3, retry_delay=0)

        assert [o.path for o in summary.outcomes] == paths
        assert summary.removed_count == 6

    def test_respects_concurrency(self, tmp_path):
        paths = make_targets(tmp_path, 8)
        in_flight = 0
        peak = 0
        lock = threading.Lock()

        def remove(path):
            nonlocal in_flight, peak
            with lock:
                in_flight += 1
                peak = max(peak, in_flight)
            delete_tree(path)
            with lock:
                in_flight -= 1

        remove_all(paths, concurrency=2, retry_delay=0, remove=remove)
        assert peak <= 2

    def test_reports_progress_per_directory(self, tmp_path):
        paths = make_targets(tmp_path, 4)
        calls = []

        remove_all(paths, on_progress=lambda path, done: calls.append(done), retry_delay=0)

        assert sorted(calls) == [1, 2, 3, 4]

    def test_empty_batch(self):
        summary = remove_all([])
        assert summary.removed_count == 0
        assert summary.failed_count == 0
        assert summary.failures == []


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0, reason="root ignores permissions"
)
def test_real_permission_error_is_reported(tmp_path):
    paths = make_targets(tmp_path, 2)
    parent = os.path.dirname(paths[0])
    os.chmod(parent, 0o500)
    try:
        summary = remove_all(paths, retries=1, retry_delay=0)
    finally:
        os.chmod(parent, 0o700)

    assert summary.removed_count == 1
    assert summary.failed_count == 1
    assert summary.failures[0].path == paths[0]
