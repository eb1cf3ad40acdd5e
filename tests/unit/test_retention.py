"""Unit tests for the RetentionCleaner."""

from __future__ import annotations

import os
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from pgwarden.tasks import RetentionCleaner

NOW = datetime(2025, 11, 14, 2, 0, 0, tzinfo=timezone.utc).timestamp()
PATTERNS = ("*.dump", "*.tar.gz")


def _make(directory: Path, name: str, age: timedelta) -> Path:
    path = directory / name
    path.write_bytes(b"x")
    ts = NOW - age.total_seconds()
    os.utime(path, (ts, ts))
    return path


@pytest.fixture
def dst_zone(monkeypatch: pytest.MonkeyPatch):
    """Local time in a zone that switched to DST on 2025-03-09."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available")
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.fixture
def cleaner() -> RetentionCleaner:
    return RetentionCleaner(now=lambda: NOW)


class TestCandidates:
    """Only matching regular files strictly older than the window qualify."""

    def test_old_matching_files_selected(self, tmp_path: Path, cleaner: RetentionCleaner):
        _make(tmp_path, "db_old.dump", timedelta(days=10))
        _make(tmp_path, "pg_base_backup_old.tar.gz", timedelta(days=8))
        _make(tmp_path, "db_new.dump", timedelta(days=1))
        names = [c.name for c in cleaner.candidates(tmp_path, PATTERNS, 7)]
        assert names == ["db_old.dump", "pg_base_backup_old.tar.gz"]

    def test_non_matching_names_kept(self, tmp_path: Path, cleaner: RetentionCleaner):
        _make(tmp_path, "notes.txt", timedelta(days=100))
        _make(tmp_path, "pg_backup.log", timedelta(days=100))
        assert cleaner.candidates(tmp_path, PATTERNS, 7) == []

    def test_exactly_at_window_is_kept(self, tmp_path: Path, cleaner: RetentionCleaner):
        _make(tmp_path, "edge.dump", timedelta(days=7))
        assert cleaner.candidates(tmp_path, PATTERNS, 7) == []

    def test_just_past_window_is_selected(self, tmp_path: Path, cleaner: RetentionCleaner):
        _make(tmp_path, "edge.dump", timedelta(days=7, seconds=1))
        assert [c.name for c in cleaner.candidates(tmp_path, PATTERNS, 7)] == ["edge.dump"]

    def test_directories_ignored(self, tmp_path: Path, cleaner: RetentionCleaner):
        old_dir = tmp_path / "weird.dump"
        old_dir.mkdir()
        ts = NOW - timedelta(days=30).total_seconds()
        os.utime(old_dir, (ts, ts))
        assert cleaner.candidates(tmp_path, PATTERNS, 7) == []

    def test_missing_directory(self, tmp_path: Path, cleaner: RetentionCleaner):
        assert cleaner.candidates(tmp_path / "absent", PATTERNS, 7) == []

    def test_zero_day_window(self, tmp_path: Path, cleaner: RetentionCleaner):
        _make(tmp_path, "a.dump", timedelta(minutes=1))
        assert len(cleaner.candidates(tmp_path, PATTERNS, 0)) == 1


class TestSweep:
    def test_sweep_deletes_and_counts(self, tmp_path: Path, cleaner: RetentionCleaner):
        old = _make(tmp_path, "db_old.dump", timedelta(days=10))
        new = _make(tmp_path, "db_new.dump", timedelta(days=1))
        assert cleaner.sweep(tmp_path, PATTERNS, 7) == 1
        assert not old.exists()
        assert new.exists()

    def test_second_sweep_is_noop(self, tmp_path: Path, cleaner: RetentionCleaner):
        _make(tmp_path, "db_old.dump", timedelta(days=10))
        cleaner.sweep(tmp_path, PATTERNS, 7)
        assert cleaner.sweep(tmp_path, PATTERNS, 7) == 0

    def test_sweep_logs_each_deletion(self, tmp_path: Path, cleaner: RetentionCleaner, caplog):
        _make(tmp_path, "db_old.dump", timedelta(days=10))
        with caplog.at_level("INFO", logger="pgwarden"):
            cleaner.sweep(tmp_path, PATTERNS, 7)
        messages = [r.getMessage() for r in caplog.records]
        assert "Deleting old backup: db_old.dump" in messages
        assert "Cleanup completed - removed 1 old backup file(s)" in messages

    def test_sweep_reports_nothing_to_remove(self, tmp_path: Path, cleaner: RetentionCleaner, caplog):
        with caplog.at_level("INFO", logger="pgwarden"):
            assert cleaner.sweep(tmp_path, PATTERNS, 7) == 0
        assert any(r.getMessage() == "No old backup files to remove" for r in caplog.records)

    def test_vanished_file_not_counted(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        cleaner = RetentionCleaner(now=lambda: NOW)
        path = _make(tmp_path, "db_old.dump", timedelta(days=10))
        original = cleaner.candidates

        def racing(*args):
            found = original(*args)
            path.unlink()
            return found

        monkeypatch.setattr(cleaner, "candidates", racing)
        assert cleaner.sweep(tmp_path, PATTERNS, 7) == 0


class TestWindowAcrossDst:
    """The window is measured in elapsed seconds, not wall-clock time."""

    def test_inside_window_across_dst_start(self, tmp_path: Path, dst_zone):
        now = datetime(2025, 3, 12, 12, 0, tzinfo=timezone.utc).timestamp()
        path = tmp_path / "edge.dump"
        path.write_bytes(b"x")
        ts = now - 7 * 86400 + 1800
        os.utime(path, (ts, ts))
        assert RetentionCleaner(now=lambda: now).candidates(tmp_path, PATTERNS, 7) == []

    def test_past_window_across_dst_start(self, tmp_path: Path, dst_zone):
        now = datetime(2025, 3, 12, 12, 0, tzinfo=timezone.utc).timestamp()
        path = tmp_path / "edge.dump"
        path.write_bytes(b"x")
        ts = now - 7 * 86400 - 1
        os.utime(path, (ts, ts))
        found = RetentionCleaner(now=lambda: now).candidates(tmp_path, PATTERNS, 7)
        assert [c.name for c in found] == ["edge.dump"]
        assert found[0].age == timedelta(days=7, seconds=1)


class TestFormatChange:
    def test_old_custom_dumps_age_out_after_switch_to_plain(self, tmp_path: Path):
        from pgwarden.config import WardenSettings

        patterns = WardenSettings(db_user="postgres", dump_format="plain").effective_retention_patterns
        _make(tmp_path, "db_2025-10-01-020000.dump", timedelta(days=30))
        _make(tmp_path, "db_2025-10-01-020000.sql", timedelta(days=30))
        cleaner = RetentionCleaner(now=lambda: NOW)
        assert cleaner.sweep(tmp_path, patterns, 7) == 2
