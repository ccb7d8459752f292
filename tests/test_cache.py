"""Tests for the analysis cache gate: freshness, persistence and bulk conversion."""

from __future__ import annotations

import json
import os
import threading
import time
from unittest.mock import Mock, patch

import pytest

from w3stats.core.errors import LibraryPathNotFound, ReplayDecodeError
from w3stats.infra.cache import (
    AnalysisCache,
    ConversionOutcome,
    ConversionResult,
    ConversionSummary,
)

RECORD = {"game": {"player_count": 2, "map": "Maps\\(2)EchoIsles.w3x", "winner_team": 0}}


@pytest.fixture
def decoder():
    return Mock(return_value=RECORD)


@pytest.fixture
def cache(decoder):
    return AnalysisCache(provider=decoder)


class TestAnalysisPath:
    """Sidecar path derivation."""

    def test_sibling_path(self, cache, tmp_path):
        assert cache.analysis_path_for(tmp_path / "game.w3g") == tmp_path / "game.w3g_analysis.json"

    def test_suffix_case_insensitive(self, cache, tmp_path):
        assert (
            cache.analysis_path_for(tmp_path / "Game.W3G")
            == tmp_path / "Game.w3g_analysis.json"
        )


class TestFreshness:
    """An artifact is reusable while its mtime is not older than the replay's."""

    def test_missing_artifact_is_stale(self, cache, replay_root, write_replay):
        replay = write_replay(replay_root / "a.w3g")
        assert not cache.is_fresh(replay)

    def test_newer_artifact_is_fresh(self, cache, replay_root, write_replay, write_artifact):
        replay = write_replay(replay_root / "a.w3g")
        write_artifact(replay, RECORD, age=5)
        assert cache.is_fresh(replay)

    def test_equal_mtime_is_fresh(self, cache, replay_root, write_replay, write_artifact):
        replay = write_replay(replay_root / "a.w3g")
        write_artifact(replay, RECORD, age=0)
        assert cache.is_fresh(replay)

    def test_older_artifact_is_stale(self, cache, replay_root, write_replay, write_artifact):
        replay = write_replay(replay_root / "a.w3g")
        write_artifact(replay, RECORD, age=-5)
        assert not cache.is_fresh(replay)


class TestEnsure:
    """Single-file cache gate."""

    def test_first_call_converts(self, cache, decoder, replay_root, write_replay):
        replay = write_replay(replay_root / "a.w3g")

        result = cache.ensure(replay)

        assert result.outcome is ConversionOutcome.CONVERTED
        assert result.record == RECORD
        assert result.persisted
        decoder.assert_called_once_with(replay)
        artifact = replay_root / "a.w3g_analysis.json"
        assert json.loads(artifact.read_text()) == RECORD

    def test_artifact_is_indented(self, cache, replay_root, write_replay):
        replay = write_replay(replay_root / "a.w3g")
        cache.ensure(replay)

        text = (replay_root / "a.w3g_analysis.json").read_text()
        assert text == json.dumps(RECORD, indent=2)

    def test_second_call_reuses(self, cache, decoder, replay_root, write_replay):
        """An unchanged replay is decoded only once."""
        replay = write_replay(replay_root / "a.w3g")

        cache.ensure(replay)
        result = cache.ensure(replay)

        assert result.outcome is ConversionOutcome.REUSED
        assert decoder.call_count == 1

    def test_touching_replay_triggers_one_redecode(
        self, cache, decoder, replay_root, write_replay
    ):
        """A replay newer than its artifact is decoded again, exactly once."""
        replay = write_replay(replay_root / "a.w3g")
        cache.ensure(replay)
        artifact = replay_root / "a.w3g_analysis.json"

        replay_mtime = replay.stat().st_mtime
        os.utime(artifact, (replay_mtime - 60, replay_mtime - 60))
        decoder.return_value = {"game": {"winner_team": 1}}

        first = cache.ensure(replay)
        second = cache.ensure(replay)

        assert first.outcome is ConversionOutcome.CONVERTED
        assert second.outcome is ConversionOutcome.REUSED
        assert decoder.call_count == 2
        assert json.loads(artifact.read_text()) == {"game": {"winner_team": 1}}

    def test_load_reads_reused_record(self, cache, decoder, replay_root, write_replay, write_artifact):
        replay = write_replay(replay_root / "a.w3g")
        write_artifact(replay, {"game": {"winner_team": 3}})

        result = cache.ensure(replay, load=True)

        assert result.outcome is ConversionOutcome.REUSED
        assert result.record == {"game": {"winner_team": 3}}
        decoder.assert_not_called()

    def test_unreadable_fresh_artifact_is_redecoded(
        self, cache, decoder, replay_root, write_replay, write_artifact
    ):
        replay = write_replay(replay_root / "a.w3g")
        write_artifact(replay, "{not json")

        result = cache.ensure(replay, load=True)

        assert result.outcome is ConversionOutcome.CONVERTED
        assert result.record == RECORD

    def test_decode_failure_writes_nothing(self, cache, decoder, replay_root, write_replay):
        replay = write_replay(replay_root / "bad.w3g")
        decoder.side_effect = ValueError("corrupt header")

        result = cache.ensure(replay)

        assert result.outcome is ConversionOutcome.FAILED
        assert "corrupt header" in result.error
        assert not (replay_root / "bad.w3g_analysis.json").exists()
        assert replay.exists()

    def test_write_failure_still_returns_record(self, cache, replay_root, write_replay):
        """A failed artifact write is logged; the decoded record is still returned."""
        replay = write_replay(replay_root / "a.w3g")

        with patch("w3stats.infra.cache.tempfile.mkstemp", side_effect=PermissionError("read-only")):
            result = cache.ensure(replay)

        assert result.outcome is ConversionOutcome.CONVERTED
        assert result.record == RECORD
        assert not result.persisted
        assert not (replay_root / "a.w3g_analysis.json").exists()

    def test_no_temp_files_left(self, cache, replay_root, write_replay):
        replay = write_replay(replay_root / "a.w3g")
        cache.ensure(replay)

        assert sorted(p.name for p in replay_root.iterdir()) == ["a.w3g", "a.w3g_analysis.json"]


class TestLocking:
    """Per-replay locks serialize concurrent decodes."""

    def test_concurrent_ensure_decodes_once(self, cache, decoder, replay_root, write_replay):
        replay = write_replay(replay_root / "a.w3g")

        def slow_decode(path):
            time.sleep(0.2)
            return RECORD

        decoder.side_effect = slow_decode
        results = []
        threads = [
            threading.Thread(target=lambda: results.append(cache.ensure(replay))) for _ in range(2)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert decoder.call_count == 1
        assert sorted(r.outcome.value for r in results) == ["converted", "reused"]

    def test_locks_released_after_use(self, cache, replay_root, write_replay):
        write_replay(replay_root / "a.w3g")
        write_replay(replay_root / "b.w3g")

        cache.convert_directory(replay_root)

        assert len(cache._locks) == 0


class TestLoad:
    """Record loading with error reporting."""

    def test_missing_replay(self, cache, replay_root):
        with pytest.raises(LibraryPathNotFound):
            cache.load(replay_root / "missing.w3g")

    def test_decode_error_raised(self, cache, decoder, replay_root, write_replay):
        replay = write_replay(replay_root / "bad.w3g")
        decoder.side_effect = RuntimeError("truncated")

        with pytest.raises(ReplayDecodeError) as exc_info:
            cache.load(replay)
        assert exc_info.value.reason == "truncated"
        assert "bad.w3g" in str(exc_info.value)


class TestConvertDirectory:
    """Bulk conversion over a folder tree."""

    def test_recursive_counts(self, cache, decoder, replay_root, write_replay):
        write_replay(replay_root / "a.w3g")
        write_replay(replay_root / "season1" / "b.W3G")
        write_replay(replay_root / "season1" / "week2" / "c.w3g")
        (replay_root / "notes.txt").write_text("not a replay")

        summary = cache.convert_directory(replay_root)

        assert summary.to_dict() == {
            "totalFiles": 3,
            "convertedFiles": 3,
            "skippedFiles": 0,
            "errorFiles": 0,
        }
        assert (replay_root / "season1" / "b.w3g_analysis.json").exists()

    def test_idempotent(self, cache, decoder, replay_root, write_replay):
        """A second run converts nothing and skips every successful replay."""
        write_replay(replay_root / "a.w3g")
        write_replay(replay_root / "b.w3g")
        write_replay(replay_root / "sub" / "bad.w3g")

        def decode(path):
            if path.name == "bad.w3g":
                raise ValueError("corrupt")
            return RECORD

        decoder.side_effect = decode

        first = cache.convert_directory(replay_root)
        second = cache.convert_directory(replay_root)

        assert (first.converted, first.failed) == (2, 1)
        assert second.converted == 0
        assert second.skipped == second.total - second.failed
        assert second.failed == 1

    def test_empty_directory(self, cache, replay_root):
        assert cache.convert_directory(replay_root).total == 0

    def test_missing_root_raises(self, cache, tmp_path):
        with pytest.raises(OSError):
            cache.convert_directory(tmp_path / "missing")


class TestConversionSummary:
    def test_add_outcomes(self, tmp_path):
        summary = ConversionSummary()
        for outcome in (ConversionOutcome.REUSED, ConversionOutcome.CONVERTED, ConversionOutcome.FAILED):
            summary.add(ConversionResult(tmp_path / "x.w3g", tmp_path / "x.json", outcome))

        assert (summary.total, summary.skipped, summary.converted, summary.failed) == (3, 1, 1, 1)
