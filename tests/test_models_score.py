"""Tests for uibench.models.score and the run models' JSON contract."""

from datetime import datetime, timezone

from uibench.models.run import RunEntry, RunParams
from uibench.models.score import ScoreRecord


class TestScoreRecord:
    """Test ScoreRecord parsing and reduction."""

    def test_checklist_answers_are_extras(self):
        """Unknown keys are kept as checklist answers."""
        record = ScoreRecord.model_validate(
            {"overall": 7, "maxScore": 10, "notes": "tidy", "hero_cta": True, "nav": False}
        )
        assert record.max_score == 10
        assert record.answers == {"hero_cta": True, "nav": False}

    def test_null_notes_accepted(self):
        """Checklist payloads may send notes as null."""
        record = ScoreRecord.model_validate({"overall": 6, "notes": None, "hero_cta": True})
        assert record.notes is None
        assert record.summary().overall == 6

    def test_summary_maps_fields_and_booleans(self):
        """visual_quality becomes visual and booleans become 1/0."""
        record = ScoreRecord(
            overall=7.5, visual_quality=True, fidelity=False, usability=3, correctness=None
        )
        summary = record.summary()
        assert summary.overall == 7.5
        assert summary.visual == 1
        assert summary.fidelity == 0
        assert summary.usability == 3
        assert summary.completeness is None
        assert summary.correctness is None

    def test_dump_uses_aliases(self):
        """maxScore and updatedAt are camelCase on disk; answers keep their keys."""
        stamp = datetime(2026, 1, 1, tzinfo=timezone.utc)
        record = ScoreRecord.model_validate({"max_score": 5, "layout_ok": True})
        record = record.model_copy(update={"updated_at": stamp})
        dumped = record.model_dump(mode="json", by_alias=True)
        assert dumped["maxScore"] == 5
        assert dumped["updatedAt"].startswith("2026-01-01T00:00:00")
        assert dumped["layout_ok"] is True


class TestRunEntryContract:
    """Index entries serialize with camelCase keys."""

    def test_camel_case_round_trip(self):
        """An entry read from index.json keeps every field."""
        raw = {
            "id": "run-1",
            "createdAt": "2026-03-07T10:00:00Z",
            "provider": "minimax",
            "model": "MiniMax-M2",
            "benchmark": {"id": "b1", "title": "Dashboard", "difficulty": "hard"},
            "latencyMs": 850,
            "tokenUsage": None,
            "params": {"temperature": 0.7, "maxTokens": 2048},
            "path": "runs/2026/03/07/run-1",
            "scoreSummary": {"overall": 9, "visual": 1},
        }
        entry = RunEntry.model_validate(raw)
        assert entry.params == RunParams(temperature=0.7, max_tokens=2048)
        assert entry.score_summary is not None and entry.score_summary.overall == 9
        assert entry.benchmark is not None
        assert entry.benchmark.model_extra == {"difficulty": "hard"}

        dumped = entry.model_dump(mode="json", by_alias=True)
        assert dumped["latencyMs"] == 850
        assert dumped["params"]["maxTokens"] == 2048
        assert dumped["scoreSummary"]["visual"] == 1
