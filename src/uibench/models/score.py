"""Human score records attached to runs.

A score is a checklist filled in by a reviewer. The checklist answers are
free-form extra keys (usually booleans); only the fields reduced into
ScoreSummary have a fixed name.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from uibench.models.run import ScoreSummary


def _as_number(value: bool | int | float | None) -> int | float | None:
    if isinstance(value, bool):
        return int(value)
    return value


class ScoreRecord(BaseModel):
    """Contents of a run's ``score.json``."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    overall: bool | int | float | None = None
    max_score: int | None = Field(default=None, alias="maxScore")
    notes: str | None = None
    visual_quality: bool | int | float | None = None
    fidelity: bool | int | float | None = None
    usability: bool | int | float | None = None
    completeness: bool | int | float | None = None
    correctness: bool | int | float | None = None
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @property
    def answers(self) -> dict[str, object]:
        """Checklist answers: every key not part of the fixed schema."""
        return dict(self.model_extra or {})

    def summary(self) -> ScoreSummary:
        """Reduce the full score to the six summary fields."""
        return ScoreSummary(
            overall=_as_number(self.overall),
            visual=_as_number(self.visual_quality),
            fidelity=_as_number(self.fidelity),
            usability=_as_number(self.usability),
            completeness=_as_number(self.completeness),
            correctness=_as_number(self.correctness),
        )
