from __future__ import annotations

from enum import Enum

from pydantic import Field, computed_field

from .common import ApiModel, UtcDatetime


class BreathingPattern(str, Enum):
    BOX = "4-4-4-4"
    RELAX = "4-7-8"
    DEEP = "6-2-6-2"


# (label, inhale, hold, exhale, hold) in seconds
PATTERN_PHASES: dict[BreathingPattern, tuple[str, int, int, int, int]] = {
    BreathingPattern.BOX: ("4-4-4-4 (Box)", 4, 4, 4, 4),
    BreathingPattern.RELAX: ("4-7-8 (Relax)", 4, 7, 8, 0),
    BreathingPattern.DEEP: ("6-2-6-2 (Deep)", 6, 2, 6, 2),
}


class BreathingSessionCreate(ApiModel):
    pattern: BreathingPattern
    duration: int = Field(..., ge=0, le=240, description="Session length in minutes")


class BreathingSessionModel(ApiModel):
    id: int
    user_id: int
    pattern: str
    duration: int
    completed_at: UtcDatetime


class BreathingPatternModel(ApiModel):
    id: BreathingPattern
    label: str
    inhale: int
    hold_in: int
    exhale: int
    hold_out: int

    @computed_field(alias="cycleSeconds", return_type=int)
    def cycle_seconds(self) -> int:
        return self.inhale + self.hold_in + self.exhale + self.hold_out


def pattern_catalog() -> list[BreathingPatternModel]:
    return [
        BreathingPatternModel(
            id=pattern,
            label=label,
            inhale=inhale,
            hold_in=hold_in,
            exhale=exhale,
            hold_out=hold_out,
        )
        for pattern, (label, inhale, hold_in, exhale, hold_out) in PATTERN_PHASES.items()
    ]
