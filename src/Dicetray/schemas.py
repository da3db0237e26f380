# schemas.py

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from Dicetray.rules.dice import face_count, is_critical
from Dicetray.rules.types import Die, DieKind, RollOutcome, RollRecord

# -----------------------------
# Read-only display projections
# -----------------------------


class DieView(BaseModel):
    """One die as a front end should draw it."""

    id: str
    kind: DieKind
    value: int = Field(ge=1, le=20)
    faces: int
    is_rolling: bool
    # Same rule as the history log, so a face and its log row always agree.
    is_critical: bool

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_die(cls, die: Die) -> "DieView":
        return cls(
            id=die.id,
            kind=die.kind,
            value=die.value,
            faces=face_count(die.kind),
            is_rolling=die.is_rolling,
            is_critical=is_critical(die.kind, die.value),
        )


class RollRecordView(BaseModel):
    id: str
    kind: DieKind
    value: int
    rolled_at: datetime
    is_critical: bool
    outcome: RollOutcome | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_record(cls, rec: RollRecord) -> "RollRecordView":
        return cls(
            id=rec.id,
            kind=rec.kind,
            value=rec.value,
            rolled_at=rec.rolled_at,
            is_critical=rec.is_critical,
            outcome=rec.outcome,
        )


class SessionView(BaseModel):
    """Snapshot of a dice session: the tray, the log, and which controls apply."""

    dice: list[DieView]
    history: list[RollRecordView] = Field(default_factory=list, max_length=20)
    can_remove: bool
    can_roll_all: bool

    model_config = ConfigDict(frozen=True)
