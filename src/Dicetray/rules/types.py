from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Literal

RollOutcome = Literal["critical_success", "critical_failure"]


class DieKind(str, Enum):
    D6 = "d6"
    D20 = "d20"

    @classmethod
    def parse(cls, raw: str | DieKind) -> DieKind:
        if isinstance(raw, DieKind):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown die kind: {raw!r}") from None


@dataclass
class Die:
    id: str
    kind: DieKind
    value: int
    is_rolling: bool = False


@dataclass(frozen=True)
class RollRecord:
    id: str
    kind: DieKind
    value: int
    rolled_at: datetime
    is_critical: bool

    @property
    def outcome(self) -> RollOutcome | None:
        if not self.is_critical:
            return None
        return "critical_failure" if self.value == 1 else "critical_success"
