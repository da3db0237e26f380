# rules/dice.py

from __future__ import annotations

import random

import structlog

from Dicetray.rules.types import DieKind

_FACES: dict[DieKind, int] = {DieKind.D6: 6, DieKind.D20: 20}


def face_count(kind: DieKind) -> int:
    return _FACES[kind]


def is_critical(kind: DieKind, value: int) -> bool:
    """D6 crits on a six; D20 crits on either a natural 1 or a natural 20."""
    if kind is DieKind.D6:
        return value == 6
    return value in (1, 20)


class DiceRNG:
    def __init__(self, seed: int | None = None):
        self._rng = random.Random(seed)
        self._log = structlog.get_logger()

    def roll(self, kind: DieKind) -> int:
        sides = face_count(kind)
        value = self._rng.randint(1, sides)
        self._log.debug("rules.dice.roll.result", kind=kind.value, sides=sides, value=value)
        return value
