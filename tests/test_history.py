# test_history.py
from datetime import UTC, datetime, timedelta

from Dicetray.rules.types import DieKind
from Dicetray.session import HISTORY_LIMIT, DiceSession


class _TickClock:
    def __init__(self):
        self._t = datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self):
        self._t += timedelta(seconds=1)
        return self._t


async def test_history_is_capped_and_evicts_oldest_first():
    s = DiceSession(delay=0, seed=11, clock=_TickClock())
    die = s.dice[0]
    records = []
    for _ in range(HISTORY_LIMIT + 5):
        records.append(await s.roll_one(die.id))

    history = s.get_history()
    assert len(history) == HISTORY_LIMIT == 20
    # newest first; the five oldest were dropped
    assert list(history) == list(reversed(records))[:HISTORY_LIMIT]
    assert records[0] not in history
    assert [r.rolled_at for r in history] == sorted((r.rolled_at for r in history), reverse=True)
    await s.aclose()


async def test_batch_truncates_when_history_nearly_full():
    s = DiceSession(delay=0, seed=12)
    die = s.dice[0]
    singles = [await s.roll_one(die.id) for _ in range(19)]
    s.add_die(DieKind.D6)
    s.add_die(DieKind.D6)

    batch = await s.roll_all()
    history = s.get_history()
    assert len(batch) == 3
    assert len(history) == 20
    assert list(history[:3]) == batch
    # two oldest singles evicted
    assert list(history[3:]) == list(reversed(singles))[:17]
    await s.aclose()


async def test_batch_larger_than_cap_keeps_head_of_batch():
    s = DiceSession(delay=0, seed=13)
    for _ in range(HISTORY_LIMIT + 4):
        s.add_die(DieKind.D6)
    batch = await s.roll_all()
    assert len(batch) == HISTORY_LIMIT + 5
    assert list(s.get_history()) == batch[:HISTORY_LIMIT]
    await s.aclose()


async def test_history_is_read_only_snapshot(session):
    await session.roll_all()
    history = session.get_history()
    assert isinstance(history, tuple)
    await session.roll_all()
    assert len(history) == 1
    assert len(session.get_history()) == 2
