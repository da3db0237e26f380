"""Dice session: the dice tray plus its bounded roll history.

All mutation happens on the event loop thread. A roll is two-phase: the die
flips to rolling as soon as the roll is requested, and a task scheduled on
the running loop commits the new value (and its history entry) after a fixed
delay. Rolls are never cancelled.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable, Coroutine, Iterable
from datetime import UTC, datetime
from typing import Any, TypeVar

import structlog

from Dicetray.metrics import inc_counter, observe_histogram, record_roll
from Dicetray.rules.dice import DiceRNG, face_count, is_critical
from Dicetray.rules.types import Die, DieKind, RollRecord
from Dicetray.schemas import DieView, RollRecordView, SessionView
from Dicetray.tools.ulid import generate_ulid

log = structlog.get_logger()

ROLL_DELAY_SECONDS = 0.8
HISTORY_LIMIT = 20
DEFAULT_KIND = DieKind.D20

RollListener = Callable[[list[RollRecord]], None]
T = TypeVar("T")


class SessionClosedError(RuntimeError):
    """Raised when a closed session is used."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DiceSession:
    def __init__(
        self,
        *,
        delay: float = ROLL_DELAY_SECONDS,
        rng: DiceRNG | None = None,
        seed: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = generate_ulid,
    ):
        if delay < 0:
            raise ValueError("roll delay must be >= 0")
        self._delay = float(delay)
        self._rng = rng if rng is not None else DiceRNG(seed)
        self._clock = clock
        self._new_id = id_factory
        self._dice: list[Die] = [self._make_die(DEFAULT_KIND)]
        self._history: deque[RollRecord] = deque(maxlen=HISTORY_LIMIT)
        self._pending: set[asyncio.Task[Any]] = set()
        self._listeners: list[RollListener] = []
        self._closed = False
        log.info("dice.session.created", delay=self._delay)

    # --- lifecycle ---

    async def __aenter__(self) -> DiceSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Let in-flight rolls land, then refuse further use."""
        if self._closed:
            return
        await self.wait_idle()
        self._closed = True
        self._listeners.clear()
        log.info("dice.session.closed", history=len(self._history))

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("dice session is closed")

    # --- read side ---

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def dice(self) -> tuple[Die, ...]:
        return tuple(self._dice)

    @property
    def is_rolling(self) -> bool:
        return any(d.is_rolling for d in self._dice)

    @property
    def can_remove(self) -> bool:
        return len(self._dice) > 1

    def get_die(self, die_id: str) -> Die | None:
        for die in self._dice:
            if die.id == die_id:
                return die
        return None

    def get_history(self) -> tuple[RollRecord, ...]:
        """Roll history, newest first."""
        return tuple(self._history)

    def snapshot(self) -> SessionView:
        return SessionView(
            dice=[DieView.from_die(d) for d in self._dice],
            history=[RollRecordView.from_record(r) for r in self._history],
            can_remove=self.can_remove,
            can_roll_all=not self.is_rolling,
        )

    # --- tray bookkeeping ---

    def _make_die(self, kind: DieKind) -> Die:
        return Die(id=self._new_id(), kind=kind, value=face_count(kind))

    def add_die(self, kind: DieKind | str) -> Die:
        self._ensure_open()
        die = self._make_die(DieKind.parse(kind))
        self._dice.append(die)
        log.info("dice.die.added", die_id=die.id, kind=die.kind.value, count=len(self._dice))
        return die

    def remove_die(self, die_id: str) -> bool:
        """Remove a die unless it is the last one. Returns True if a die was removed."""
        self._ensure_open()
        die = self.get_die(die_id)
        if die is None or not self.can_remove:
            inc_counter("dice.remove.rejected")
            log.debug(
                "dice.die.remove_rejected",
                die_id=die_id,
                reason="unknown_die" if die is None else "last_die",
            )
            return False
        self._dice.remove(die)
        log.info("dice.die.removed", die_id=die_id, count=len(self._dice))
        return True

    def reset_to_default(self) -> Die:
        self._ensure_open()
        dropped = len(self._dice)
        die = self._make_die(DEFAULT_KIND)
        self._dice = [die]
        log.info("dice.session.reset", dropped=dropped)
        return die

    # --- rolling ---

    def roll_one(self, die_id: str) -> asyncio.Task[RollRecord] | None:
        """Start rolling a single die; returns the task resolving to its RollRecord.

        Returns None (and changes nothing) when the die is unknown or already rolling.
        """
        self._ensure_open()
        die = self.get_die(die_id)
        if die is None or die.is_rolling:
            inc_counter("dice.roll.rejected")
            log.debug(
                "dice.roll.rejected",
                die_id=die_id,
                reason="unknown_die" if die is None else "already_rolling",
            )
            return None
        loop = asyncio.get_running_loop()
        self._start([die])
        return self._spawn(loop, self._resolve_one(die))

    def roll_all(self) -> asyncio.Task[list[RollRecord]] | None:
        """Roll every die at once; the task resolves to the records in tray order.

        Returns None (and changes nothing) while any die is still rolling.
        """
        self._ensure_open()
        if self.is_rolling:
            inc_counter("dice.roll.rejected")
            log.debug("dice.roll.rejected", reason="roll_in_progress")
            return None
        loop = asyncio.get_running_loop()
        batch = list(self._dice)
        self._start(batch)
        return self._spawn(loop, self._resolve(batch))

    async def wait_idle(self) -> None:
        """Wait for every in-flight roll to commit."""
        while self._pending:
            await asyncio.gather(*self._pending)

    def _start(self, dice: list[Die]) -> None:
        for die in dice:
            die.is_rolling = True
        log.debug("dice.roll.started", die_ids=[d.id for d in dice])

    def _spawn(
        self, loop: asyncio.AbstractEventLoop, coro: Coroutine[Any, Any, T]
    ) -> asyncio.Task[T]:
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _resolve_one(self, die: Die) -> RollRecord:
        records = await self._resolve([die])
        return records[0]

    async def _resolve(self, dice: list[Die]) -> list[RollRecord]:
        await asyncio.sleep(self._delay)
        return self._commit(dice)

    def _commit(self, dice: list[Die]) -> list[RollRecord]:
        # A die removed mid-roll still lands: its record goes into the history.
        rolled_at = self._clock()
        records: list[RollRecord] = []
        for die in dice:
            value = self._rng.roll(die.kind)
            crit = is_critical(die.kind, value)
            die.value = value
            die.is_rolling = False
            records.append(
                RollRecord(
                    id=self._new_id(),
                    kind=die.kind,
                    value=value,
                    rolled_at=rolled_at,
                    is_critical=crit,
                )
            )
            record_roll(die.kind.value, crit)
        # appendleft in reverse keeps the batch in tray order at the head of the log
        for rec in reversed(records):
            self._history.appendleft(rec)
        observe_histogram("dice.batch.size", len(records))
        log.info(
            "dice.roll.committed",
            rolls=[{"kind": r.kind.value, "value": r.value, "critical": r.is_critical} for r in records],
            history=len(self._history),
        )
        self._notify(records)
        return records

    # --- listeners ---

    def subscribe(self, listener: RollListener) -> Callable[[], None]:
        """Call listener with each committed batch of records. Returns an unsubscribe callable."""
        self._ensure_open()
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, records: Iterable[RollRecord]) -> None:
        batch = list(records)
        for listener in list(self._listeners):
            try:
                listener(batch)
            except Exception:
                inc_counter("dice.listener.failed")
                log.warning("dice.listener.failed", exc_info=True)
