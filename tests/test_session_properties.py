import asyncio

from hypothesis import given, settings
from hypothesis import strategies as st

from Dicetray.rules.dice import face_count, is_critical
from Dicetray.rules.types import DieKind
from Dicetray.session import HISTORY_LIMIT, DiceSession

kinds = st.sampled_from([DieKind.D6, DieKind.D20])
tray_ops = st.lists(
    st.one_of(
        st.tuples(st.just("add"), kinds),
        st.tuples(st.just("remove"), st.integers(min_value=0, max_value=30)),
        st.tuples(st.just("reset"), st.none()),
    ),
    max_size=60,
)


@settings(deadline=None)
@given(tray_ops)
def test_tray_never_empties(ops):
    s = DiceSession(delay=0, seed=0)
    for op, arg in ops:
        if op == "add":
            s.add_die(arg)
        elif op == "remove":
            dice = s.dice
            s.remove_die(dice[arg % len(dice)].id)
        else:
            s.reset_to_default()
        assert len(s.dice) >= 1
        assert all(1 <= d.value <= face_count(d.kind) for d in s.dice)


@settings(max_examples=25, deadline=None)
@given(st.lists(kinds, min_size=0, max_size=6), st.integers(min_value=1, max_value=8), st.integers())
def test_committed_rolls_respect_faces_cap_and_crit_rule(extra, rounds, seed):
    async def _run():
        s = DiceSession(delay=0, seed=seed)
        for kind in extra:
            s.add_die(kind)
        for _ in range(rounds):
            await s.roll_all()
            for d in s.dice:
                assert 1 <= d.value <= face_count(d.kind)
            history = s.get_history()
            assert len(history) <= HISTORY_LIMIT
            for rec in history:
                assert 1 <= rec.value <= face_count(rec.kind)
                assert rec.is_critical == is_critical(rec.kind, rec.value)
        await s.aclose()

    asyncio.run(_run())
