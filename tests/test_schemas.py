import json

import pytest
from pydantic import ValidationError

from Dicetray.rules.types import Die, DieKind
from Dicetray.schemas import DieView, SessionView


def test_die_view_uses_history_crit_rule():
    # a d6 showing 1 is not critical, even though it is the lowest face
    low_d6 = DieView.from_die(Die(id="x", kind=DieKind.D6, value=1))
    assert low_d6.is_critical is False
    assert low_d6.faces == 6
    top_d6 = DieView.from_die(Die(id="y", kind=DieKind.D6, value=6))
    assert top_d6.is_critical is True
    assert DieView.from_die(Die(id="z", kind=DieKind.D20, value=1)).is_critical is True


def test_views_are_frozen():
    view = DieView.from_die(Die(id="x", kind=DieKind.D20, value=12))
    with pytest.raises(ValidationError):
        view.value = 3


async def test_snapshot_projection(session):
    session.add_die(DieKind.D6)
    view = session.snapshot()
    assert isinstance(view, SessionView)
    assert view.can_remove is True
    assert view.can_roll_all is True
    assert [d.kind for d in view.dice] == [DieKind.D20, DieKind.D6]
    assert view.history == []

    task = session.roll_all()
    rolling = session.snapshot()
    assert rolling.can_roll_all is False
    assert all(d.is_rolling for d in rolling.dice)
    await task

    done = session.snapshot()
    assert len(done.history) == 2
    payload = json.loads(json.dumps(done.model_dump(mode="json")))
    assert payload["dice"][1]["kind"] == "d6"
    assert set(payload["history"][0]) >= {"id", "kind", "value", "rolled_at", "is_critical", "outcome"}


async def test_single_die_cannot_be_removed_in_view(session):
    assert session.snapshot().can_remove is False
