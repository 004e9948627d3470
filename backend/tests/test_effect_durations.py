import pytest

from combattracker.core.engine.state import PERMANENT
from combattracker.core.engine.turns import (
    add_status_effect,
    decrement_effect_durations,
    remove_status_effect,
)
from combattracker.core.errors import NotFoundError

from factories import make_effect, make_participant


def test_one_round_effect_removed_after_one_decrement():
    p = make_participant("p", "P", 10, status_effects=(make_effect("e1", 1),))

    (after,) = decrement_effect_durations([p])

    assert after.status_effects == ()


def test_permanent_effect_survives_any_number_of_decrements():
    p = make_participant(
        "p", "P", 10, status_effects=(make_effect("curse", PERMANENT, name="Cursed"),)
    )

    state = (p,)
    for _ in range(100):
        state = decrement_effect_durations(state)

    assert [e.id for e in state[0].status_effects] == ["curse"]
    assert state[0].status_effects[0].is_permanent


def test_timed_effect_expires_exactly_when_duration_reaches_zero():
    p = make_participant("p", "P", 10, status_effects=(make_effect("e3", 3),))

    one = decrement_effect_durations([p])
    two = decrement_effect_durations(one)
    three = decrement_effect_durations(two)

    assert one[0].status_effects[0].duration_in_rounds == 2
    assert two[0].status_effects[0].duration_in_rounds == 1
    assert three[0].status_effects == ()


def test_surviving_effects_keep_order():
    effects = (
        make_effect("a", 2, name="Blessed"),
        make_effect("b", 1, name="Stunned"),
        make_effect("c", PERMANENT, name="Cursed"),
        make_effect("d", 4, name="Hasted"),
    )
    p = make_participant("p", "P", 10, status_effects=effects)

    (after,) = decrement_effect_durations([p])

    assert [e.id for e in after.status_effects] == ["a", "c", "d"]


def test_decrement_does_not_mutate_input():
    p = make_participant("p", "P", 10, status_effects=(make_effect("e", 2),))
    participants = [p]

    decrement_effect_durations(participants)

    assert participants[0].status_effects[0].duration_in_rounds == 2


def test_add_and_remove_status_effect():
    p = make_participant("p", "P", 10)

    with_effect = add_status_effect(p, "Frightened", 2, applied_at_round=3, effect_id="fr")
    assert with_effect.status_effects[0].applied_at_round == 3
    assert with_effect.status_effects[0].duration_in_rounds == 2

    assert remove_status_effect(with_effect, "fr").status_effects == ()


def test_remove_unknown_effect_raises_not_found():
    p = make_participant("p", "P", 10)

    with pytest.raises(NotFoundError):
        remove_status_effect(p, "missing")
