from combattracker.core.engine.turns import sort_participants_by_initiative

from factories import make_participant


def test_sort_by_initiative_descending():
    a = make_participant("a", "A", 12)
    b = make_participant("b", "B", 18)
    c = make_participant("c", "C", 3)

    ordered = sort_participants_by_initiative([a, b, c])

    assert [p.id for p in ordered] == ["b", "a", "c"]


def test_ties_keep_insertion_order_not_name_order():
    zed = make_participant("z", "Zed", 15)
    amy = make_participant("a", "Amy", 15)
    mid = make_participant("m", "Mid", 20)
    bob = make_participant("b", "Bob", 15)

    ordered = sort_participants_by_initiative([zed, amy, mid, bob])

    assert [p.id for p in ordered] == ["m", "z", "a", "b"]


def test_sort_does_not_mutate_input():
    a = make_participant("a", "A", 1)
    b = make_participant("b", "B", 2)
    participants = [a, b]

    sort_participants_by_initiative(participants)

    assert participants == [a, b]
