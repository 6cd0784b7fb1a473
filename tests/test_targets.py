import random

import pytest

from gallery.messages import InvalidTargetCountError
from gallery.targets import CATALOG, random_lineup


def test_catalog_values():
    assert [a.value for a in CATALOG] == [5, 10, 15, 30, 50, 100]
    assert len({a.id for a in CATALOG}) == len(CATALOG)


def test_lineup_has_unique_uids_and_rows_in_range():
    lineup = random_lineup(100, 4, random.Random(7))
    assert len(lineup) == 100
    assert len({t.uid for t in lineup}) == 100
    assert all(1 <= t.row <= 4 for t in lineup)
    assert all(not t.claimed for t in lineup)
    archetypes = {(a.id, a.name, a.value) for a in CATALOG}
    assert all((t.id, t.name, t.value) in archetypes for t in lineup)


def test_lineup_uses_every_row_and_archetype_eventually():
    lineup = random_lineup(300, 3, random.Random(3))
    assert {t.row for t in lineup} == {1, 2, 3}
    assert {t.id for t in lineup} == {a.id for a in CATALOG}


def test_seeded_lineups_repeat():
    first = [t.to_dict() for t in random_lineup(12, 4, random.Random(99))]
    second = [t.to_dict() for t in random_lineup(12, 4, random.Random(99))]
    assert first == second


def test_unseeded_lineup_works():
    lineup = random_lineup(5, 1)
    assert len(lineup) == 5
    assert all(t.row == 1 for t in lineup)


def test_numeric_strings_are_accepted():
    assert len(random_lineup('3', '2', random.Random(1))) == 3


@pytest.mark.parametrize('count, rows', [(0, 4), (-1, 4), ('abc', 4), (None, 4), (5, 0), (5, 'x'), (2.5, 4)])
def test_invalid_inputs_are_rejected(count, rows):
    with pytest.raises(InvalidTargetCountError):
        random_lineup(count, rows)


def test_target_wire_shape():
    target = random_lineup(1, 4, random.Random(5))[0]
    data = target.to_dict()
    assert set(data) == {'id', 'name', 'value', 'uid', 'claimed', 'row'}
    assert data['claimed'] is False
