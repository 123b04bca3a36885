"""Chip and receptacle invariants."""

from __future__ import annotations

import dataclasses
import random

import pytest

from squaresum.games.square_sum.logic.board import GridPlacement, Junction, Receptacle
from squaresum.games.square_sum.logic.chips import Chip, Suit, chips_from_magnitudes


@pytest.mark.parametrize("raw, expected", [(0, 1), (-4, 1), (1, 1), (9, 9), (12, 9)])
def test_chip_magnitude_is_clamped(raw: int, expected: int) -> None:
    assert Chip.create(Suit.A, raw).magnitude == expected


def test_chip_equality_goes_by_id() -> None:
    a = Chip.create(Suit.B, 4)
    b = Chip.create(Suit.B, 4)

    assert a != b
    assert a == Chip(suit=Suit.C, magnitude=7, id=a.id)
    assert len({a, b}) == 2


def test_seeded_chip_ids_repeat() -> None:
    first = Chip.random(random.Random(5))
    second = Chip.random(random.Random(5))

    assert first.id == second.id
    assert (first.suit, first.magnitude) == (second.suit, second.magnitude)


def test_chip_payload_carries_asset_name() -> None:
    chip = Chip.create(Suit.C, 6)
    payload = chip.to_dict()

    assert payload["suit"] == "C"
    assert payload["suit_title"] == "Bamboo"
    assert payload["asset"] == "maoei-6"


def test_chips_from_magnitudes_cycles_suits() -> None:
    chips = chips_from_magnitudes([1, 2, 3, 4])

    assert [c.suit for c in chips] == [Suit.A, Suit.B, Suit.C, Suit.A]


def _receptacle(target: int) -> Receptacle:
    return Receptacle(key="slot_a", target=target, placement=GridPlacement(0, 0, 2, 1))


def test_aggregate_equilibrium_and_overflow_are_exclusive() -> None:
    r = _receptacle(7)
    seen = []
    for magnitude in (3, 4, 2):
        r = r.with_deposit(Chip.create(Suit.A, magnitude))
        assert r.aggregate == sum(c.magnitude for c in r.deposited)
        assert not (r.is_at_equilibrium and r.is_overflowing)
        seen.append((r.aggregate, r.is_at_equilibrium, r.is_overflowing))

    assert seen == [(3, False, False), (7, True, False), (9, False, True)]
    assert r.shortfall == -2


def test_deposit_returns_a_new_receptacle() -> None:
    empty = _receptacle(5)
    chip = Chip.create(Suit.A, 5)

    filled = empty.with_deposit(chip)

    assert filled.deposited == (chip,)
    assert filled.is_at_equilibrium
    assert empty.deposited == ()
    assert empty.aggregate == 0


def test_receptacle_fields_are_frozen() -> None:
    r = _receptacle(5)

    with pytest.raises(dataclasses.FrozenInstanceError):
        r.target = 1
    with pytest.raises(AttributeError):
        r.deposited.append(Chip.create(Suit.A, 1))


def test_clone_empty_keeps_layout_and_drops_deposits() -> None:
    r = Receptacle(key="slot_b", target=9, placement=GridPlacement(1, 0, 2, 1), linked_keys=["slot_a"])
    r = r.with_deposit(Chip.create(Suit.A, 4))

    clone = r.clone_empty()

    assert clone.deposited == ()
    assert clone.placement == r.placement
    assert clone.linked_keys == ("slot_a",)
    assert r.aggregate == 4


def test_negative_target_is_rejected() -> None:
    with pytest.raises(ValueError):
        _receptacle(-1)


def test_placement_covers_its_span() -> None:
    p = GridPlacement(1, 0, 2, 1)

    assert p.covers(1, 0) and p.covers(2, 0)
    assert not p.covers(0, 0)
    assert not p.covers(1, 1)


def test_junction_needs_two_receptacles() -> None:
    with pytest.raises(ValueError):
        Junction(anchor_key="slot_a", auxiliary_key="slot_a", placement=GridPlacement(1, 0))
