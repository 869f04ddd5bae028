"""
Tests for the known-bits domain: enumeration and the Galois connection
between states and sets of concrete bit patterns.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from kbeval.abstractions.known_bits import (
    MAX_WIDTH,
    KnownBits,
    enumerate_states,
    from_signed,
    state_count,
    to_signed,
)


@st.composite
def known_bits(draw, min_width=1, max_width=8):
    width = draw(st.integers(min_value=min_width, max_value=max_width))
    index = draw(st.integers(min_value=0, max_value=3**width - 1))
    return KnownBits.from_index(index, width)


@st.composite
def concrete_sets(draw, max_width=8):
    width = draw(st.integers(min_value=1, max_value=max_width))
    values = draw(
        st.sets(st.integers(min_value=0, max_value=2**width - 1), min_size=1)
    )
    return width, values


class TestEnumeration:
    @pytest.mark.parametrize("width", [1, 2, 3, 4, 5])
    def test_count_and_distinct(self, width):
        states = enumerate_states(width)
        assert len(states) == 3**width
        assert len({(s.zero, s.one) for s in states}) == 3**width
        assert all(s.zero & s.one == 0 for s in states)

    def test_width_two(self):
        states = enumerate_states(2)
        assert len(states) == 9
        assert str(states[0]) == "00"
        assert str(states[1]) == "01"
        assert str(states[2]) == "0?"
        assert str(states[8]) == "??"

    def test_index_bijection(self):
        for i, kb in enumerate(KnownBits.enumerate(3)):
            assert KnownBits.from_index(i, 3) == kb

    def test_rejects_zero_width(self):
        with pytest.raises(ValueError):
            enumerate_states(0)

    def test_rejects_counter_overflow(self):
        assert state_count(MAX_WIDTH) == 3**MAX_WIDTH
        with pytest.raises(OverflowError):
            state_count(MAX_WIDTH + 1)
        with pytest.raises(OverflowError):
            next(KnownBits.enumerate(MAX_WIDTH + 1))


class TestKnownBits:
    def test_conflict_is_rejected(self):
        with pytest.raises(ValueError):
            KnownBits(0b01, 0b01, 2)

    def test_mask_out_of_range(self):
        with pytest.raises(ValueError):
            KnownBits(0b100, 0, 2)

    def test_parse_and_str(self):
        kb = KnownBits.parse("1?0")
        assert kb == KnownBits(zero=0b001, one=0b100, width=3)
        assert str(kb) == "1?0"
        assert kb.precision == 2
        assert kb.unknown_bits() == [1]

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            KnownBits.parse("1x0")
        with pytest.raises(ValueError):
            KnownBits.parse("")

    def test_constant(self):
        kb = KnownBits.constant(0b101, 3)
        assert kb.is_constant()
        assert kb.concretize() == [0b101]

    def test_signed_helpers(self):
        assert to_signed(0b1111, 4) == -1
        assert to_signed(0b0111, 4) == 7
        assert to_signed(0b1000, 4) == -8
        assert from_signed(-1, 4) == 0b1111
        assert from_signed(-8, 4) == 0b1000

    def test_lattice_order(self):
        assert KnownBits.parse("10") <= KnownBits.parse("1?")
        assert KnownBits.parse("1?") <= KnownBits.top(2)
        assert not KnownBits.parse("1?") <= KnownBits.parse("10")
        assert KnownBits.parse("10") | KnownBits.parse("11") == KnownBits.parse("1?")

    def test_lattice_width_mismatch(self):
        with pytest.raises(ValueError):
            KnownBits.top(2) <= KnownBits.top(3)

    def test_conflicts(self):
        a, b = KnownBits.parse("1?0"), KnownBits.parse("0?0")
        assert a.conflicts_with(b)
        assert a.first_conflict(b) == 2
        assert not a.conflicts_with(KnownBits.parse("??0"))
        assert a.first_conflict(KnownBits.parse("??0")) is None


class TestConcretization:
    def test_fully_unknown_width_two(self):
        top = KnownBits(0, 0, 2)
        assert sorted(top.concretize()) == [0b00, 0b01, 0b10, 0b11]
        assert KnownBits.abstract(top.concretize(), 2) == top

    def test_low_bit_known_one(self):
        kb = KnownBits(zero=0b00, one=0b01, width=2)
        assert kb.concretize() == [0b01, 0b11]

    def test_no_unknown_bits(self):
        kb = KnownBits.parse("1010")
        assert kb.concretize() == [0b1010]

    @given(known_bits())
    def test_size(self, kb):
        values = kb.concretize()
        assert len(values) == 2 ** len(kb.unknown_bits())
        assert len(set(values)) == len(values)
        assert all(v in kb for v in values)

    @given(known_bits(max_width=6))
    def test_exactly_the_consistent_values(self, kb):
        values = set(kb.concretize())
        assert values == {v for v in range(2**kb.width) if kb.allows(v)}

    @given(known_bits(), st.data())
    def test_more_precise_means_fewer_values(self, kb, data):
        unknown = kb.unknown_bits()
        if not unknown:
            return
        bit = data.draw(st.sampled_from(unknown))
        value = data.draw(st.sampled_from(["zero", "one"]))
        if value == "zero":
            finer = KnownBits(kb.zero | 1 << bit, kb.one, kb.width)
        else:
            finer = KnownBits(kb.zero, kb.one | 1 << bit, kb.width)
        assert finer <= kb
        assert len(finer.concretize()) < len(kb.concretize())


class TestAbstraction:
    def test_empty_set(self):
        with pytest.raises(ValueError):
            KnownBits.abstract([], 4)

    def test_value_of_other_width(self):
        with pytest.raises(ValueError):
            KnownBits.abstract([0b1, 0b10000], 4)
        with pytest.raises(ValueError):
            KnownBits.abstract([-1], 4)

    def test_simple(self):
        assert str(KnownBits.abstract([0b0110, 0b0100], 4)) == "01?0"
        assert str(KnownBits.abstract([0b0000, 0b1111], 4)) == "????"
        assert str(KnownBits.abstract([0b1001], 4)) == "1001"

    @given(known_bits())
    def test_round_trip(self, kb):
        assert KnownBits.abstract(kb.concretize(), kb.width) == kb

    @given(concrete_sets())
    def test_sound_and_tight(self, ws):
        width, values = ws
        kb = KnownBits.abstract(values, width)
        assert all(v in kb for v in values)
        for bit in range(width):
            seen = {v >> bit & 1 for v in values}
            if len(seen) == 2:
                assert kb.bit(bit) == "?"
            else:
                assert kb.bit(bit) == str(seen.pop())

    @given(concrete_sets())
    def test_concretization_covers_input(self, ws):
        width, values = ws
        assert values <= set(KnownBits.abstract(values, width).concretize())
