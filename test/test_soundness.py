import pytest

from kbeval.abstractions.known_bits import KnownBits, enumerate_states
from kbeval.operations import get_operation
from kbeval.soundness import UnsoundResult, assert_sound, check_sound
from kbeval.transfer import composite_transfer, naive_transfer


def test_top_is_sound():
    top = KnownBits.top(4)
    assert check_sound("mulhs", top, top, top) is None


def test_counterexample():
    top = KnownBits.top(4)
    wrong = KnownBits.constant(0, 4)
    cex = check_sound("mulhs", top, top, wrong)
    assert cex is not None
    assert cex.outcome == get_operation("mulhs")(cex.lhs, cex.rhs, 4)
    assert cex.outcome not in wrong


def test_assert_sound_raises():
    lhs = KnownBits.parse("1???")
    rhs = KnownBits.parse("01??")
    with pytest.raises(UnsoundResult) as e:
        assert_sound("mulhs", lhs, rhs, KnownBits.parse("0000"))
    assert e.value.counterexample.lhs in lhs
    assert e.value.counterexample.rhs in rhs


def test_width_checks():
    with pytest.raises(ValueError):
        check_sound("mulhs", KnownBits.top(2), KnownBits.top(3), KnownBits.top(2))
    with pytest.raises(ValueError):
        check_sound("mulhs", KnownBits.top(2), KnownBits.top(2), KnownBits.top(3))


@pytest.mark.parametrize("name", ["add", "sub", "mul", "mulhs", "mulhu"])
def test_naive_results_are_sound(name):
    naive = naive_transfer(name)
    states = enumerate_states(2)
    for lhs in states:
        for rhs in states:
            assert check_sound(name, lhs, rhs, naive(lhs, rhs)) is None


@pytest.mark.slow
@pytest.mark.parametrize("name", ["mulhs", "mulhu"])
def test_composite_results_are_sound(name):
    composite = composite_transfer(name)
    states = enumerate_states(3)
    for lhs in states:
        for rhs in states:
            assert_sound(name, lhs, rhs, composite(lhs, rhs))
