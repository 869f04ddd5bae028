"""
kbeval.transfer

Transfer functions over known bits. The naive transfer function is computed
by brute force through the Galois connection, the composite ones are closed
form and built from known-bits adders, shifts and extensions.

"""

from __future__ import annotations
from typing import Callable, TypeAlias

from kbeval.abstractions.known_bits import KnownBits, mask
from kbeval.operations import Operation, get_operation

TransferFunction: TypeAlias = Callable[[KnownBits, KnownBits], KnownBits]


def check_same_width(lhs: KnownBits, rhs: KnownBits) -> int:
    if lhs.width != rhs.width:
        raise ValueError(
            f"LHS and RHS must have the same bit width, got {lhs.width} and {rhs.width}"
        )
    return lhs.width


def naive_transfer(operation: Operation | str) -> TransferFunction:
    """
    The best transfer function for `operation`: concretize both operands,
    apply the operation to every pair and abstract the results.
    """
    if isinstance(operation, str):
        operation = get_operation(operation)

    def naive(lhs: KnownBits, rhs: KnownBits) -> KnownBits:
        width = check_same_width(lhs, rhs)
        rhs_values = rhs.concretize()
        results = (
            operation(l, r, width) for l in lhs.concretize() for r in rhs_values
        )
        return KnownBits.abstract(results, operation.result_width(width))

    naive.__name__ = f"naive_{operation.name}"
    return naive


### Known bits arithmetic
#
# These work on the (value, mask) view of a state: value holds the known
# ones, mask the unknown bits.


def _tnum(kb: KnownBits) -> tuple[int, int]:
    return kb.one, kb.unknown


def _from_tnum(value: int, unknown: int, width: int) -> KnownBits:
    full = mask(width)
    unknown &= full
    value &= ~unknown & full
    return KnownBits(~(value | unknown) & full, value, width)


def kb_add(lhs: KnownBits, rhs: KnownBits) -> KnownBits:
    width = check_same_width(lhs, rhs)
    (lv, lm), (rv, rm) = _tnum(lhs), _tnum(rhs)
    sum_values = lv + rv
    sum_masks = lm + rm
    all_carries = sum_values + sum_masks
    val_carries = all_carries ^ sum_values
    return _from_tnum(sum_values, lm | rm | val_carries, width)


def kb_sub(lhs: KnownBits, rhs: KnownBits) -> KnownBits:
    width = check_same_width(lhs, rhs)
    (lv, lm), (rv, rm) = _tnum(lhs), _tnum(rhs)
    diff_values = lv - rv
    val_borrows = (diff_values + lm) ^ (diff_values - rm)
    return _from_tnum(diff_values, lm | rm | val_borrows, width)


def kb_mul(lhs: KnownBits, rhs: KnownBits) -> KnownBits:
    """
    Shift-and-add multiplication modulo 2**width. The product of the known
    ones is exact; every partial product that depends on an unknown bit is
    summed separately as pure uncertainty.
    """
    width = check_same_width(lhs, rhs)
    (av, am), (bv, bm) = _tnum(lhs), _tnum(rhs)
    exact = KnownBits.constant((av * bv) & mask(width), width)
    uncertain = KnownBits.constant(0, width)
    for bit in range(width):
        if av >> bit & 1:
            partial = _from_tnum(0, bm << bit, width)
        elif am >> bit & 1:
            partial = _from_tnum(0, (bv | bm) << bit, width)
        else:
            continue
        uncertain = kb_add(uncertain, partial)
    return kb_add(exact, uncertain)


def kb_zext(kb: KnownBits, width: int) -> KnownBits:
    if width < kb.width:
        raise ValueError(f"Cannot extend {kb.width} bits to {width} bits")
    high = mask(width) & ~mask(kb.width)
    return KnownBits(kb.zero | high, kb.one, width)


def kb_sext(kb: KnownBits, width: int) -> KnownBits:
    if width < kb.width:
        raise ValueError(f"Cannot extend {kb.width} bits to {width} bits")
    high = mask(width) & ~mask(kb.width)
    match kb.bit(kb.width - 1):
        case "0":
            return KnownBits(kb.zero | high, kb.one, width)
        case "1":
            return KnownBits(kb.zero, kb.one | high, width)
        case _:
            return KnownBits(kb.zero, kb.one, width)


def kb_extract(kb: KnownBits, width: int, offset: int) -> KnownBits:
    """Bits [offset, offset + width) of `kb`."""
    if offset + width > kb.width:
        raise ValueError(
            f"Cannot extract {width} bits at {offset} from {kb.width} bits"
        )
    return KnownBits(
        (kb.zero >> offset) & mask(width), (kb.one >> offset) & mask(width), width
    )


def composite_mulhs(lhs: KnownBits, rhs: KnownBits) -> KnownBits:
    width = check_same_width(lhs, rhs)
    product = kb_mul(kb_sext(lhs, 2 * width), kb_sext(rhs, 2 * width))
    return kb_extract(product, width, width)


def composite_mulhu(lhs: KnownBits, rhs: KnownBits) -> KnownBits:
    width = check_same_width(lhs, rhs)
    product = kb_mul(kb_zext(lhs, 2 * width), kb_zext(rhs, 2 * width))
    return kb_extract(product, width, width)


COMPOSITES: dict[str, TransferFunction] = {
    "add": kb_add,
    "sub": kb_sub,
    "mul": kb_mul,
    "mulhs": composite_mulhs,
    "mulhu": composite_mulhu,
}


def composite_transfer(operation: Operation | str) -> TransferFunction:
    name = operation if isinstance(operation, str) else operation.name
    try:
        return COMPOSITES[name]
    except KeyError:
        raise ValueError(f"No composite transfer function for {name!r}") from None


REFERENCES: dict[str, Callable[[Operation | str], TransferFunction]] = {
    "composite": composite_transfer,
    "naive": naive_transfer,
}


def reference_transfer(kind: str, operation: Operation | str) -> TransferFunction:
    try:
        factory = REFERENCES[kind]
    except KeyError:
        raise ValueError(
            f"Unknown reference {kind!r}, expected one of {', '.join(REFERENCES)}"
        ) from None
    return factory(operation)
