"""
kbeval.operations

Exact binary operations on fixed-width two's-complement bit patterns. Every
operation takes the unsigned patterns of its operands together with their
width and returns the unsigned pattern of its result.

"""

from dataclasses import dataclass
from typing import Callable

from kbeval.abstractions.known_bits import from_signed, mask, to_signed


@dataclass(frozen=True)
class Operation:
    name: str
    apply: Callable[[int, int, int], int]
    result_width: Callable[[int], int] = lambda width: width

    def __call__(self, lhs: int, rhs: int, width: int) -> int:
        return self.apply(lhs, rhs, width)

    def __str__(self) -> str:
        return self.name


def add(lhs: int, rhs: int, width: int) -> int:
    return (lhs + rhs) & mask(width)


def sub(lhs: int, rhs: int, width: int) -> int:
    return (lhs - rhs) & mask(width)


def mul(lhs: int, rhs: int, width: int) -> int:
    return (lhs * rhs) & mask(width)


def mulhs(lhs: int, rhs: int, width: int) -> int:
    """High half of the 2*width bit signed product."""
    product = from_signed(to_signed(lhs, width) * to_signed(rhs, width), 2 * width)
    return product >> width


def mulhu(lhs: int, rhs: int, width: int) -> int:
    """High half of the 2*width bit unsigned product."""
    return (lhs * rhs) >> width


OPERATIONS: dict[str, Operation] = {
    op.name: op
    for op in [
        Operation("add", add),
        Operation("sub", sub),
        Operation("mul", mul),
        Operation("mulhs", mulhs),
        Operation("mulhu", mulhu),
    ]
}


def get_operation(name: str) -> Operation:
    try:
        return OPERATIONS[name]
    except KeyError:
        raise ValueError(
            f"Unknown operation {name!r}, expected one of {', '.join(OPERATIONS)}"
        ) from None
