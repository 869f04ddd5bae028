from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Iterator, Literal, TypeAlias

from kbeval.abstractions.abstract_domain import Domain

Bit: TypeAlias = Literal["0", "1", "?"]

# 3**MAX_WIDTH must fit in an unsigned 64-bit counter
COUNTER_BITS = 64
MAX_WIDTH = 40


def mask(width: int) -> int:
    return (1 << width) - 1


def to_signed(value: int, width: int) -> int:
    """Read a `width` bit pattern as a two's-complement integer."""
    if value >> (width - 1) & 1:
        return value - (1 << width)
    return value


def from_signed(value: int, width: int) -> int:
    """Two's-complement bit pattern of `value`, truncated to `width` bits."""
    return value & mask(width)


def state_count(width: int) -> int:
    """Number of distinct known-bits states of `width`, checked against the counter."""
    if width < 1:
        raise ValueError(f"Bit width must be at least 1, got {width}")
    total = 3**width
    if total >= 1 << COUNTER_BITS:
        raise OverflowError(
            f"3**{width} abstract states do not fit in a {COUNTER_BITS}-bit counter "
            f"(maximum width is {MAX_WIDTH})"
        )
    return total


@dataclass(frozen=True)
class KnownBits(Domain[int]):
    """
    A three-valued bit vector. Every bit is known to be 0 (set in `zero`),
    known to be 1 (set in `one`) or unknown (set in neither).

    Concrete values are the unsigned bit patterns in [0, 2**width).
    """

    zero: int
    one: int
    width: int

    def __post_init__(self):
        if self.width < 1:
            raise ValueError(f"Bit width must be at least 1, got {self.width}")
        for name, m in (("zero", self.zero), ("one", self.one)):
            if m < 0 or m > mask(self.width):
                raise ValueError(
                    f"{name} mask {m:#x} does not fit in {self.width} bits"
                )
        if self.zero & self.one:
            raise ValueError(
                f"Known 0s and 1s conflict at {self.zero & self.one:#x}"
            )

    @classmethod
    def top(cls, width: int) -> KnownBits:
        return cls(0, 0, width)

    @classmethod
    def constant(cls, value: int, width: int) -> KnownBits:
        if not 0 <= value <= mask(width):
            raise ValueError(f"Value {value} is not a {width}-bit pattern")
        return cls(~value & mask(width), value, width)

    @classmethod
    def parse(cls, pattern: str) -> KnownBits:
        """Read a pattern such as '1?0', most significant bit first."""
        if not pattern:
            raise ValueError("Expected a non-empty pattern of 0, 1 and ?")
        zero = one = 0
        for bit, c in enumerate(reversed(pattern)):
            if c == "0":
                zero |= 1 << bit
            elif c == "1":
                one |= 1 << bit
            elif c != "?":
                raise ValueError(f"Unexpected character {c!r} in pattern {pattern!r}")
        return cls(zero, one, len(pattern))

    @classmethod
    def from_index(cls, index: int, width: int) -> KnownBits:
        """
        The state whose base-3 digits (least significant first) are `index`:
        digit 0 makes the bit Zero, 1 makes it One and 2 leaves it unknown.
        """
        zero = one = 0
        for bit in range(width):
            index, digit = divmod(index, 3)
            if digit == 0:
                zero |= 1 << bit
            elif digit == 1:
                one |= 1 << bit
        return cls(zero, one, width)

    @classmethod
    def enumerate(cls, width: int) -> Iterator[KnownBits]:
        """Every state of `width`, in index order."""
        total = state_count(width)
        for i in range(total):
            yield cls.from_index(i, width)

    @classmethod
    def abstract(cls, items: Iterable[int], width: int) -> KnownBits:
        """The most precise state allowing every value of a nonempty set."""
        full = mask(width)
        zero = one = full
        empty = True
        for x in items:
            if not 0 <= x <= full:
                raise ValueError(f"Value {x} is not a {width}-bit pattern")
            zero &= ~x
            one &= x
            empty = False
        if empty:
            raise ValueError("Cannot abstract an empty set of values")
        return cls(zero & full, one, width)

    @property
    def unknown(self) -> int:
        return ~(self.zero | self.one) & mask(self.width)

    @property
    def precision(self) -> int:
        """Number of known bits."""
        return self.zero.bit_count() + self.one.bit_count()

    def unknown_bits(self) -> list[int]:
        return [bit for bit in range(self.width) if self.unknown >> bit & 1]

    def is_constant(self) -> bool:
        return self.precision == self.width

    def bit(self, index: int) -> Bit:
        if self.zero >> index & 1:
            return "0"
        if self.one >> index & 1:
            return "1"
        return "?"

    def concretize(self) -> list[int]:
        """Every value allowed by this state, 2**(unknown bits) of them."""
        unknown = self.unknown_bits()
        result: list[int] = []
        for i in range(1 << len(unknown)):
            value = self.one
            for k, bit in enumerate(unknown):
                if i >> k & 1:
                    value |= 1 << bit
            result.append(value)
        return result

    def allows(self, value: int) -> bool:
        return value & self.zero == 0 and value & self.one == self.one

    def __contains__(self, member: int) -> bool:
        return 0 <= member <= mask(self.width) and self.allows(member)

    def conflicts_with(self, other: KnownBits) -> bool:
        """True iff some bit is known 0 in one state and known 1 in the other."""
        return bool(self.zero & other.one or self.one & other.zero)

    def first_conflict(self, other: KnownBits) -> int | None:
        for k in range(min(self.width, other.width)):
            if (self.zero & other.one | self.one & other.zero) >> k & 1:
                return k
        return None

    def __le__(self, other: KnownBits) -> bool:
        """self describes a subset of other, i.e. it knows every bit other knows."""
        self._check_width(other)
        return (
            other.zero & self.zero == other.zero
            and other.one & self.one == other.one
        )

    def __or__(self, other: KnownBits) -> KnownBits:
        """Join = least upper bound = keep the bits both agree on."""
        self._check_width(other)
        return KnownBits(self.zero & other.zero, self.one & other.one, self.width)

    def _check_width(self, other: KnownBits):
        if self.width != other.width:
            raise ValueError(
                f"Bit widths differ: {self.width} and {other.width}"
            )

    def __str__(self) -> str:
        return "".join(self.bit(k) for k in reversed(range(self.width)))

    def __repr__(self) -> str:
        return f"KnownBits({self})"


def enumerate_states(width: int) -> list[KnownBits]:
    """All 3**width states, materialized."""
    return list(KnownBits.enumerate(width))
