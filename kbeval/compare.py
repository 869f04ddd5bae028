"""
kbeval.compare

Exhaustively compares a naive transfer function against a reference one on
every pair of abstract states of a bit width.

"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from time import perf_counter_ns
from typing import Callable, Optional

from kbeval.abstractions.known_bits import KnownBits, enumerate_states
from kbeval.logger import log
from kbeval.operations import Operation, get_operation
from kbeval.transfer import TransferFunction, naive_transfer

IncomparableObserver = Callable[[KnownBits, KnownBits, KnownBits, KnownBits], None]


class Verdict(Enum):
    NAIVE_PRECISER = "naive more precise"
    REFERENCE_PRECISER = "reference more precise"
    EQUAL = "same precision"
    INCOMPARABLE = "incomparable"

    def __str__(self) -> str:
        return self.value


def classify(naive: KnownBits, reference: KnownBits, width: int) -> Verdict:
    """
    Relative precision of two results. Any bit where one claims 0 and the
    other claims 1 makes the pair incomparable, since one of them is unsound.
    """
    for k in range(width):
        if (reference.zero >> k & 1 and naive.one >> k & 1) or (
            reference.one >> k & 1 and naive.zero >> k & 1
        ):
            return Verdict.INCOMPARABLE

    if naive.precision > reference.precision:
        return Verdict.NAIVE_PRECISER
    if reference.precision > naive.precision:
        return Verdict.REFERENCE_PRECISER
    return Verdict.EQUAL


@dataclass(frozen=True)
class PairResult:
    """Outcome of one operand pair. Times are in ns."""

    verdict: Verdict
    naive: KnownBits
    reference: KnownBits
    naive_time: int
    reference_time: int


@dataclass
class Summary:
    width: int
    operation: str
    states: int = 0
    counts: dict[Verdict, int] = field(
        default_factory=lambda: {v: 0 for v in Verdict}
    )
    naive_time: int = 0
    reference_time: int = 0

    @property
    def pairs(self) -> int:
        return self.states * self.states

    @property
    def naive_preciser(self) -> int:
        return self.counts[Verdict.NAIVE_PRECISER]

    @property
    def reference_preciser(self) -> int:
        return self.counts[Verdict.REFERENCE_PRECISER]

    @property
    def equal(self) -> int:
        return self.counts[Verdict.EQUAL]

    @property
    def incomparable(self) -> int:
        return self.counts[Verdict.INCOMPARABLE]

    @property
    def avg_naive_time(self) -> float:
        return self.naive_time / self.pairs if self.pairs else 0.0

    @property
    def avg_reference_time(self) -> float:
        return self.reference_time / self.pairs if self.pairs else 0.0

    def record(self, verdict: Verdict, naive_time: int, reference_time: int):
        self.counts[verdict] += 1
        self.naive_time += naive_time
        self.reference_time += reference_time

    def to_json(self) -> dict:
        return {
            "width": self.width,
            "operation": self.operation,
            "states": self.states,
            "pairs": self.pairs,
            "reference_preciser": self.reference_preciser,
            "naive_preciser": self.naive_preciser,
            "equal": self.equal,
            "incomparable": self.incomparable,
            "avg_reference_time_ns": self.avg_reference_time,
            "avg_naive_time_ns": self.avg_naive_time,
        }


class ComparisonEngine:
    """
    Runs `naive` and `reference` on every ordered pair of states of `width`
    and counts how their results relate.
    """

    def __init__(
        self,
        width: int,
        reference: TransferFunction,
        operation: Operation | str = "mulhs",
        naive: Optional[TransferFunction] = None,
    ):
        if isinstance(operation, str):
            operation = get_operation(operation)
        self.width = width
        self.operation = operation
        self.result_width = operation.result_width(width)
        self.reference = reference
        self.naive = naive or naive_transfer(operation)
        self.states = enumerate_states(width)

    def _timed(self, fn: TransferFunction, lhs: KnownBits, rhs: KnownBits, who: str):
        start = perf_counter_ns()
        result = fn(lhs, rhs)
        elapsed = perf_counter_ns() - start
        if result.width != self.result_width:
            raise ValueError(
                f"{who} transfer function returned {result.width} bits for "
                f"{self.operation}({lhs}, {rhs}), expected {self.result_width}"
            )
        return result, elapsed

    def compare(self, lhs: KnownBits, rhs: KnownBits) -> PairResult:
        reference, reference_time = self._timed(self.reference, lhs, rhs, "Reference")
        naive, naive_time = self._timed(self.naive, lhs, rhs, "Naive")
        return PairResult(
            classify(naive, reference, self.result_width),
            naive,
            reference,
            naive_time,
            reference_time,
        )

    def run(self, on_incomparable: Optional[IncomparableObserver] = None) -> Summary:
        summary = Summary(self.width, self.operation.name, len(self.states))
        log.info(
            f"Comparing {self.operation} on {summary.pairs} pairs of {self.width}-bit states"
        )

        for i, lhs in enumerate(self.states):
            log.trace(f"LHS {i + 1}/{len(self.states)}: {lhs}")
            for rhs in self.states:
                res = self.compare(lhs, rhs)

                if res.verdict is Verdict.INCOMPARABLE:
                    log.warning(
                        f"Incomparable results for {self.operation}({lhs}, {rhs}): "
                        f"naive {res.naive}, reference {res.reference}"
                    )
                    if on_incomparable:
                        on_incomparable(lhs, rhs, res.naive, res.reference)

                summary.record(res.verdict, res.naive_time, res.reference_time)
            log.debug(f"Done with LHS {lhs}")

        log.success(
            f"Compared {summary.pairs} pairs, {summary.incomparable} incomparable"
        )
        return summary
