"""
kbeval

Exhaustive precision and soundness evaluation of known-bits transfer functions.

"""

from kbeval.abstractions.known_bits import KnownBits, enumerate_states
from kbeval.compare import ComparisonEngine, Summary, Verdict, classify
from kbeval.operations import OPERATIONS, Operation, get_operation
from kbeval.transfer import composite_transfer, naive_transfer

__all__ = [
    "KnownBits",
    "enumerate_states",
    "ComparisonEngine",
    "Summary",
    "Verdict",
    "classify",
    "OPERATIONS",
    "Operation",
    "get_operation",
    "composite_transfer",
    "naive_transfer",
]
