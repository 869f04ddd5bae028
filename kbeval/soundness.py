"""
kbeval.soundness

Symbolic soundness checks with z3. A transfer function result is sound for
an operand pair when every bit it claims to know holds for every concrete
outcome the operands can produce.

"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional

import z3

from kbeval.abstractions.known_bits import KnownBits
from kbeval.logger import log
from kbeval.operations import Operation, get_operation

SYMBOLIC: dict[str, Callable[[z3.BitVecRef, z3.BitVecRef, int], z3.BitVecRef]] = {
    "add": lambda x, y, w: x + y,
    "sub": lambda x, y, w: x - y,
    "mul": lambda x, y, w: x * y,
    "mulhs": lambda x, y, w: z3.Extract(
        2 * w - 1, w, z3.SignExt(w, x) * z3.SignExt(w, y)
    ),
    "mulhu": lambda x, y, w: z3.Extract(
        2 * w - 1, w, z3.ZeroExt(w, x) * z3.ZeroExt(w, y)
    ),
}


@dataclass(frozen=True)
class Counterexample:
    lhs: int
    rhs: int
    outcome: int

    def __str__(self) -> str:
        return f"lhs={self.lhs:#x} rhs={self.rhs:#x} -> {self.outcome:#x}"


class UnsoundResult(Exception):
    def __init__(self, operation: str, result: KnownBits, counterexample: Counterexample):
        super().__init__(
            f"{operation} result {result} is unsound, counterexample {counterexample}"
        )
        self.result = result
        self.counterexample = counterexample


def allowed_by(variable: z3.BitVecRef, kb: KnownBits) -> z3.BoolRef:
    w = kb.width
    return z3.And(
        variable & z3.BitVecVal(kb.zero, w) == 0,
        variable & z3.BitVecVal(kb.one, w) == z3.BitVecVal(kb.one, w),
    )


def check_sound(
    operation: Operation | str,
    lhs: KnownBits,
    rhs: KnownBits,
    result: KnownBits,
    timeout: Optional[int] = None,
) -> Optional[Counterexample]:
    """Search for concrete operands whose outcome `result` does not allow."""
    if isinstance(operation, str):
        operation = get_operation(operation)
    if lhs.width != rhs.width:
        raise ValueError(
            f"LHS and RHS must have the same bit width, got {lhs.width} and {rhs.width}"
        )
    try:
        encode = SYMBOLIC[operation.name]
    except KeyError:
        raise ValueError(f"No symbolic encoding for {operation.name!r}") from None

    w = lhs.width
    if result.width != operation.result_width(w):
        raise ValueError(
            f"Result has {result.width} bits, {operation} produces "
            f"{operation.result_width(w)}"
        )

    x = z3.BitVec("lhs", w)
    y = z3.BitVec("rhs", w)
    out = encode(x, y, w)

    solver = z3.Solver()
    if timeout:
        solver.set("timeout", timeout)
    solver.add(allowed_by(x, lhs), allowed_by(y, rhs))
    solver.add(z3.Not(allowed_by(out, result)))

    match solver.check():
        case z3.unsat:
            return None
        case z3.sat:
            model = solver.model()
            return Counterexample(
                model.eval(x, model_completion=True).as_long(),
                model.eval(y, model_completion=True).as_long(),
                model.eval(out, model_completion=True).as_long(),
            )
        case _:
            log.warning(f"z3 could not decide soundness of {operation}({lhs}, {rhs})")
            raise TimeoutError(f"z3 gave up on {operation}({lhs}, {rhs}) = {result}")


def assert_sound(
    operation: Operation | str, lhs: KnownBits, rhs: KnownBits, result: KnownBits
):
    name = operation if isinstance(operation, str) else operation.name
    if counterexample := check_sound(operation, lhs, rhs, result):
        raise UnsoundResult(name, result, counterexample)
