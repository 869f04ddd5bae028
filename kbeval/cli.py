import click
import dataclasses
import json
from contextlib import contextmanager
from typing import IO

from kbeval import logger
from kbeval.abstractions.known_bits import KnownBits, to_signed
from kbeval.compare import ComparisonEngine, Summary
from kbeval.logger import log
from kbeval.operations import OPERATIONS, get_operation
from kbeval.transfer import REFERENCES, composite_transfer, naive_transfer, reference_transfer

DEFAULT_WIDTH = 4


@dataclasses.dataclass
class Reporter:
    report: IO
    prefix: str = ""

    @contextmanager
    def context(self, title):
        old = self.prefix
        print(f"{self.prefix[:-1]}┌ {title}", file=self.report)
        self.prefix = f"{self.prefix[:-1]}│ "
        try:
            yield
        finally:
            self.prefix = old
            print(f"{self.prefix[:-1]}└ {title}", file=self.report)

    def output(self, msgs):
        if not isinstance(msgs, str):
            msgs = str(msgs)

        for msg in msgs.splitlines():
            print(f"{self.prefix}{msg}", file=self.report)

    def summary(self, summary: Summary, reference: str = "composite"):
        name = reference.capitalize()
        self.output(f"Total abstract values: {summary.states}")
        self.output(f"Total pairs: {summary.pairs}")
        self.output(
            f"{name} transfer function more precise: {summary.reference_preciser}"
        )
        self.output(f"Naive transfer function more precise: {summary.naive_preciser}")
        self.output(f"Same precision for both transfer functions: {summary.equal}")
        self.output(f"Incomparable results: {summary.incomparable}")
        self.output(f"Average {reference} time: {summary.avg_reference_time:.1f} ns")
        self.output(f"Average naive time: {summary.avg_naive_time:.1f} ns")


@dataclasses.dataclass(frozen=True)
class RunConfig:
    width: int
    operation: str = "mulhs"
    reference: str = "composite"

    def engine(self) -> ComparisonEngine:
        return ComparisonEngine(
            self.width,
            reference_transfer(self.reference, self.operation),
            self.operation,
        )


def width_parser(ctx_, parms_, value):
    try:
        return int(value)
    except ValueError:
        log.warning(f"Could not parse bit width {value!r}, using {DEFAULT_WIDTH}")
        return DEFAULT_WIDTH


def state_parser(ctx_, parms_, value):
    try:
        return KnownBits.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


def operation_option(f):
    return click.option(
        "--op",
        "operation",
        type=click.Choice(list(OPERATIONS), case_sensitive=True),
        default="mulhs",
        show_default=True,
        help="the operation whose transfer functions are compared.",
    )(f)


@click.group()
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="sets the verbosity of the program, more means more information",
)
def cli(verbose):
    """Evaluate known-bits transfer functions by exhaustive enumeration."""
    logger.initialize(verbose)


@cli.command()
@operation_option
@click.option(
    "--reference",
    type=click.Choice(list(REFERENCES), case_sensitive=True),
    default="composite",
    show_default=True,
    help="the transfer function the naive one is compared against.",
)
@click.option(
    "--report",
    "-r",
    default="-",
    type=click.File(mode="w"),
    help="A file to write the report to.",
)
@click.option("--json/--no-json", "as_json", help="write the report as json.")
@click.option(
    "--verify/--no-verify",
    help="use z3 to find out which side is unsound for every incomparable pair.",
)
@click.argument("WIDTH", callback=width_parser)
def compare(width, operation, reference, report, as_json, verify):
    """Compare the naive and reference transfer functions on all WIDTH-bit states."""
    config = RunConfig(width, operation, reference)
    try:
        engine = config.engine()
    except (ValueError, OverflowError) as e:
        raise click.BadParameter(str(e), param_hint="WIDTH")

    incomparable = []
    summary = engine.run(
        on_incomparable=(lambda *pair: incomparable.append(pair)) if verify else None
    )

    if as_json:
        json.dump(summary.to_json(), report, indent=2)
        report.write("\n")
        return

    r = Reporter(report)
    with r.context(
        f"Testing {operation} Transfer Functions for BitWidth = {width}"
    ):
        r.summary(summary, reference)
        if verify and incomparable:
            with r.context("Soundness"):
                _verify(r, operation, incomparable)


def _verify(r: Reporter, operation: str, incomparable: list):
    from kbeval.soundness import check_sound

    for lhs, rhs, naive, ref in incomparable:
        for who, result in (("naive", naive), ("composite", ref)):
            if cex := check_sound(operation, lhs, rhs, result):
                r.output(f"{operation}({lhs}, {rhs}): {who} {result} unsound, {cex}")


@cli.command("enumerate")
@click.argument("WIDTH", type=int)
def enumerate_(width):
    """List every WIDTH-bit known-bits state."""
    try:
        states = KnownBits.enumerate(width)
        for i, kb in enumerate(states):
            click.echo(f"{i:>6d} | {kb}")
    except (ValueError, OverflowError) as e:
        raise click.BadParameter(str(e), param_hint="WIDTH")


@cli.command()
@click.option("--signed/--unsigned", help="show values as two's-complement integers.")
@click.argument("STATE", callback=state_parser)
def concretize(state, signed):
    """List every concrete value of STATE, a pattern like 1?0 (MSB first)."""
    for value in state.concretize():
        shown = to_signed(value, state.width) if signed else value
        click.echo(f"{value:0{state.width}b} | {shown}")


@cli.command()
@click.argument("OPERATION", type=click.Choice(list(OPERATIONS)))
@click.argument("LHS", callback=state_parser)
@click.argument("RHS", callback=state_parser)
def apply(operation, lhs, rhs):
    """Show the naive and composite results of OPERATION on LHS and RHS."""
    op = get_operation(operation)
    try:
        naive = naive_transfer(op)(lhs, rhs)
        composite = composite_transfer(op)(lhs, rhs)
    except ValueError as e:
        raise click.UsageError(str(e))
    click.echo(f"naive:     {naive}")
    click.echo(f"composite: {composite}")


if __name__ == "__main__":
    cli()
