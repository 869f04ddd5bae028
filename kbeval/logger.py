import sys

from loguru import logger as log

LEVELS = ["WARNING", "INFO", "DEBUG", "TRACE"]


def initialize(verbose: int = 0):
    """Replace the default sink with one whose level follows the -v count."""
    level = LEVELS[min(verbose, len(LEVELS) - 1)]
    log.remove()
    log.add(sys.stderr, format="[{level}] {message}", level=level)
    log.debug(f"Logging at level {level}")
