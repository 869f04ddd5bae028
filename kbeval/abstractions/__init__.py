from kbeval.abstractions.known_bits import (
    KnownBits,
    enumerate_states,
    from_signed,
    to_signed,
)

__all__ = ["KnownBits", "enumerate_states", "from_signed", "to_signed"]
