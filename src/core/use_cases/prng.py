"""
Deterministic Park-Miller generator.

State is threaded explicitly: every draw returns the next state, so the
same seed always reproduces the same sequence.
"""
from typing import Tuple

MODULUS = 2147483647
MULTIPLIER = 16807


def next_random(state: int) -> Tuple[float, int]:
    """Returns (value in [0, 1), new state)."""
    new_state = (state * MULTIPLIER) % MODULUS
    return (new_state - 1) / (MODULUS - 1), new_state


def seed_from_text(text: str) -> int:
    return sum(ord(ch) for ch in text)
