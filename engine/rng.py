"""Deterministic randomness derived from a state's seed."""

from __future__ import annotations

import hashlib
import random


def derive_seed(seed: int, *parts: object) -> int:
    """Mix a base seed with labels (round number, seat, move count, ...)."""
    material = ":".join(str(part) for part in (seed, *parts)).encode("utf-8")
    return int.from_bytes(hashlib.sha256(material).digest()[:8], byteorder="big", signed=False)


def derive_rng(seed: int, *parts: object) -> random.Random:
    """Return a private RNG so pure game functions stay reproducible."""
    return random.Random(derive_seed(seed, *parts))
