"""
Cortex — Gaussian Sampler

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

Box–Muller standard normals. Used by weight initialization, mutation and
crossover noise. The first uniform draw is floored away from zero before
the logarithm so the sampler never returns an infinity.
"""

import numpy as np
from typing import Optional

# Floor for the first uniform draw (log(0) is -inf)
U1_FLOOR = 1e-10


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    return np.random.default_rng(seed)


def gaussian(rng: Optional[np.random.Generator] = None) -> float:
    """One standard-normal sample."""
    rng = rng if rng is not None else np.random.default_rng()
    u1 = max(float(rng.random()), U1_FLOOR)
    u2 = float(rng.random())
    return float(np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2))


def gaussian_array(size, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Vectorized Box–Muller — same floor, one sample per element."""
    rng = rng if rng is not None else np.random.default_rng()
    u1 = np.maximum(rng.random(size), U1_FLOOR)
    u2 = rng.random(size)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)
