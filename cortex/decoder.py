"""
Cortex — Action Decoding Contract

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

The network's output size O equals len(ACTION_NAMES). What an action DOES
in the world belongs to the host simulation; this module only turns a
probability vector into an index. Index 0 (IDLE) is the safe fallback.
"""

import numpy as np
from typing import Optional

ACTION_NAMES = (
    'IDLE', 'WANDER', 'FORAGE', 'DRINK', 'HARVEST', 'CRAFT', 'BUILD',
    'EAT', 'SLEEP', 'SOCIALIZE', 'TRADE', 'FLEE', 'EXPLORE', 'REPRODUCE',
)

PROB_FLOOR = 1e-10


def select_action(action_probs, temperature: float = 1.0,
                  rng: Optional[np.random.Generator] = None) -> int:
    """Categorical sample: cumulative sum against one uniform draw."""
    probs = np.asarray(action_probs, dtype=np.float64)
    if temperature != 1.0:
        scaled = np.log(np.maximum(probs, PROB_FLOOR)) / max(temperature, PROB_FLOOR)
        exps = np.exp(scaled - scaled.max())
        probs = exps / exps.sum()

    rng = rng if rng is not None else np.random.default_rng()
    draw = rng.random()
    cumulative = 0.0
    for i, p in enumerate(probs):
        cumulative += p
        if draw < cumulative:
            return i
    # Rounding left the cumulative sum just short of 1
    return len(probs) - 1


def mask_actions(action_probs, valid) -> np.ndarray:
    """Zero out invalid actions and renormalize. All masked → IDLE."""
    probs = np.asarray(action_probs, dtype=np.float64)
    masked = np.where(np.asarray(valid, dtype=bool), probs, 0.0)
    total = masked.sum()
    if total <= 0:
        fallback = np.zeros_like(probs)
        fallback[0] = 1.0
        return fallback
    return masked / total


def action_name(index: int) -> str:
    if 0 <= index < len(ACTION_NAMES):
        return ACTION_NAMES[index]
    return ACTION_NAMES[0]
