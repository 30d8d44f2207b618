"""
Cortex — Evolution Operator

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

Cross-generational weight evolution, independent of the trainer.

  crossover: child = mean(parent1, parent2) + small noise, then mutate
  mutate:    each weight, with probability `rate`, gets + 0.1·N(0,1)

Averaging is only meaningful because every network with the same
(I, H, O) lays out its parameter vector in the same order.
"""

import numpy as np
from typing import Optional

from .gaussian import gaussian_array
from .network import RecurrentPolicyNetwork, average_weights

MUTATION_STRENGTH = 0.1
CROSSOVER_NOISE_SCALE = 0.1


def crossover_networks(parent1: RecurrentPolicyNetwork, parent2: RecurrentPolicyNetwork,
                       mutation_rate: float = 0.05,
                       rng: Optional[np.random.Generator] = None) -> RecurrentPolicyNetwork:
    """New network with parent1's architecture and the averaged, mutated weights of both."""
    if parent1.sizes != parent2.sizes:
        raise ValueError(f"parents differ in architecture: {parent1.sizes} vs {parent2.sizes}")
    rng = rng if rng is not None else np.random.default_rng()

    child = parent1.clone()
    child.set_weights(average_weights(
        parent1.get_weights(), parent2.get_weights(),
        mutation_rate * CROSSOVER_NOISE_SCALE, rng,
    ))
    mutate(child, mutation_rate, rng)
    return child


def mutate(network: RecurrentPolicyNetwork, rate: float = 0.05,
           rng: Optional[np.random.Generator] = None) -> int:
    """Point mutations in place. Returns how many weights were touched."""
    rng = rng if rng is not None else np.random.default_rng()
    params = network.parameters
    mask = rng.random(params.size) < rate
    count = int(mask.sum())
    if count:
        params[mask] += gaussian_array(count, rng) * MUTATION_STRENGTH
    return count
