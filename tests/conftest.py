import numpy as np
import pytest

from cortex.brain import Experience
from cortex.config import EngineConfig
from cortex.network import RecurrentPolicyNetwork


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def small_net(rng):
    """I=4, H=6, O=3 — small enough for many finite-difference probes."""
    return RecurrentPolicyNetwork(4, 6, 3, rng=rng)


@pytest.fixture
def small_config():
    return EngineConfig(
        input_size=20, hidden_size=8, output_size=14,
        replay_buffer_size=20, training_batch_size=4,
        training_interval_ticks=5, agents_per_tick=4,
        probe_budget=50, seed=7,
    )


@pytest.fixture
def make_batch(rng):
    """Factory: random experiences with a fixed reward."""
    def _make(n, input_size, output_size, reward=1.0):
        return [
            Experience.create(
                rng.normal(size=input_size),
                int(rng.integers(0, output_size)),
                reward,
                rng.normal(size=input_size),
            )
            for _ in range(n)
        ]
    return _make
