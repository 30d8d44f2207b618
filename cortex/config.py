"""
Cortex — Engine Configuration

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

Every tunable in one validated model. Bounds are enforced when the model
is built, so a bad configuration fails before any network is allocated.

Probe budget and epsilon are configurable rather than fixed: the
finite-difference estimator has no principled optimum for either.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .decoder import ACTION_NAMES


class EngineConfig(BaseModel):
    # Architecture
    input_size: int = Field(default=20, ge=1, le=4096)
    hidden_size: int = Field(default=32, ge=1, le=1024)
    output_size: int = Field(default=len(ACTION_NAMES), ge=1, le=1024)

    # Trainer
    learning_rate: float = Field(default=0.001, gt=0, le=1.0)
    discount_factor: float = Field(default=0.95, ge=0, le=1.0)
    probe_budget: int = Field(default=200, ge=1)
    probe_epsilon: float = Field(default=1e-4, gt=0, le=1.0)

    # Brain state
    replay_buffer_size: int = Field(default=100, ge=1)
    recent_action_window: int = Field(default=10, ge=1)

    # Scheduling
    training_interval_ticks: int = Field(default=50, ge=1)
    training_batch_size: int = Field(default=16, ge=1)
    agents_per_tick: int = Field(default=10, ge=1)

    # Evolution
    mutation_rate: float = Field(default=0.05, ge=0, le=1.0)

    seed: Optional[int] = None

    model_config = {'extra': 'forbid'}

    @model_validator(mode='after')
    def _batch_fits_buffer(self):
        if self.training_batch_size > self.replay_buffer_size:
            raise ValueError(
                f"training_batch_size ({self.training_batch_size}) cannot exceed "
                f"replay_buffer_size ({self.replay_buffer_size})"
            )
        return self

    @classmethod
    def from_env(cls, overrides: Optional[dict] = None,
                 prefix: str = 'CORTEX_') -> 'EngineConfig':
        """Defaults, then CORTEX_<FIELD> environment variables, then explicit overrides."""
        values = {}
        for name in cls.model_fields:
            raw = os.environ.get(prefix + name.upper())
            if raw is not None and raw != '':
                values[name] = raw
        values.update(overrides or {})
        return cls.model_validate(values)
