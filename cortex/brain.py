"""
Cortex — Agent Brain State

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

One BrainState per agent. It holds everything that is personal to the
agent and nothing that is shared:

  - hidden_state:   GRU memory (length H), replaced by each forward call
  - replay_buffer:  FIFO of Experience tuples, capacity C
  - recent_actions: ring of the last 10 actions, diversity statistics only
  - ticks_since_training: learning cadence counter

The network itself is NOT referenced here. Schedulers pass the shared
network handle in explicitly when a brain needs it.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .decoder import ACTION_NAMES, action_name

DEFAULT_REPLAY_CAPACITY = 100
RECENT_ACTION_WINDOW = 10


def _frozen_vector(values) -> np.ndarray:
    v = np.array(values, dtype=np.float64).ravel()
    v.flags.writeable = False
    return v


@dataclass(frozen=True, eq=False)
class Experience:
    """Immutable (s, a, r, s') tuple. State vectors are read-only copies."""
    state: np.ndarray
    action: int
    reward: float
    next_state: np.ndarray

    @classmethod
    def create(cls, state, action: int, reward: float, next_state) -> 'Experience':
        return cls(_frozen_vector(state), int(action), float(reward), _frozen_vector(next_state))


@dataclass
class BrainState:
    hidden_size: int
    capacity: int = DEFAULT_REPLAY_CAPACITY
    action_window: int = RECENT_ACTION_WINDOW

    hidden_state: np.ndarray = field(default=None)
    replay_buffer: deque = field(default=None)
    recent_actions: deque = field(default=None)

    current_action: int = 0
    action_name: str = ACTION_NAMES[0]
    ticks_since_training: int = 0
    total_reward: float = 0.0
    decisions: int = 0
    trainings: int = 0

    def __post_init__(self):
        if self.hidden_size < 1:
            raise ValueError(f"hidden_size must be positive, got {self.hidden_size}")
        if self.capacity < 1:
            raise ValueError(f"replay capacity must be positive, got {self.capacity}")
        if self.hidden_state is None:
            self.hidden_state = np.zeros(self.hidden_size)
        if self.replay_buffer is None:
            self.replay_buffer = deque(maxlen=self.capacity)
        if self.recent_actions is None:
            self.recent_actions = deque(maxlen=self.action_window)

    # ─── Experience ──────────────────────────────────────

    def push(self, experience: Experience):
        """Append; the oldest experience falls off once capacity is reached."""
        self.replay_buffer.append(experience)

    def add_experience(self, state, action: int, reward: float, next_state) -> Experience:
        """Record an observed outcome: replay buffer, recent-action ring, reward total."""
        exp = Experience.create(state, action, reward, next_state)
        self.push(exp)
        self.recent_actions.append(exp.action)
        self.total_reward += exp.reward
        return exp

    def sample_batch(self, batch_size: int,
                     rng: Optional[np.random.Generator] = None) -> list[Experience]:
        """Uniform sampling with replacement."""
        if not self.replay_buffer or batch_size <= 0:
            return []
        rng = rng if rng is not None else np.random.default_rng()
        idx = rng.integers(0, len(self.replay_buffer), size=batch_size)
        return [self.replay_buffer[i] for i in idx]

    # ─── Decisions ───────────────────────────────────────

    def apply_decision(self, new_hidden: np.ndarray, action: int):
        """Store the forward output: new hidden state and chosen action."""
        self.hidden_state = np.asarray(new_hidden, dtype=np.float64).copy()
        self.current_action = int(action)
        self.action_name = action_name(self.current_action)
        self.decisions += 1

    def tick(self) -> int:
        self.ticks_since_training += 1
        return self.ticks_since_training

    def mark_trained(self):
        self.ticks_since_training = 0
        self.trainings += 1

    # ─── Diversity ───────────────────────────────────────

    def get_recent_action_distribution(self, num_actions: int = len(ACTION_NAMES)) -> np.ndarray:
        """Fraction of the recent window spent on each action index."""
        dist = np.zeros(num_actions)
        for a in self.recent_actions:
            if 0 <= a < num_actions:
                dist[a] += 1
        total = len(self.recent_actions) or 1
        return dist / total

    # ─── Lifecycle ───────────────────────────────────────

    def reset_hidden(self):
        self.hidden_state = np.zeros(self.hidden_size)

    def reset(self):
        """Forget everything personal — used when a new generation is bootstrapped."""
        self.reset_hidden()
        self.replay_buffer.clear()
        self.recent_actions.clear()
        self.ticks_since_training = 0

    def to_dict(self) -> dict:
        return {
            'current_action': self.current_action,
            'action_name': self.action_name,
            'buffer_size': len(self.replay_buffer),
            'ticks_since_training': self.ticks_since_training,
            'total_reward': round(self.total_reward, 4),
            'decisions': self.decisions,
            'trainings': self.trainings,
            'hidden_norm': round(float(np.linalg.norm(self.hidden_state)), 4),
            'recent_actions': list(self.recent_actions),
        }
