"""
Cortex — Decision / Learning Scheduler

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

Two cadences share one network:

DECISION (per tick, O(K)):
  Only a rotating window of K agents runs a forward pass each tick.

    start = ((tick − 1) · K) mod N

  N is re-read from the roster EVERY tick. Agents are born and die between
  ticks, which shifts what an index means, so turn-taking is only
  approximately fair under churn. That is inherent to a window over a
  changing roster. The worst-case decision latency is about N/K ticks.

LEARNING (per agent):
  Every brain counts ticks. Once the count reaches the training interval
  AND the brain holds at least one batch of experiences, a batch is drawn
  uniformly with replacement and trained against the shared network. The
  counter then resets whatever the loss was.

Decisions always run before training within a tick, so in the
single-threaded model no two mutations of the shared network overlap.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

import numpy as np

from .brain import BrainState
from .decoder import action_name, select_action
from .shared import SharedNetwork
from .trainer import PolicyGradientTrainer, TrainingResult

logger = logging.getLogger(__name__)

# (agent_id, brain) -> observation vector of length I
Observer = Callable[[str, BrainState], object]


@dataclass
class Decision:
    agent_id: str
    action: int
    action_name: str
    value: float
    observation: np.ndarray = field(repr=False)
    action_probs: np.ndarray = field(repr=False)


@dataclass
class TrainingEvent:
    agent_id: str
    tick: int
    result: TrainingResult


# ─── Decision Cadence ────────────────────────────────────

class DecisionScheduler:
    def __init__(self, shared: SharedNetwork, agents_per_tick: int = 10,
                 temperature: float = 1.0, rng: Optional[np.random.Generator] = None):
        if agents_per_tick < 1:
            raise ValueError(f"agents_per_tick must be positive, got {agents_per_tick}")
        self.shared = shared
        self.agents_per_tick = agents_per_tick
        self.temperature = temperature
        self.rng = rng if rng is not None else np.random.default_rng()
        self.tick_count = 0

    def window(self, population: int, tick: Optional[int] = None) -> list[int]:
        """Roster indices served on `tick` (default: the current tick)."""
        if population <= 0:
            return []
        tick = self.tick_count if tick is None else tick
        start = ((tick - 1) * self.agents_per_tick) % population
        return [(start + i) % population for i in range(min(self.agents_per_tick, population))]

    def step(self, agents: Mapping[str, BrainState], observe: Observer) -> list[Decision]:
        self.tick_count += 1
        roster = list(agents.items())
        decisions = []

        for idx in self.window(len(roster)):
            agent_id, brain = roster[idx]
            observation = np.asarray(observe(agent_id, brain), dtype=np.float64)
            result = self.shared.forward(observation, brain.hidden_state)

            action = select_action(result.action_probs, self.temperature, self.rng)
            brain.apply_decision(result.new_hidden, action)
            decisions.append(Decision(
                agent_id=agent_id,
                action=action,
                action_name=action_name(action),
                value=result.value,
                observation=observation,
                action_probs=result.action_probs,
            ))

        return decisions


# ─── Learning Cadence ────────────────────────────────────

class LearningScheduler:
    def __init__(self, shared: SharedNetwork, trainer: PolicyGradientTrainer,
                 interval: int = 50, batch_size: int = 16,
                 rng: Optional[np.random.Generator] = None):
        if interval < 1:
            raise ValueError(f"training interval must be positive, got {interval}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.shared = shared
        self.trainer = trainer
        self.interval = interval
        self.batch_size = batch_size
        self.rng = rng if rng is not None else np.random.default_rng()
        self.tick_count = 0

    def is_due(self, brain: BrainState) -> bool:
        return (brain.ticks_since_training >= self.interval
                and len(brain.replay_buffer) >= self.batch_size)

    def step(self, agents: Mapping[str, BrainState]) -> list[TrainingEvent]:
        self.tick_count += 1
        trained = []
        for agent_id, brain in agents.items():
            brain.tick()
            if not self.is_due(brain):
                continue
            batch = brain.sample_batch(self.batch_size, self.rng)
            result = self.shared.train(self.trainer, batch)
            brain.mark_trained()
            trained.append(TrainingEvent(agent_id, self.tick_count, result))
        return trained


# ─── Tick Driver ─────────────────────────────────────────

class Scheduler:
    """One tick = decision window, then any due training, strictly in sequence."""

    STATS_LIMIT = 1000

    def __init__(self, shared: SharedNetwork, config, trainer: Optional[PolicyGradientTrainer] = None,
                 rng: Optional[np.random.Generator] = None):
        rng = rng if rng is not None else np.random.default_rng(config.seed)
        self.shared = shared
        self.trainer = trainer or PolicyGradientTrainer.from_config(config)
        self.decisions = DecisionScheduler(shared, config.agents_per_tick, rng=rng)
        self.learning = LearningScheduler(
            shared, self.trainer,
            interval=config.training_interval_ticks,
            batch_size=config.training_batch_size,
            rng=rng,
        )
        self.tick_count = 0
        self.events: list[dict] = []
        self.tick_stats: deque[dict] = deque(maxlen=self.STATS_LIMIT)

    def tick(self, agents: Mapping[str, BrainState], observe: Observer) -> tuple[list[Decision], list[TrainingEvent]]:
        self.tick_count += 1
        decisions = self.decisions.step(agents, observe)
        trained = self.learning.step(agents)

        for ev in trained:
            self.events.append({
                'type': 'training', 'tick': self.tick_count, 'agent': ev.agent_id,
                'loss': ev.result.loss, 'batch_size': ev.result.batch_size,
            })

        losses = [ev.result.loss for ev in trained]
        self.tick_stats.append({
            'tick': self.tick_count,
            'population': len(agents),
            'decisions': len(decisions),
            'trainings': len(trained),
            'mean_loss': float(np.mean(losses)) if losses else None,
            'mean_value': float(np.mean([d.value for d in decisions])) if decisions else None,
        })
        if trained:
            logger.debug("tick %d: %d decisions, %d training batches",
                         self.tick_count, len(decisions), len(trained))
        return decisions, trained

    def pop_events(self) -> list[dict]:
        events = self.events
        self.events = []
        return events
