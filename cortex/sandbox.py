"""
Cortex — Sandbox Population

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

A deliberately small stand-in for the host simulation, so the engine can
run end to end without a real world:

NEEDS:
  Each agent carries six needs in [0, 1]:
    hunger, thirst, energy, warmth, safety, social
  They decay every tick. Actions restore some of them. A need hitting zero
  kills the agent; the roster is refilled by fresh spawns (churn).

OBSERVATION (the encoder contract):
  [needs (6), recent-action distribution (O)] padded / truncated to I.

REWARD:
  Weighted need improvement, a death penalty, a critical-need penalty, a
  small success/failure term, and a diversity penalty when one action
  dominates the recent window.

GENERATIONS:
  run_generation() archives the current shared network with the mean
  reward it earned, then bootstraps the next generation as
  crossover(current, best archived) and swaps it into the shared handle.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .brain import BrainState
from .config import EngineConfig
from .decoder import ACTION_NAMES
from .genetics import crossover_networks
from .network import RecurrentPolicyNetwork
from .scheduler import Decision, Scheduler
from .shared import SharedNetwork

logger = logging.getLogger(__name__)

NEED_NAMES = ('hunger', 'thirst', 'energy', 'warmth', 'safety', 'social')
NEED_WEIGHTS = np.array([1.0, 1.0, 0.8, 0.7, 0.9, 0.6])
NEED_DECAY = np.array([0.010, 0.012, 0.008, 0.005, 0.004, 0.006])
CRITICAL_NEED = 0.2

# action name -> per-need restoration
ACTION_EFFECTS = {
    'FORAGE':    {'hunger': 0.08},
    'EAT':       {'hunger': 0.15},
    'HARVEST':   {'hunger': 0.05, 'energy': -0.02},
    'DRINK':     {'thirst': 0.18},
    'SLEEP':     {'energy': 0.15, 'safety': -0.02},
    'BUILD':     {'warmth': 0.10, 'safety': 0.05, 'energy': -0.03},
    'CRAFT':     {'warmth': 0.06},
    'FLEE':      {'safety': 0.12, 'energy': -0.04},
    'SOCIALIZE': {'social': 0.15},
    'TRADE':     {'social': 0.06, 'hunger': 0.03},
    'EXPLORE':   {'social': 0.02, 'energy': -0.02},
    'REPRODUCE': {'social': 0.08, 'energy': -0.05},
}


@dataclass
class SandboxAgent:
    id: str
    generation: int
    brain: BrainState
    needs: np.ndarray = field(default=None)
    alive: bool = True
    age: int = 0

    def __post_init__(self):
        if self.needs is None:
            self.needs = np.full(len(NEED_NAMES), 0.8)

    @property
    def fitness(self) -> float:
        return self.brain.total_reward

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'generation': self.generation,
            'alive': self.alive,
            'age': self.age,
            'fitness': round(self.fitness, 4),
            'needs': {n: round(float(v), 3) for n, v in zip(NEED_NAMES, self.needs)},
            **self.brain.to_dict(),
        }


class Sandbox:
    ARCHIVE_LIMIT = 5

    def __init__(self, config: Optional[EngineConfig] = None, population_size: int = 30):
        self.config = config or EngineConfig()
        self.population_size = population_size
        self.rng = np.random.default_rng(self.config.seed)

        network = RecurrentPolicyNetwork(
            self.config.input_size, self.config.hidden_size, self.config.output_size, rng=self.rng
        )
        self.shared = SharedNetwork(network)
        self.scheduler = Scheduler(self.shared, self.config, rng=self.rng)

        self.agents: dict[str, SandboxAgent] = {}
        self.next_id = 0
        self.deaths = 0
        self.tick = 0
        self.generation = 0
        self.archive: list[tuple[float, np.ndarray]] = []
        self.events: list[dict] = []
        self.tick_stats: list[dict] = []

        self._generation_reward = 0.0
        self._generation_steps = 0

    # ─── Population ──────────────────────────────────────

    def _new_id(self) -> str:
        self.next_id += 1
        return f"V{self.next_id:04d}"

    def spawn(self) -> SandboxAgent:
        brain = BrainState(
            hidden_size=self.config.hidden_size,
            capacity=self.config.replay_buffer_size,
            action_window=self.config.recent_action_window,
        )
        agent = SandboxAgent(id=self._new_id(), generation=self.generation, brain=brain)
        self.agents[agent.id] = agent
        self.events.append({'type': 'birth', 'agent': agent.id, 'tick': self.tick})
        return agent

    def spawn_population(self, n: int = None):
        n = n or self.population_size
        for _ in range(n):
            self.spawn()

    def kill(self, agent_id: str, cause: str = 'removed'):
        """Mark the agent dead and drop it, with its brain, from the roster."""
        agent = self.agents.pop(agent_id, None)
        if agent is None:
            return
        agent.alive = False
        self.deaths += 1
        self.events.append({
            'type': 'death', 'agent': agent_id, 'tick': self.tick,
            'cause': cause, 'age': agent.age,
        })

    def get_alive(self) -> list[SandboxAgent]:
        return [a for a in self.agents.values() if a.alive]

    def get_agent(self, agent_id: str) -> Optional[SandboxAgent]:
        return self.agents.get(agent_id)

    def brains(self) -> dict[str, BrainState]:
        return {a.id: a.brain for a in self.get_alive()}

    # ─── Encoder / Reward ────────────────────────────────

    def observe(self, agent_id: str, brain: BrainState) -> np.ndarray:
        agent = self.agents[agent_id]
        features = np.concatenate([
            agent.needs,
            brain.get_recent_action_distribution(self.config.output_size),
        ])
        obs = np.zeros(self.config.input_size)
        n = min(obs.size, features.size)
        obs[:n] = features[:n]
        return obs

    def _apply_action(self, agent: SandboxAgent, action: int) -> bool:
        effects = ACTION_EFFECTS.get(ACTION_NAMES[action] if action < len(ACTION_NAMES) else '')
        if not effects:
            return False
        for need, delta in effects.items():
            i = NEED_NAMES.index(need)
            agent.needs[i] = float(np.clip(agent.needs[i] + delta, 0.0, 1.0))
        return any(delta > 0 for delta in effects.values())

    def reward(self, agent: SandboxAgent, action: int, success: bool,
               prev_needs: np.ndarray) -> float:
        r = float(np.dot(agent.needs - prev_needs, NEED_WEIGHTS))
        if np.any(agent.needs <= 0):
            r -= 5.0
        if np.any(agent.needs < CRITICAL_NEED):
            r -= 0.5
        r += 0.05 if success else -0.02

        dist = agent.brain.get_recent_action_distribution(self.config.output_size)
        if 0 <= action < dist.size and dist[action] > 0.5:
            r -= 0.1 * dist[action]
        return r

    # ─── Core Loop ───────────────────────────────────────

    def step(self) -> dict:
        """One tick: decay, decisions, outcomes, training, deaths, refill."""
        self.tick += 1
        alive = self.get_alive()
        for agent in alive:
            agent.age += 1
            agent.needs = np.clip(agent.needs - NEED_DECAY, 0.0, 1.0)

        decisions, trained = self.scheduler.tick(self.brains(), self.observe)
        rewards = [self._resolve(d) for d in decisions]

        for agent in alive:
            if agent.alive and np.any(agent.needs <= 0):
                self.kill(agent.id, cause='need_exhausted')

        for _ in range(self.population_size - len(self.agents)):
            self.spawn()

        self.events.extend(self.scheduler.pop_events())
        stats = {
            'tick': self.tick,
            'generation': self.generation,
            'alive': len(self.get_alive()),
            'decisions': len(decisions),
            'trainings': len(trained),
            'mean_reward': float(np.mean(rewards)) if rewards else 0.0,
            'mean_loss': float(np.mean([t.result.loss for t in trained])) if trained else None,
        }
        self.tick_stats.append(stats)
        if len(self.tick_stats) > 1000:
            self.tick_stats = self.tick_stats[-1000:]
        return stats

    def _resolve(self, decision: Decision) -> float:
        agent = self.agents[decision.agent_id]
        prev_needs = agent.needs.copy()
        success = self._apply_action(agent, decision.action)
        r = self.reward(agent, decision.action, success, prev_needs)
        next_obs = self.observe(agent.id, agent.brain)
        agent.brain.add_experience(decision.observation, decision.action, r, next_obs)

        self._generation_reward += r
        self._generation_steps += 1
        return r

    def run(self, ticks: int) -> list[dict]:
        return [self.step() for _ in range(ticks)]

    # ─── Generations ─────────────────────────────────────

    def generation_fitness(self) -> float:
        return self._generation_reward / max(self._generation_steps, 1)

    def run_generation(self) -> dict:
        """Archive the current network, breed the next one, and swap it in."""
        fitness = self.generation_fitness()
        self.archive.append((fitness, self.shared.snapshot()))
        self.archive.sort(key=lambda entry: entry[0], reverse=True)
        self.archive = self.archive[:self.ARCHIVE_LIMIT]

        current = self.shared.clone_network()
        best_network = current.clone()
        best_network.set_weights(self.archive[0][1])

        child = crossover_networks(current, best_network, self.config.mutation_rate, self.rng)
        self.shared.replace(child)
        self.generation += 1

        for agent in self.get_alive():
            agent.brain.reset_hidden()

        event = {
            'type': 'generation', 'tick': self.tick, 'generation': self.generation,
            'fitness': fitness, 'best_archived': self.archive[0][0],
        }
        self.events.append(event)
        logger.info("generation %d bootstrapped (fitness %.4f, best %.4f)",
                    self.generation, fitness, self.archive[0][0])

        self._generation_reward = 0.0
        self._generation_steps = 0
        return event

    # ─── Query ───────────────────────────────────────────

    def get_leaderboard(self, limit: int = 10) -> list[dict]:
        alive = sorted(self.get_alive(), key=lambda a: a.fitness, reverse=True)
        return [{**a.to_dict(), 'rank': i + 1} for i, a in enumerate(alive[:limit])]

    def get_state(self) -> dict:
        alive = self.get_alive()
        action_counts = np.zeros(self.config.output_size)
        for a in alive:
            action_counts += a.brain.get_recent_action_distribution(self.config.output_size)
        mix = action_counts / max(len(alive), 1)
        with self.shared.read() as net:
            weight_stats = net.weight_stats()
        return {
            'tick': self.tick,
            'generation': self.generation,
            'network_generation': self.shared.generation,
            'alive': len(alive),
            'total_spawned': self.next_id,
            'deaths': self.deaths,
            'weights': weight_stats,
            'action_mix': {ACTION_NAMES[i] if i < len(ACTION_NAMES) else str(i): round(float(p), 3)
                           for i, p in enumerate(mix)},
            'generation_fitness': round(self.generation_fitness(), 5),
            'batches_trained': self.scheduler.trainer.batches_trained,
            'stats': self.tick_stats[-1] if self.tick_stats else {},
        }

    def pop_events(self) -> list[dict]:
        events = self.events
        self.events = []
        return events
