"""
Cortex — Policy-Gradient Trainer

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

ADVANTAGE ACTOR-CRITIC, WITHOUT BACKPROP:
  For each experience (s, a, r, s'):

    π(·|s), V(s) = forward(s,  h=0)
    V(s')        = forward(s', h=0)
    A            = r + γ·V(s') − V(s)

  Every training evaluation starts from a zero hidden state. Temporal
  context is deliberately not threaded through training: recurrent
  fidelity is traded for a much simpler estimator.

GRADIENT ESTIMATE:
  No analytic derivatives. Only every stride-th weight is probed, with
  stride = max(1, total // probe_budget). For a probed index i:

    θ_i += ε ; re-run forward(s, h=0) ; θ_i restored
    g_i  = A · Δlog π(a|s)/ε − 0.5 · A · ΔV/ε

  Unprobed indices get exactly zero. This is a biased, incomplete estimate
  of the REINFORCE gradient. An analytic gradient in its place would be a
  different learning algorithm.

UPDATE:
  θ += (lr / batch_size) · Σ g      (ascent)

  The returned loss mean(−A·log π(a|s) + 0.5·A²) is diagnostic only; it
  never gates or scales the update.
"""

import logging
from collections import deque
from dataclasses import dataclass, asdict
from typing import Optional, Sequence

import numpy as np

from .brain import Experience
from .network import RecurrentPolicyNetwork

logger = logging.getLogger(__name__)

DEFAULT_PROBE_BUDGET = 200
DEFAULT_EPSILON = 1e-4
PROB_FLOOR = 1e-10


def _log_prob(probs: np.ndarray, action: int) -> float:
    return float(np.log(max(float(probs[action]), PROB_FLOOR)))


def _clamp_action(action: int, output_size: int) -> int:
    return min(max(int(action), 0), output_size - 1)


def probe_stride(total_weights: int, probe_budget: int = DEFAULT_PROBE_BUDGET) -> int:
    return max(1, total_weights // max(1, probe_budget))


def compute_gradient(network: RecurrentPolicyNetwork, state, action: int, advantage: float,
                     probe_budget: int = DEFAULT_PROBE_BUDGET,
                     epsilon: float = DEFAULT_EPSILON) -> np.ndarray:
    """One-sided finite-difference estimate over a stride-sampled subset of weights.

    Each probed weight is perturbed in place and put back before the next
    probe, so callers sharing the network must hold it exclusively for the
    whole call.
    """
    params = network.parameters
    grad = np.zeros(params.size)
    action = _clamp_action(action, network.output_size)

    base = network.forward(state, network.zero_hidden())
    base_log_prob = _log_prob(base.action_probs, action)

    stride = probe_stride(params.size, probe_budget)
    for i in range(0, params.size, stride):
        original = params[i]
        params[i] = original + epsilon
        pert = network.forward(state, network.zero_hidden())
        params[i] = original

        d_log_prob = (_log_prob(pert.action_probs, action) - base_log_prob) / epsilon
        d_value = (pert.value - base.value) / epsilon
        grad[i] = advantage * d_log_prob - 0.5 * advantage * d_value

    return grad


def train_batch(network: RecurrentPolicyNetwork, experiences: Sequence[Experience],
                learning_rate: float, discount_factor: float,
                probe_budget: int = DEFAULT_PROBE_BUDGET,
                epsilon: float = DEFAULT_EPSILON) -> float:
    """One advantage-weighted ascent step. Returns the diagnostic loss (0 for an empty batch)."""
    return _train(network, experiences, learning_rate, discount_factor,
                  probe_budget, epsilon).loss


@dataclass
class TrainingResult:
    loss: float = 0.0
    mean_advantage: float = 0.0
    batch_size: int = 0
    probes: int = 0
    update_norm: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def _train(network, experiences, learning_rate, discount_factor,
           probe_budget, epsilon) -> TrainingResult:
    if not experiences:
        return TrainingResult()

    grad_sum = np.zeros(network.weight_count)
    total_loss = 0.0
    total_advantage = 0.0

    for exp in experiences:
        action = _clamp_action(exp.action, network.output_size)
        current = network.forward(exp.state, network.zero_hidden())
        following = network.forward(exp.next_state, network.zero_hidden())

        advantage = exp.reward + discount_factor * following.value - current.value
        grad_sum += compute_gradient(network, exp.state, action, advantage,
                                     probe_budget, epsilon)

        total_loss += -advantage * _log_prob(current.action_probs, action) + 0.5 * advantage ** 2
        total_advantage += advantage

    batch_size = len(experiences)
    step = (learning_rate / batch_size) * grad_sum
    network.parameters[:] += step

    stride = probe_stride(network.weight_count, probe_budget)
    return TrainingResult(
        loss=total_loss / batch_size,
        mean_advantage=total_advantage / batch_size,
        batch_size=batch_size,
        probes=len(range(0, network.weight_count, stride)) * batch_size,
        update_norm=float(np.linalg.norm(step)),
    )


class PolicyGradientTrainer:
    """Holds the training hyperparameters and a bounded diagnostic history."""

    HISTORY_LIMIT = 200

    def __init__(self, learning_rate: float = 0.001, discount_factor: float = 0.95,
                 probe_budget: int = DEFAULT_PROBE_BUDGET, epsilon: float = DEFAULT_EPSILON):
        if probe_budget < 1:
            raise ValueError(f"probe_budget must be positive, got {probe_budget}")
        if epsilon <= 0:
            raise ValueError(f"epsilon must be positive, got {epsilon}")
        self.learning_rate = learning_rate
        self.discount_factor = discount_factor
        self.probe_budget = probe_budget
        self.epsilon = epsilon
        self.history: deque[TrainingResult] = deque(maxlen=self.HISTORY_LIMIT)
        self.batches_trained = 0

    @classmethod
    def from_config(cls, config) -> 'PolicyGradientTrainer':
        return cls(
            learning_rate=config.learning_rate,
            discount_factor=config.discount_factor,
            probe_budget=config.probe_budget,
            epsilon=config.probe_epsilon,
        )

    def train(self, network: RecurrentPolicyNetwork,
              experiences: Sequence[Experience]) -> TrainingResult:
        result = _train(network, experiences, self.learning_rate, self.discount_factor,
                        self.probe_budget, self.epsilon)
        if result.batch_size:
            self.batches_trained += 1
            self.history.append(result)
            logger.debug("trained batch=%d loss=%.5f adv=%.5f",
                         result.batch_size, result.loss, result.mean_advantage)
        return result

    def __call__(self, network, experiences) -> float:
        return self.train(network, experiences).loss

    def recent_losses(self, limit: Optional[int] = None) -> list[float]:
        losses = [r.loss for r in self.history]
        return losses[-limit:] if limit else losses
