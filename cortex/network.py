"""
Cortex — Recurrent Policy-Value Network

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

NEURAL ARCHITECTURE:
  [h, x] (H+I) → GRU cell → h' (H)
  h' → Dense(H, ReLU) → Dense(H, ReLU) → ┬ Actor head (O, softmax)
                                          └ Critic head (1, linear)

  One network instance is shared by the whole population. Agents own only
  their hidden state; the weights are common.

PARAMETER VECTOR:
  Every tensor lives inside one flat float64 buffer, in this fixed order:

    Wz, Wr, Wh, bz, br, bh, W1, b1, W2, b2, Wactor, bactor, Wcritic, bcritic

  The tensors are reshaped views into that buffer, so reading the vector,
  writing it back and probing single weights never re-layout anything.
  Two networks with the same (I, H, O) always agree element-wise on what
  index k means. Crossover and averaging depend on it.

FORWARD PASS:
  Pure function of (observation, hidden state, parameters). No randomness.
  Activation inputs are clamped to [-500, 500]; softmax subtracts the max
  logit. The network always returns finite numbers for finite weights.
"""

import numpy as np
from typing import NamedTuple, Optional

from .gaussian import gaussian_array

# Activation argument clamp (exp overflow guard)
ACTIVATION_CLAMP = 500.0


class NetworkSizes(NamedTuple):
    input: int
    hidden: int
    output: int


class ForwardResult(NamedTuple):
    action_probs: np.ndarray
    value: float
    new_hidden: np.ndarray


# ─── Activations ─────────────────────────────────────────

def sigmoid(x: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-np.clip(x, -ACTIVATION_CLAMP, ACTIVATION_CLAMP)))


def tanh(x: np.ndarray) -> np.ndarray:
    return np.tanh(np.clip(x, -ACTIVATION_CLAMP, ACTIVATION_CLAMP))


def relu(x: np.ndarray) -> np.ndarray:
    return np.maximum(x, 0.0)


def softmax(logits: np.ndarray) -> np.ndarray:
    exps = np.exp(logits - np.max(logits))
    return exps / exps.sum()


# ─── Network ─────────────────────────────────────────────

class RecurrentPolicyNetwork:
    """GRU actor-critic over a single flat parameter buffer."""

    def __init__(self, input_size: int, hidden_size: int, output_size: int,
                 rng: Optional[np.random.Generator] = None):
        for name, size in (('input_size', input_size), ('hidden_size', hidden_size),
                           ('output_size', output_size)):
            if int(size) != size or size < 1:
                raise ValueError(f"{name} must be a positive integer, got {size!r}")

        self.input_size = int(input_size)
        self.hidden_size = int(hidden_size)
        self.output_size = int(output_size)

        self._params = np.zeros(self.parameter_count(input_size, hidden_size, output_size))
        self._bind_views()
        self._initialize(rng if rng is not None else np.random.default_rng())

    @staticmethod
    def parameter_count(input_size: int, hidden_size: int, output_size: int) -> int:
        """Length of the flat parameter vector for the given sizes."""
        i, h, o = input_size, hidden_size, output_size
        return h * (h + i) * 3 + h * 3 + h * h * 2 + h * 2 + o * h + o + h + 1

    def _layout(self) -> list[tuple[str, tuple[int, ...]]]:
        h, o = self.hidden_size, self.output_size
        concat = h + self.input_size
        return [
            ('Wz', (h, concat)), ('Wr', (h, concat)), ('Wh', (h, concat)),
            ('bz', (h,)), ('br', (h,)), ('bh', (h,)),
            ('W1', (h, h)), ('b1', (h,)),
            ('W2', (h, h)), ('b2', (h,)),
            ('Wactor', (o, h)), ('bactor', (o,)),
            ('Wcritic', (1, h)), ('bcritic', (1,)),
        ]

    def _bind_views(self):
        offset = 0
        for name, shape in self._layout():
            n = int(np.prod(shape))
            setattr(self, name, self._params[offset:offset + n].reshape(shape))
            offset += n

    def _initialize(self, rng: np.random.Generator):
        """Xavier-style: N(0,1) · sqrt(2 / fan_in), fan_in = tensor columns. Biases zero."""
        for name, shape in self._layout():
            if len(shape) == 2:
                tensor = getattr(self, name)
                tensor[...] = gaussian_array(shape, rng) * np.sqrt(2.0 / shape[1])

    # ─── Forward ─────────────────────────────────────────

    def _fit_observation(self, observation) -> np.ndarray:
        """Pad with zeros (or truncate) to input_size. Non-finite entries read as 0."""
        x = np.zeros(self.input_size)
        if observation is None:
            return x
        obs = np.asarray(observation, dtype=np.float64).ravel()[:self.input_size]
        x[:obs.size] = np.nan_to_num(obs, nan=0.0, posinf=0.0, neginf=0.0)
        return x

    def forward(self, observation, hidden_state=None) -> ForwardResult:
        hs = self.hidden_size
        x = self._fit_observation(observation)
        if hidden_state is None:
            h = np.zeros(hs)
        else:
            h = np.asarray(hidden_state, dtype=np.float64)
            if h.shape != (hs,):
                raise ValueError(f"hidden state must have shape ({hs},), got {h.shape}")

        # GRU cell
        hx = np.concatenate([h, x])
        z = sigmoid(self.Wz @ hx + self.bz)
        r = sigmoid(self.Wr @ hx + self.br)
        rhx = np.concatenate([r * h, x])
        h_hat = tanh(self.Wh @ rhx + self.bh)
        h_new = (1.0 - z) * h + z * h_hat

        # Dense trunk
        d1 = relu(self.W1 @ h_new + self.b1)
        d2 = relu(self.W2 @ d1 + self.b2)

        action_probs = softmax(self.Wactor @ d2 + self.bactor)
        value = float((self.Wcritic @ d2 + self.bcritic)[0])
        return ForwardResult(action_probs, value, h_new)

    # ─── Parameter Vector ────────────────────────────────

    @property
    def parameters(self) -> np.ndarray:
        """Live flat buffer. Writes land directly in the tensors."""
        return self._params

    def get_weights(self) -> np.ndarray:
        return self._params.copy()

    def set_weights(self, weights) -> None:
        w = np.asarray(weights, dtype=np.float64).ravel()
        if w.size != self._params.size:
            raise ValueError(
                f"parameter vector length {w.size} does not match network size {self._params.size}"
            )
        self._params[:] = w

    @staticmethod
    def average_weights(a, b, noise: float = 0.0,
                        rng: Optional[np.random.Generator] = None) -> np.ndarray:
        return average_weights(a, b, noise, rng)

    @property
    def weight_count(self) -> int:
        return int(self._params.size)

    @property
    def sizes(self) -> NetworkSizes:
        return NetworkSizes(self.input_size, self.hidden_size, self.output_size)

    def zero_hidden(self) -> np.ndarray:
        return np.zeros(self.hidden_size)

    def clone(self) -> 'RecurrentPolicyNetwork':
        twin = RecurrentPolicyNetwork(*self.sizes, rng=np.random.default_rng(0))
        twin.set_weights(self._params)
        return twin

    def weight_stats(self) -> dict:
        p = self._params
        return {
            'count': int(p.size),
            'mean': float(p.mean()),
            'std': float(p.std()),
            'abs_max': float(np.abs(p).max()),
        }


def average_weights(a, b, noise: float = 0.0,
                    rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Element-wise mean of two parameter vectors, plus noise·N(0,1) per element if noise > 0."""
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    if a.size != b.size:
        raise ValueError(f"cannot average vectors of length {a.size} and {b.size}")
    result = (a + b) / 2.0
    if noise > 0:
        result += gaussian_array(result.size, rng) * noise
    return result
