"""
Cortex — Shared Network Handle

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

The population shares ONE network. Inference only reads it, but training
perturbs single weights in place while it probes, so a concurrent reader
could observe a weight mid-probe and both the read and the gradient would
be corrupted.

SharedNetwork owns the network and hands out access through a
writer-preferring reader/writer lock:

  read()  — any number of concurrent forward passes
  write() — one trainer (or a generational swap), no readers

The whole of one train_batch call is a single write section. Components
receive the handle explicitly; there is no module-level instance.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Optional

import numpy as np

from .network import ForwardResult, RecurrentPolicyNetwork

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many readers or one writer. Waiting writers block new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self):
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self):
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def reading(self):
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def writing(self):
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class SharedNetwork:
    def __init__(self, network: RecurrentPolicyNetwork):
        self._network = network
        self._lock = ReadWriteLock()
        self.generation = 0

    @contextmanager
    def read(self):
        with self._lock.reading():
            yield self._network

    @contextmanager
    def write(self):
        with self._lock.writing():
            yield self._network

    def forward(self, observation, hidden_state=None) -> ForwardResult:
        with self.read() as net:
            return net.forward(observation, hidden_state)

    def train(self, trainer, experiences):
        """Run one whole training call as a single exclusive section."""
        with self.write() as net:
            return trainer.train(net, experiences)

    def snapshot(self) -> np.ndarray:
        with self.read() as net:
            return net.get_weights()

    def load(self, weights) -> None:
        with self.write() as net:
            net.set_weights(weights)

    def replace(self, network: RecurrentPolicyNetwork, allow_resize: bool = False) -> int:
        """Swap in a new network (generational bootstrap). Returns the new generation."""
        with self._lock.writing():
            if not allow_resize and network.sizes != self._network.sizes:
                raise ValueError(
                    f"replacement network sizes {network.sizes} differ from {self._network.sizes}"
                )
            self._network = network
            self.generation += 1
            logger.info("shared network replaced, generation=%d", self.generation)
            return self.generation

    @property
    def sizes(self):
        return self._network.sizes

    @property
    def weight_count(self) -> int:
        return self._network.weight_count

    def clone_network(self) -> RecurrentPolicyNetwork:
        with self.read() as net:
            return net.clone()

    def unwrap(self) -> Optional[RecurrentPolicyNetwork]:
        """The raw network, without locking. Single-threaded callers and tests only."""
        return self._network
