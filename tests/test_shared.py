"""Shared network handle and its reader/writer lock."""
import threading

import numpy as np
import pytest

from cortex.network import RecurrentPolicyNetwork
from cortex.shared import ReadWriteLock, SharedNetwork
from cortex.trainer import PolicyGradientTrainer


def test_forward_through_handle(small_net, rng):
    shared = SharedNetwork(small_net)
    obs = rng.normal(size=4)
    np.testing.assert_array_equal(shared.forward(obs).action_probs, small_net.forward(obs).action_probs)


def test_snapshot_and_load(small_net):
    shared = SharedNetwork(small_net)
    w = shared.snapshot()
    shared.load(np.zeros_like(w))
    assert np.all(shared.unwrap().get_weights() == 0)
    with pytest.raises(ValueError):
        shared.load(np.zeros(3))


def test_replace_bumps_generation(small_net):
    shared = SharedNetwork(small_net)
    child = RecurrentPolicyNetwork(*small_net.sizes)
    assert shared.replace(child) == 1
    assert shared.unwrap() is child
    assert shared.generation == 1


def test_replace_rejects_resize_unless_allowed(small_net):
    shared = SharedNetwork(small_net)
    bigger = RecurrentPolicyNetwork(4, 7, 3)
    with pytest.raises(ValueError):
        shared.replace(bigger)
    shared.replace(bigger, allow_resize=True)
    assert shared.sizes == (4, 7, 3)


def test_train_goes_through_trainer(small_net, make_batch):
    shared = SharedNetwork(small_net)
    trainer = PolicyGradientTrainer(learning_rate=0.01, probe_budget=20)
    result = shared.train(trainer, make_batch(2, 4, 3))
    assert result.batch_size == 2
    assert trainer.batches_trained == 1


def test_writer_excludes_readers():
    lock = ReadWriteLock()
    lock.acquire_write()
    entered = threading.Event()

    def reader():
        with lock.reading():
            entered.set()

    t = threading.Thread(target=reader)
    t.start()
    assert not entered.wait(0.1)
    lock.release_write()
    assert entered.wait(2.0)
    t.join(2.0)


def test_readers_share_and_block_writer():
    lock = ReadWriteLock()
    lock.acquire_read()
    lock.acquire_read()
    wrote = threading.Event()

    def writer():
        with lock.writing():
            wrote.set()

    t = threading.Thread(target=writer)
    t.start()
    assert not wrote.wait(0.1)
    lock.release_read()
    assert not wrote.wait(0.05)
    lock.release_read()
    assert wrote.wait(2.0)
    t.join(2.0)


def test_concurrent_reads_never_see_a_probe(rng, make_batch):
    """Forward passes racing a training call see the weights before or after it, never between."""
    net = RecurrentPolicyNetwork(8, 12, 5, rng=rng)
    shared = SharedNetwork(net)
    trainer = PolicyGradientTrainer(learning_rate=0.05, probe_budget=500)
    obs = rng.normal(size=8)

    before = net.forward(obs).action_probs
    batch = make_batch(6, 8, 5)
    seen = []
    done = threading.Event()

    def train():
        shared.train(trainer, batch)
        done.set()

    t = threading.Thread(target=train)
    t.start()
    while not done.is_set():
        seen.append(shared.forward(obs).action_probs)
    t.join()
    after = shared.forward(obs).action_probs

    assert not np.array_equal(before, after)
    for probs in seen:
        assert np.array_equal(probs, before) or np.array_equal(probs, after)
