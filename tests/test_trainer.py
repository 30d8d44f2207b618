"""Finite-difference policy-gradient trainer."""
import numpy as np
import pytest

from cortex.brain import Experience
from cortex.trainer import (
    PolicyGradientTrainer, compute_gradient, probe_stride, train_batch,
)


def test_empty_batch_is_a_noop(small_net):
    before = small_net.get_weights().tobytes()
    assert train_batch(small_net, [], 0.01, 0.95) == 0
    assert small_net.get_weights().tobytes() == before


def test_probe_stride():
    assert probe_stride(7695, 200) == 38
    assert probe_stride(150, 200) == 1
    assert probe_stride(0, 200) == 1


def test_gradient_only_on_probed_indices(small_net, rng):
    stride = 5
    total = small_net.weight_count
    grad = compute_gradient(small_net, rng.normal(size=4), 1, 0.8,
                            probe_budget=total // stride)
    assert grad.shape == (total,)
    unprobed = np.ones(total, dtype=bool)
    unprobed[::probe_stride(total, total // stride)] = False
    assert np.all(grad[unprobed] == 0.0)
    assert np.any(grad[~unprobed] != 0.0)


def test_gradient_restores_every_probed_weight(small_net, rng):
    before = small_net.get_weights()
    compute_gradient(small_net, rng.normal(size=4), 2, 1.5, probe_budget=10_000)
    np.testing.assert_array_equal(small_net.get_weights(), before)


def test_zero_advantage_gives_zero_gradient(small_net, rng):
    grad = compute_gradient(small_net, rng.normal(size=4), 0, 0.0, probe_budget=10_000)
    assert np.all(grad == 0.0)


def test_gradient_matches_one_sided_difference(small_net, rng):
    """Probe index 0 by hand and compare."""
    state, action, adv, eps = rng.normal(size=4), 2, 0.7, 1e-4
    base = small_net.forward(state)
    original = small_net.parameters[0]
    small_net.parameters[0] = original + eps
    pert = small_net.forward(state)
    small_net.parameters[0] = original

    expected = (adv * (np.log(pert.action_probs[action]) - np.log(base.action_probs[action])) / eps
                - 0.5 * adv * (pert.value - base.value) / eps)
    grad = compute_gradient(small_net, state, action, adv, probe_budget=10_000, epsilon=eps)
    assert grad[0] == pytest.approx(expected, rel=1e-6, abs=1e-9)


def test_update_touches_only_probed_indices(small_net, make_batch):
    total = small_net.weight_count
    budget = total // 4
    before = small_net.get_weights()
    train_batch(small_net, make_batch(3, 4, 3), 0.05, 0.9, probe_budget=budget)
    diff = small_net.get_weights() - before

    probed = np.zeros(total, dtype=bool)
    probed[::probe_stride(total, budget)] = True
    assert np.all(diff[~probed] == 0.0)
    assert np.any(diff[probed] != 0.0)


def test_loss_is_diagnostic_mean(small_net, rng):
    gamma = 0.9
    exps = [Experience.create(rng.normal(size=4), a, r, rng.normal(size=4))
            for a, r in [(0, 1.0), (2, -0.5)]]
    expected = 0.0
    for e in exps:
        cur = small_net.forward(e.state)
        nxt = small_net.forward(e.next_state)
        adv = e.reward + gamma * nxt.value - cur.value
        expected += -adv * np.log(cur.action_probs[e.action]) + 0.5 * adv ** 2
    loss = train_batch(small_net, exps, 0.01, gamma)
    assert loss == pytest.approx(expected / 2, rel=1e-9)


def test_training_is_deterministic(small_net, rng):
    """Training evaluations always start from h=0 and draw no random numbers."""
    twin = small_net.clone()
    exps = [Experience.create(rng.normal(size=4), 1, 1.0, rng.normal(size=4))]
    train_batch(small_net, exps, 0.01, 0.95)
    train_batch(twin, exps, 0.01, 0.95)
    np.testing.assert_array_equal(small_net.get_weights(), twin.get_weights())


def test_out_of_range_action_is_clamped(small_net, rng):
    exps = [Experience.create(rng.normal(size=4), 42, 1.0, rng.normal(size=4)),
            Experience.create(rng.normal(size=4), -3, 1.0, rng.normal(size=4))]
    assert np.isfinite(train_batch(small_net, exps, 0.01, 0.95))


def test_repeated_training_stays_finite(rng, make_batch):
    from cortex.network import RecurrentPolicyNetwork
    net = RecurrentPolicyNetwork(20, 32, 14, rng=rng)
    batch = make_batch(4, 20, 14, reward=1.0)
    losses = [train_batch(net, batch, 0.001, 0.95) for _ in range(20)]
    assert len(losses) == 20
    assert all(np.isfinite(l) for l in losses)
    assert np.all(np.isfinite(net.get_weights()))


def test_degenerate_probabilities_are_floored(small_net, rng):
    small_net.bactor[:] = [800.0, -800.0, -800.0]
    exps = [Experience.create(rng.normal(size=4), 2, 1.0, rng.normal(size=4))]
    assert np.isfinite(train_batch(small_net, exps, 0.001, 0.95))


def test_trainer_records_history(small_net, make_batch):
    trainer = PolicyGradientTrainer(learning_rate=0.01, discount_factor=0.9, probe_budget=20)
    assert trainer.train(small_net, []).batch_size == 0
    assert trainer.batches_trained == 0

    result = trainer.train(small_net, make_batch(2, 4, 3))
    assert result.batch_size == 2
    assert result.probes == 2 * len(range(0, small_net.weight_count,
                                           probe_stride(small_net.weight_count, 20)))
    assert trainer.batches_trained == 1
    assert trainer.recent_losses() == [result.loss]
    assert trainer(small_net, make_batch(1, 4, 3)) == trainer.history[-1].loss


@pytest.mark.parametrize("kwargs", [{'probe_budget': 0}, {'epsilon': 0.0}])
def test_trainer_rejects_bad_probe_settings(kwargs):
    with pytest.raises(ValueError):
        PolicyGradientTrainer(**kwargs)
