import pytest
from fastapi.testclient import TestClient

from cortex.server import app

SMALL = {
    'input_size': 20, 'hidden_size': 8, 'output_size': 14,
    'replay_buffer_size': 20, 'training_batch_size': 4,
    'training_interval_ticks': 5, 'agents_per_tick': 4,
    'probe_budget': 50, 'seed': 3,
}


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def created(client):
    r = client.post('/sim/create', json={'population': 6, 'config': SMALL})
    assert r.status_code == 200
    return client


def test_health(client):
    assert client.get('/health').json()['status'] == 'ok'


def test_requires_simulation(client):
    assert client.get('/sim/state').status_code == 404
    assert client.post('/sim/tick').status_code == 404


def test_create(client):
    body = client.post('/sim/create', json={'population': 6, 'config': SMALL}).json()
    assert body['agents'] == 6
    assert body['config']['hidden_size'] == 8


def test_bad_config_is_422(client):
    r = client.post('/sim/create', json={'config': {'hidden_size': 0}})
    assert r.status_code == 422


def test_tick_and_run(created):
    tick = created.post('/sim/tick').json()
    assert tick['stats']['tick'] == 1
    run = created.post('/sim/run', json={'ticks': 10, 'generation_interval': 5}).json()
    assert run['total_ticks'] == 11
    assert run['generations'] == 2
    state = created.get('/sim/state').json()
    assert state['network_generation'] == 2


def test_generation(created):
    body = created.post('/sim/generation').json()
    assert body['generation'] == 1


def test_agent_lookup(created):
    leader = created.get('/sim/leaderboard?limit=1').json()['leaderboard'][0]
    assert created.get(f"/sim/agent/{leader['id']}").json()['id'] == leader['id']
    assert created.get('/sim/agent/NOPE').status_code == 404


def test_weights_round_trip(created):
    got = created.get('/sim/weights').json()
    assert got['count'] == len(got['weights'])
    zeros = [0.0] * got['count']
    assert created.put('/sim/weights', json={'weights': zeros}).status_code == 200
    assert created.get('/sim/weights').json()['weights'] == zeros
    assert created.put('/sim/weights', json={'weights': [0.0]}).status_code == 400


def test_config_key_outside_model_is_422(client):
    r = client.post('/sim/create', json={'config': {'prefix': 'OTHER_'}})
    assert r.status_code == 422


def test_created_config_ignores_server_environment(client, monkeypatch):
    monkeypatch.setenv('CORTEX_LEARNING_RATE', '0.5')
    monkeypatch.setenv('CORTEX_MUTATION_RATE', '0.9')
    body = client.post('/sim/create', json={'population': 6, 'config': SMALL}).json()
    assert body['config']['hidden_size'] == 8
    assert body['config']['mutation_rate'] == 0.05
    assert body['config']['learning_rate'] == 0.001
