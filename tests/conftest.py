import numpy as np
import pytest

from backend import create_app
from config import Config


class ApiTestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-key"
    RATELIMIT_ENABLED = False
    MAX_RECORDS_PER_REQUEST = 50


class ScriptedRng:
    """Random source with a fixed shuffle order and a queue of index draws."""

    def __init__(self, order, draws=()):
        self.order = list(order)
        self.draws = list(draws)
        self.draw_calls = 0

    def permutation(self, n):
        assert sorted(self.order) == list(range(n))
        return np.array(self.order)

    def integers(self, high):
        self.draw_calls += 1
        value = self.draws.pop(0) if self.draws else 0
        assert 0 <= value < high
        return value


@pytest.fixture
def scripted_rng():
    return ScriptedRng


@pytest.fixture
def app():
    return create_app(ApiTestConfig)


@pytest.fixture
def client(app):
    with app.app_context():
        yield app.test_client()
