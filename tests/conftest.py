import itertools
import os
import tempfile

import pytest

# The app reads DATABASE_URL at import time
_DB_DIR = tempfile.mkdtemp(prefix="tennis-league-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'league.db')}"


class IdentityRandom:
    """Keeps shuffle order and always picks the first candidate."""

    def shuffle(self, items):
        pass

    def choice(self, items):
        return items[0]


@pytest.fixture
def identity_rng():
    return IdentityRandom()


@pytest.fixture
def ids():
    counter = itertools.count(1)
    return lambda: f"id{next(counter)}"


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from main import app

    with TestClient(app) as c:
        yield c
        for slot in (1, 2, 3):
            c.post(f"/league/{slot}/delete")
