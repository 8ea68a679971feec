import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from models import Item, Settings  # noqa: E402
from session import TagSession  # noqa: E402
from storage import SessionStore  # noqa: E402


@pytest.fixture
def session():
    return TagSession()


@pytest.fixture
def sample_items():
    return [
        Item(id=1, label="Earl Grey", price=1299),
        Item(id=2, label="Sencha", price=1000, has_discount=False),
        Item(id=3, label="Puer", price=1000, price_for_2=900, price_from_3=800),
    ]


@pytest.fixture
def discount_settings():
    return Settings(design=True, discount_amount=500, max_discount_percent=5)


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path)
