"""
Shared fixtures: every test gets its own sqlite file under tmp_path.
"""
from datetime import datetime

import pytest

from database.schema import DECK_HEADERS
from database.store import TabularStore


class FakeClock:
    """Callable clock the tests can move around."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


SAMPLE_ROWS = [
    ['card001', 'What is the capital of France?', 'Paris', 'Hint: European city', 'geography,europe',
     '2026-01-01 09:00:00', 'admin', '{"showSideB":true}'],
    ['card002', 'What is 2 + 2?', '4', '', 'math,basics', '2026-01-01 09:00:00', 'admin', ''],
    ['card003', 'Who wrote "Romeo and Juliet"?', 'William Shakespeare', '', 'literature',
     '2026-01-01 09:00:00', 'admin', 'true'],
    ['card004', 'What is H2O?', 'Water', 'Chemical formula', 'science', '2026-01-01 09:00:00', 'admin', None],
    ['card005', 'Largest planet?', 'Jupiter', 'A gas giant', 'science,astronomy',
     '2026-01-01 09:00:00', 'admin', None],
]


@pytest.fixture()
def store(tmp_path):
    return TabularStore(str(tmp_path / "test.db"))


def make_deck(store: TabularStore, name: str, rows=SAMPLE_ROWS, headers=DECK_HEADERS):
    table = store.create_table(name, list(headers))
    for row in rows:
        table.append_row(list(row))
    return table


@pytest.fixture()
def sample_deck(store):
    return make_deck(store, 'Sample_Deck')
