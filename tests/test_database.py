"""
Tests for database/store.py and database/database.py.

Uses a real SQLite file in a pytest tmp_path so every test gets an isolated DB.
No Telegram objects, no async, pure store logic.
"""
import sqlite3
import threading

import pytest

import database.database as db
from database.schema import DECK_HEADERS, MEDIA_COLUMNS, SAMPLE_DECK, progress_column_names
from database.store import TabularStore
from tests.conftest import SAMPLE_ROWS, make_deck
from utils.errors import DeckNotFound, SchemaError


# ── Helpers ───────────────────────────────────────────────────

def _raw(store: TabularStore, sql: str, params=()):
    """Run a raw query against the test DB and return fetchall."""
    conn = sqlite3.connect(store.path)
    rows = conn.execute(sql, params).fetchall()
    conn.close()
    return rows


# ── Table primitives ──────────────────────────────────────────

class TestTable:
    def test_create_and_list(self, store):
        store.create_table('Deck A', ['x', 'y'])
        store.create_table('Deck "B"', ['x'])
        assert store.list_tables() == ['Deck A', 'Deck "B"']

    def test_get_missing_table_is_none(self, store):
        assert store.get_table('nope') is None

    def test_create_duplicate_raises(self, store):
        store.create_table('T', ['a'])
        with pytest.raises(ValueError):
            store.create_table('T', ['a'])

    def test_headers_in_order(self, store, sample_deck):
        assert sample_deck.get_headers() == DECK_HEADERS

    def test_append_columns_keeps_rows(self, store, sample_deck):
        sample_deck.append_columns(['extra1', 'extra2'])
        assert sample_deck.get_headers() == DECK_HEADERS + ['extra1', 'extra2']
        rows = sample_deck.get_rows()
        assert len(rows) == len(SAMPLE_ROWS)
        assert rows[0][:len(DECK_HEADERS)] == SAMPLE_ROWS[0]
        assert rows[0][-2:] == [None, None]

    def test_append_row_pads_short_rows(self, store):
        table = store.create_table('T', ['a', 'b', 'c'])
        table.append_row(['1'])
        assert table.get_rows() == [['1', None, None]]

    def test_set_cell(self, store, sample_deck):
        sample_deck.set_cell(2, 1, 'changed')
        assert sample_deck.get_rows()[2][1] == 'changed'
        assert sample_deck.get_rows()[1][1] == SAMPLE_ROWS[1][1]

    def test_update_row_writes_several_cells(self, store, sample_deck):
        sample_deck.update_row(0, {3: 'c', 4: 't'})
        row = sample_deck.get_rows()[0]
        assert row[3] == 'c' and row[4] == 't'

    def test_update_row_out_of_range(self, store, sample_deck):
        with pytest.raises(IndexError):
            sample_deck.update_row(99, {1: 'x'})

    def test_find_row_compares_as_text(self, store):
        table = store.create_table('T', ['id'])
        table.append_row([7])
        table.append_row(['card_b'])
        assert table.find_row(0, '7') == 0
        assert table.find_row(0, ' card_b ') == 1
        assert table.find_row(0, 'missing') is None

    def test_clear_columns(self, store, sample_deck):
        touched = sample_deck.clear_columns([3, 4])
        assert touched == len(SAMPLE_ROWS)
        assert all(row[3] is None and row[4] is None for row in sample_deck.get_rows())
        assert sample_deck.get_rows()[0][1] == SAMPLE_ROWS[0][1]

    def test_failed_transaction_rolls_back(self, store, sample_deck):
        with pytest.raises(RuntimeError):
            with store.transaction('Sample_Deck'):
                sample_deck.append_columns(['temp'])
                sample_deck.set_cell(0, 1, 'half-written')
                raise RuntimeError('boom')
        assert 'temp' not in sample_deck.get_headers()
        assert sample_deck.get_rows()[0][1] == SAMPLE_ROWS[0][1]


# ── Raw cards ─────────────────────────────────────────────────

class TestGetRawCards:
    def test_reads_all_cards(self, store, sample_deck):
        cards = db.get_raw_cards(store, 'Sample_Deck')
        assert [c['id'] for c in cards] == ['card001', 'card002', 'card003', 'card004', 'card005']

    def test_card_fields(self, store, sample_deck):
        card = db.get_raw_cards(store, 'Sample_Deck')[0]
        assert card['side_a'] == 'What is the capital of France?'
        assert card['side_b'] == 'Paris'
        assert card['side_c'] == 'Hint: European city'
        assert card['tags'] == ['geography', 'europe']
        assert card['created_by'] == 'admin'
        assert card['study_config'] == {'showSideB': True}
        assert card['audio_url'] is None

    def test_non_json_study_config_is_none(self, store, sample_deck):
        cards = {c['id']: c for c in db.get_raw_cards(store, 'Sample_Deck')}
        assert cards['card003']['study_config'] is None
        assert cards['card004']['study_config'] is None

    def test_empty_side_c_is_none(self, store, sample_deck):
        cards = {c['id']: c for c in db.get_raw_cards(store, 'Sample_Deck')}
        assert cards['card002']['side_c'] is None

    def test_missing_deck(self, store):
        with pytest.raises(DeckNotFound):
            db.get_raw_cards(store, 'Nope')

    @pytest.mark.parametrize('dropped', ['FlashcardID', 'FlashcardSideA', 'FlashcardSideB'])
    def test_missing_required_column(self, store, dropped):
        headers = [h for h in DECK_HEADERS if h != dropped]
        store.create_table('Broken', headers)
        with pytest.raises(SchemaError) as exc:
            db.get_raw_cards(store, 'Broken')
        assert exc.value.column == dropped

    def test_corrupt_rows_are_skipped(self, store):
        rows = [
            ['ok1', 'front', 'back'],
            ['', 'no id', 'back'],
            ['no_a', '', 'back'],
            ['no_b', 'front', None],
            ['ok2', 'front 2', 'back 2'],
        ]
        make_deck(store, 'Messy', rows=rows)
        assert [c['id'] for c in db.get_raw_cards(store, 'Messy')] == ['ok1', 'ok2']

    def test_numeric_ids_become_text(self, store):
        make_deck(store, 'Numbers', rows=[[1, 'a', 'b']])
        assert db.get_raw_cards(store, 'Numbers')[0]['id'] == '1'

    def test_empty_deck(self, store):
        store.create_table('Empty', DECK_HEADERS)
        assert db.get_raw_cards(store, 'Empty') == []


# ── Progress columns ──────────────────────────────────────────

class TestEnsureUserColumns:
    def test_creates_triple_at_the_end(self, store, sample_deck):
        cols = db.ensure_user_columns(store, 'Sample_Deck', 'alice')
        headers = sample_deck.get_headers()
        assert headers[-3:] == progress_column_names('alice')
        assert cols == (len(DECK_HEADERS), len(DECK_HEADERS) + 1, len(DECK_HEADERS) + 2)

    def test_idempotent(self, store, sample_deck):
        first = db.ensure_user_columns(store, 'Sample_Deck', 'alice')
        headers = sample_deck.get_headers()
        for _ in range(5):
            assert db.ensure_user_columns(store, 'Sample_Deck', 'alice') == first
        assert sample_deck.get_headers() == headers

    def test_existing_values_untouched(self, store, sample_deck):
        cols = db.ensure_user_columns(store, 'Sample_Deck', 'alice')
        sample_deck.update_row(0, {cols.rating: 2})
        db.ensure_user_columns(store, 'Sample_Deck', 'alice')
        db.ensure_user_columns(store, 'Sample_Deck', 'bob')
        assert sample_deck.get_rows()[0][cols.rating] == 2
        assert sample_deck.get_rows()[0][:len(DECK_HEADERS)] == SAMPLE_ROWS[0]

    def test_users_get_separate_triples(self, store, sample_deck):
        alice = db.ensure_user_columns(store, 'Sample_Deck', 'alice')
        bob = db.ensure_user_columns(store, 'Sample_Deck', 'bob')
        assert set(alice).isdisjoint(bob)
        assert len(sample_deck.get_headers()) == len(DECK_HEADERS) + 6

    def test_completes_a_partial_triple(self, store, sample_deck):
        sample_deck.append_columns(['alice_Rating'])
        cols = db.ensure_user_columns(store, 'Sample_Deck', 'alice')
        headers = sample_deck.get_headers()
        assert headers.count('alice_Rating') == 1
        assert headers[cols.last_review] == 'alice_LastReview'
        assert headers[cols.next_due] == 'alice_NextDue'

    def test_header_match_ignores_case(self, store, sample_deck):
        first = db.ensure_user_columns(store, 'Sample_Deck', 'alice')
        assert db.ensure_user_columns(store, 'Sample_Deck', 'Alice') == first
        assert db.find_user_columns(sample_deck, 'ALICE') == first
        assert len(sample_deck.get_headers()) == len(DECK_HEADERS) + 3

    def test_missing_deck(self, store):
        with pytest.raises(DeckNotFound):
            db.ensure_user_columns(store, 'Nope', 'alice')

    def test_racing_sessions_create_triple_once(self, store, sample_deck):
        results = []
        errors = []
        barrier = threading.Barrier(8)

        def worker():
            try:
                barrier.wait()
                results.append(db.ensure_user_columns(store, 'Sample_Deck', 'alice'))
            except Exception as e:  # collected for the assertion below
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(set(results)) == 1
        assert len(sample_deck.get_headers()) == len(DECK_HEADERS) + 3

    def test_two_store_handles_same_file(self, store, sample_deck):
        other = TabularStore(store.path)
        first = db.ensure_user_columns(store, 'Sample_Deck', 'alice')
        assert db.ensure_user_columns(other, 'Sample_Deck', 'alice') == first


class TestFindUserColumns:
    def test_absent_columns_are_none(self, store, sample_deck):
        assert db.find_user_columns(sample_deck, 'alice') == (None, None, None)

    def test_does_not_create(self, store, sample_deck):
        db.find_user_columns(sample_deck, 'alice')
        assert sample_deck.get_headers() == DECK_HEADERS

    def test_finds_existing(self, store, sample_deck):
        cols = db.ensure_user_columns(store, 'Sample_Deck', 'alice')
        assert db.find_user_columns(sample_deck, 'alice') == cols


class TestMediaColumns:
    def test_created_once(self, store, sample_deck):
        first = db.ensure_media_columns(store, 'Sample_Deck')
        second = db.ensure_media_columns(store, 'Sample_Deck')
        assert first == second
        assert sample_deck.get_headers()[-3:] == MEDIA_COLUMNS


# ── Decks + setup ─────────────────────────────────────────────

class TestDecks:
    def test_available_decks_skip_system_and_internal(self, store):
        store.create_table('Config', ['UserName'])
        store.create_table('Classes', ['ClassName'])
        store.create_table('Spanish', DECK_HEADERS)
        db.init_db(store, seed_sample=False)
        assert db.get_available_decks(store) == ['Spanish']

    def test_init_db_seeds_sample_deck(self, store):
        db.init_db(store)
        assert db.get_available_decks(store) == [SAMPLE_DECK]
        cards = db.get_raw_cards(store, SAMPLE_DECK)
        assert len(cards) == 5
        assert all(c['id'].startswith('card_') for c in cards)

    def test_sample_deck_not_recreated(self, store):
        assert db.create_sample_deck(store) is True
        assert db.create_sample_deck(store) is False
        assert len(db.get_raw_cards(store, SAMPLE_DECK)) == 5

    def test_init_db_creates_cache_table(self, store):
        db.init_db(store, seed_sample=False)
        assert _raw(store, "SELECT name FROM sqlite_master WHERE name = '_cache'") == [('_cache',)]
