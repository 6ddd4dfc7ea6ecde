import json
import logging
import uuid
from collections import namedtuple
from datetime import datetime

from database.schema import (
    ATTRIBUTION_COL, AUDIO_URL_COL, CREATED_BY_COL, DATE_CREATED_COL, DECK_HEADERS,
    ID_COL, IMAGE_URL_COL, INTERNAL_PREFIX, MEDIA_COLUMNS, REQUIRED_COLUMNS, SAMPLE_CARDS,
    SAMPLE_DECK, SIDE_A_COL, SIDE_B_COL, SIDE_C_COL, STUDY_CONFIG_COL, SYSTEM_TABLES,
    TAGS_COL, cache_schema, progress_column_names,
)
from database.store import Table, TabularStore
from utils.errors import DeckNotFound, SchemaError
from utils.srs import format_timestamp

# Column positions of one user's progress triple. A field is None when the
# column does not exist (only ever seen through find_user_columns).
UserColumns = namedtuple('UserColumns', ['rating', 'last_review', 'next_due'])


# DECK COMMANDS =============================================

def require_table(store: TabularStore, deck_name: str) -> Table:
    table = store.get_table(deck_name)
    if table is None:
        logging.info(f"Deck not found: {deck_name}")
        raise DeckNotFound(deck_name)
    return table


def get_available_decks(store: TabularStore) -> list[str]:
    return [
        name for name in store.list_tables()
        if name not in SYSTEM_TABLES and not name.startswith(INTERNAL_PREFIX)
    ]


def get_raw_cards(store: TabularStore, deck_name: str) -> list[dict]:
    """
    Read every valid card in a deck.

    Raises DeckNotFound / SchemaError. Rows missing an id, side A or side B
    are skipped and logged; they never fail the whole read.
    """
    with store.transaction(immediate=False):
        table = require_table(store, deck_name)
        headers = table.get_headers()
        rows = table.get_rows()
    return cards_from_rows(deck_name, headers, rows)


def cards_from_rows(deck_name: str, headers: list[str], rows: list[list]) -> list[dict]:
    headers = [str(h).strip() for h in headers]
    for col in REQUIRED_COLUMNS:
        if col not in headers:
            logging.warning(f"Deck {deck_name!r} is missing required column {col!r}")
            raise SchemaError(deck_name, col)

    cards = []
    for index, row in enumerate(rows):
        record = dict(zip(headers, row))
        if not all(_present(record.get(col)) for col in REQUIRED_COLUMNS):
            logging.warning(
                f"Skipping row {index + 2} in deck {deck_name!r}: missing "
                f"{ID_COL}, {SIDE_A_COL} or {SIDE_B_COL}. Raw: {row[:len(DECK_HEADERS)]}"
            )
            continue
        cards.append(_card_from_record(record))

    if not cards:
        logging.info(f"No valid cards found in {deck_name!r}")
    return cards


def _card_from_record(record: dict) -> dict:
    return {
        'id': str(record[ID_COL]).strip(),
        'side_a': str(record[SIDE_A_COL]),
        'side_b': str(record[SIDE_B_COL]),
        'side_c': _text_or_none(record.get(SIDE_C_COL)),
        'tags': _parse_tags(record.get(TAGS_COL)),
        'created_by': _text_or_none(record.get(CREATED_BY_COL)),
        'date_created': _text_or_none(record.get(DATE_CREATED_COL)),
        'study_config': _parse_study_config(record.get(STUDY_CONFIG_COL)),
        'audio_url': _text_or_none(record.get(AUDIO_URL_COL)),
        'image_url': _text_or_none(record.get(IMAGE_URL_COL)),
        'attribution': _text_or_none(record.get(ATTRIBUTION_COL)),
    }


def _present(value) -> bool:
    return value is not None and str(value).strip() != ''


def _text_or_none(value) -> str | None:
    return str(value) if _present(value) else None


def _parse_tags(value) -> list[str]:
    if not _present(value):
        return []
    return [tag.strip() for tag in str(value).split(',') if tag.strip()]


def _parse_study_config(value) -> dict | None:
    # Older decks hold plain 'true' or free text here
    if not _present(value):
        return None
    try:
        parsed = json.loads(str(value))
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


# PROGRESS COLUMNS ===========================================

def _header_positions(headers: list) -> dict[str, int]:
    """Lowercased header -> first position. sqlite column names are case-insensitive."""
    positions = {}
    for index, header in enumerate(headers):
        positions.setdefault(str(header).strip().lower(), index)
    return positions


def find_user_columns(table: Table, username: str) -> UserColumns:
    """Look up the user's progress columns without creating anything."""
    positions = _header_positions(table.get_headers())
    return UserColumns(*(positions.get(name.lower()) for name in progress_column_names(username)))


def ensure_user_columns(store: TabularStore, deck_name: str, username: str) -> UserColumns:
    """
    Make sure the deck has the user's Rating/LastReview/NextDue columns.

    Idempotent: when all three exist nothing is written. Otherwise exactly the
    missing ones are appended. The check and the append happen under the
    deck's lock inside one IMMEDIATE transaction, so two sessions racing on
    the same (deck, user) create the triple once, and never half of it.
    """
    names = progress_column_names(username)
    with store.transaction(deck_name):
        table = require_table(store, deck_name)
        headers = table.get_headers()
        positions = _header_positions(headers)
        missing = [name for name in names if name.lower() not in positions]
        if missing:
            table.append_columns(missing)
            for offset, name in enumerate(missing):
                positions[name.lower()] = len(headers) + offset
            logging.info(f"Added progress columns {missing} for user {username!r} in deck {deck_name!r}")
        return UserColumns(*(positions[name.lower()] for name in names))


def get_progress_cells(store: TabularStore, deck_name: str, columns: UserColumns) -> dict[str, tuple]:
    """Raw (rating, last_review, next_due) cells keyed by card id. First row wins on duplicate ids."""
    with store.transaction(immediate=False):
        table = require_table(store, deck_name)
        headers = [str(h).strip() for h in table.get_headers()]
        rows = table.get_rows()

    if ID_COL not in headers:
        raise SchemaError(deck_name, ID_COL)
    id_col = headers.index(ID_COL)

    cells = {}
    for row in rows:
        card_id = row[id_col]
        if not _present(card_id):
            continue
        card_id = str(card_id).strip()
        if card_id in cells:
            continue
        cells[card_id] = tuple(None if col is None else row[col] for col in columns)
    return cells


def ensure_media_columns(store: TabularStore, deck_name: str) -> dict[str, int]:
    """Same compare-and-create as the progress triple, for AudioUrl/ImageUrl/Attribution."""
    with store.transaction(deck_name):
        table = require_table(store, deck_name)
        headers = table.get_headers()
        positions = _header_positions(headers)
        missing = [name for name in MEDIA_COLUMNS if name.lower() not in positions]
        if missing:
            table.append_columns(missing)
            for offset, name in enumerate(missing):
                positions[name.lower()] = len(headers) + offset
            logging.info(f"Added media columns {missing} in deck {deck_name!r}")
        return {name: positions[name.lower()] for name in MEDIA_COLUMNS}


# SETUP ======================================================

def create_sample_deck(store: TabularStore, created_by: str = 'admin') -> bool:
    """Create Sample_Deck with five cards. Returns False if it already exists."""
    if store.has_table(SAMPLE_DECK):
        return False

    with store.transaction(SAMPLE_DECK):
        table = store.create_table(SAMPLE_DECK, DECK_HEADERS)
        now = format_timestamp(datetime.now())
        for side_a, side_b, side_c, tags, study_config in SAMPLE_CARDS:
            card_id = f'card_{uuid.uuid4().hex[:8]}'
            table.append_row([card_id, side_a, side_b, side_c, tags, now, created_by, study_config])

    logging.info(f"{SAMPLE_DECK!r} created with {len(SAMPLE_CARDS)} sample cards")
    return True


def init_db(store: TabularStore, seed_sample: bool = True) -> None:
    with store.transaction() as conn:
        conn.execute(cache_schema)
    if seed_sample:
        create_sample_deck(store)
