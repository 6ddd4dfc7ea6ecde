import logging
from datetime import datetime
from typing import Any, Callable

from database.database import (
    ensure_user_columns, find_user_columns, get_available_decks, get_progress_cells,
    get_raw_cards, require_table,
)
from database.schema import ID_COL
from database.store import TabularStore
from utils.errors import CardNotFound, InvalidRating, NotLoggedIn, SchemaError, StudyError
from utils.srs import (
    RATINGS, calculate_interval, compute_next_due, format_timestamp, is_due,
    parse_rating, parse_timestamp,
)


def default_progress() -> dict[str, Any]:
    return {'rating': 0, 'last_review': None, 'next_due': None, 'interval': calculate_interval(0)}


def validate_rating(rating) -> int:
    """Accept 0..3 as a whole number (int, integral float or numeric string); anything else is InvalidRating."""
    if isinstance(rating, bool):
        raise InvalidRating(rating)
    try:
        value = float(str(rating).strip())
    except (TypeError, ValueError):
        raise InvalidRating(rating)
    if not value.is_integer() or int(value) not in RATINGS:
        raise InvalidRating(rating)
    return int(value)


class DeckProgressService:
    """Per-user scheduling state on top of the deck tables."""

    def __init__(self, store: TabularStore, clock: Callable[[], datetime] = datetime.now):
        self._store = store
        self._clock = clock

    def get_flashcards_for_deck(self, deck_name: str, username: str | None) -> dict[str, Any]:
        if not username:
            raise NotLoggedIn()

        logging.info(f"Loading deck {deck_name!r} for {username!r}")
        raw_cards = get_raw_cards(self._store, deck_name)
        columns = ensure_user_columns(self._store, deck_name, username)
        progress = self._read_progress(deck_name, columns)

        now = self._clock()
        cards = [self._merge(card, progress.get(card['id']), now) for card in raw_cards]
        due = sum(1 for card in cards if card['is_due'])

        logging.info(f"Deck {deck_name!r} for {username!r}: {len(cards)} cards, {due} due")
        return {
            'deck_name': deck_name,
            'cards': cards,
            'total_cards': len(cards),
            'due_cards': due,
        }

    def record_card_rating(self, deck_name: str, card_id: str, username: str | None, rating) -> dict[str, Any]:
        rating = validate_rating(rating)
        if not username:
            raise NotLoggedIn('User not logged in. Cannot record rating.')

        with self._store.transaction(deck_name):
            columns = ensure_user_columns(self._store, deck_name, username)
            table = require_table(self._store, deck_name)
            headers = [str(h).strip() for h in table.get_headers()]
            if ID_COL not in headers:
                raise SchemaError(deck_name, ID_COL)

            row = table.find_row(headers.index(ID_COL), card_id)
            if row is None:
                raise CardNotFound(deck_name, card_id)

            now = self._clock()
            next_due = compute_next_due(now, rating)
            table.update_row(row, {
                columns.rating: rating,
                columns.last_review: format_timestamp(now),
                columns.next_due: format_timestamp(next_due),
            })

        interval = calculate_interval(rating)
        logging.info(
            f"Rating recorded. User: {username}, Deck: {deck_name}, Card: {card_id}, "
            f"Rating: {rating}, NextDue: {next_due.isoformat()}"
        )
        return {'next_due': next_due.isoformat(), 'interval': interval}

    def reset_deck_progress(self, deck_name: str, username: str | None) -> bool:
        """Clear the user's progress values (columns stay). False if there was nothing to clear."""
        if not username:
            raise NotLoggedIn('User not logged in. Cannot reset progress.')

        with self._store.transaction(deck_name):
            table = require_table(self._store, deck_name)
            columns = [col for col in find_user_columns(table, username) if col is not None]
            if not columns:
                logging.info(f"No progress for {username!r} in {deck_name!r}, nothing to reset")
                return False
            cleared = table.clear_columns(columns)

        logging.info(f"Progress reset for User: {username}, Deck: {deck_name} ({cleared} rows)")
        return True

    def get_user_due_cards(self, username: str | None, decks: list[str] | None = None) -> dict[str, Any]:
        """
        Due counts per deck. A deck that fails (missing columns, vanished
        table...) gets an 'error' entry instead of counts; the rest still load.
        """
        if not username:
            raise NotLoggedIn('User not logged in.')

        if decks is None:
            decks = get_available_decks(self._store)

        due_cards_by_deck = {}
        for deck_name in decks:
            try:
                info = self.get_flashcards_for_deck(deck_name, username)
            except Exception as e:
                # One unreadable deck is reported in its entry; the others still load
                logging.warning(
                    f"Could not get card info for deck {deck_name!r} for {username!r}: {e}",
                    exc_info=not isinstance(e, StudyError),
                )
                due_cards_by_deck[deck_name] = {'total_cards': None, 'due_cards': None, 'error': str(e)}
                continue
            due_cards_by_deck[deck_name] = {
                'total_cards': info['total_cards'],
                'due_cards': info['due_cards'],
            }

        return {'decks': list(decks), 'due_cards_by_deck': due_cards_by_deck}

    # ── Private helpers ───────────────────────────────────────

    def _read_progress(self, deck_name: str, columns) -> dict[str, dict[str, Any]]:
        progress = {}
        for card_id, (rating, last_review, next_due) in get_progress_cells(self._store, deck_name, columns).items():
            rating = parse_rating(rating)
            progress[card_id] = {
                'rating': rating,
                'last_review': parse_timestamp(last_review),
                'next_due': parse_timestamp(next_due),
                'interval': calculate_interval(rating),
            }
        return progress

    @staticmethod
    def _merge(card: dict[str, Any], progress: dict[str, Any] | None, now: datetime) -> dict[str, Any]:
        progress = progress or default_progress()
        return {
            **card,
            'rating': progress['rating'],
            'last_review': progress['last_review'].isoformat() if progress['last_review'] else None,
            'next_due': progress['next_due'].isoformat() if progress['next_due'] else None,
            'interval': progress['interval'],
            'is_due': is_due(now, progress['next_due']),
        }
