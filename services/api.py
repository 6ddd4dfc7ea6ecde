"""
The functions the UI layer calls.

Every method takes the session user ({'username': str, 'is_admin': bool} or
None) and returns a {'success': bool, ...} dict. Exceptions never escape:
StudyError subclasses become their message, anything else becomes a generic
server-error message and is logged with its traceback.
"""

import logging
from functools import wraps
from typing import Any

from services.deck_progress import DeckProgressService
from services.multimedia import MultimediaService
from utils.errors import NotLoggedIn, PermissionDenied, StudyError

logger = logging.getLogger(__name__)

User = dict[str, Any]


def envelope(action: str):
    """Wrap a method so it always returns a success envelope."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs) -> dict[str, Any]:
            try:
                return {'success': True, **func(*args, **kwargs)}
            except StudyError as e:
                logger.info(f"{action} rejected: {e}")
                return {'success': False, 'message': str(e)}
            except Exception as e:
                logger.exception(f"Error in {action}")
                return {'success': False, 'message': f'Server error {action}: {e}'}
        return wrapper
    return decorator


def _username(user: User | None, message: str) -> str:
    if not user or not user.get('username'):
        raise NotLoggedIn(message)
    return user['username']


def _require_admin(user: User | None, message: str, denied: str) -> None:
    _username(user, message)
    if not user.get('is_admin'):
        raise PermissionDenied(denied)


class StudyApi:
    def __init__(self, progress: DeckProgressService, multimedia: MultimediaService):
        self.progress = progress
        self.multimedia = multimedia

    @envelope('getting flashcards')
    def get_flashcards_for_deck(self, user: User | None, deck_name: str) -> dict[str, Any]:
        username = _username(user, 'User not logged in. Please log in to study decks.')
        return self.progress.get_flashcards_for_deck(deck_name, username)

    @envelope('recording card rating')
    def record_card_rating(self, user: User | None, deck_name: str, card_id: str, rating) -> dict[str, Any]:
        # The service validates the rating before it checks the login
        username = user.get('username') if user else None
        result = self.progress.record_card_rating(deck_name, card_id, username, rating)
        return {'message': 'Rating recorded successfully.', **result}

    @envelope('getting user due cards')
    def get_user_due_cards(self, user: User | None) -> dict[str, Any]:
        username = _username(user, 'User not logged in.')
        return self.progress.get_user_due_cards(username)

    @envelope('resetting deck progress')
    def reset_deck_progress(self, user: User | None, deck_name: str) -> dict[str, Any]:
        username = _username(user, 'User not logged in. Cannot reset progress.')
        if self.progress.reset_deck_progress(deck_name, username):
            message = f'Progress for deck "{deck_name}" has been reset successfully.'
        else:
            message = f'No progress data found for user "{username}" in deck "{deck_name}" to reset.'
        return {'message': message}

    def preview_multimedia_content(self, user: User | None, word: str) -> dict[str, Any]:
        """
        Audio/image preview for a word. The lookup result is already an
        envelope: partial results succeed with a message, total failure
        comes back with success False.
        """
        try:
            _require_admin(
                user,
                'You must be logged in to use dictionary tools.',
                'Admin access required to use dictionary tools.',
            )
            if not word or not word.strip():
                return {'success': False, 'message': 'Word is required for dictionary lookup.'}
            return self.multimedia.lookup(word)
        except StudyError as e:
            return {'success': False, 'message': str(e)}
        except Exception as e:
            logger.exception(f"Error previewing multimedia content for {word!r}")
            return {'success': False, 'message': f'Server error previewing dictionary content: {e}'}

    @envelope('adding multimedia content')
    def add_multimedia_to_card(self, user: User | None, deck_name: str, card_id: str, word: str) -> dict[str, Any]:
        _require_admin(user, 'You must be logged in to modify cards.', 'Admin access required to modify cards.')
        if not word or not word.strip():
            raise StudyError('Word is required for dictionary lookup.')
        return self.multimedia.attach_to_card(deck_name, card_id, word)
