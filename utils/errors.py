"""
Error taxonomy for the study engine.

Everything below the API facade raises these; services/api.py turns them
into {'success': False, 'message': ...} envelopes.
"""


class StudyError(Exception):
    """Base class. str(error) is the user-facing message."""


class NotLoggedIn(StudyError):
    def __init__(self, message='User not logged in. Please log in to study decks.'):
        super().__init__(message)


class PermissionDenied(StudyError):
    pass


class DeckNotFound(StudyError):
    def __init__(self, deck_name):
        self.deck_name = deck_name
        super().__init__(f'Deck "{deck_name}" not found.')


class CardNotFound(StudyError):
    def __init__(self, deck_name, card_id):
        self.deck_name = deck_name
        self.card_id = card_id
        super().__init__(f'Card ID "{card_id}" not found in deck "{deck_name}".')


class SchemaError(StudyError):
    def __init__(self, deck_name, column):
        self.deck_name = deck_name
        self.column = column
        super().__init__(
            f'Deck "{deck_name}" is missing required column: "{column}". Please check sheet headers.'
        )


class InvalidRating(StudyError):
    def __init__(self, rating):
        self.rating = rating
        super().__init__('Invalid rating value. Must be between 0 and 3.')


class ExternalServiceUnavailable(StudyError):
    pass


class CacheCorruption(StudyError):
    """Raised inside the cache only; always recovered as a miss."""
