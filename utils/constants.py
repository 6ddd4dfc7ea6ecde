from enum import auto, IntEnum
from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from utils.srs import AGAIN, EASY, GOOD, HARD

# Telegram caps callback_data at 64 bytes, so decks are passed by list index
DECK_LABEL_MAX = 40


class ReviewState(IntEnum):
    DECK_PICKER = auto()
    SHOWING_FRONT = auto()
    RATING = auto()


RATING_ICONS = {
    AGAIN: '\U0001f534',
    HARD: '\U0001f7e0',
    GOOD: '\U0001f7e2',
    EASY: '\U0001f535',
}

MENU_BUTTON = [InlineKeyboardButton("\U0001f3e0 Menu", callback_data='main_menu')]

MENU_MARKUP = InlineKeyboardMarkup([MENU_BUTTON])
