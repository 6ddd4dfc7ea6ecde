import html
import logging

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes

from handlers.session import api_for, current_user
from utils.telegram_helpers import safe_edit_text, safe_send_text


def build_main_menu(context: ContextTypes.DEFAULT_TYPE, user: dict | None) -> tuple[str, InlineKeyboardMarkup]:
    """
    Returns (message_text, markup) for the main menu.
    Text includes a one-line due summary across all decks.
    """
    result = api_for(context).get_user_due_cards(user)
    due = 0
    decks = 0
    if result['success']:
        counts = result['due_cards_by_deck'].values()
        decks = len(result['due_cards_by_deck'])
        due = sum(entry['due_cards'] or 0 for entry in counts)

    if decks == 0:
        text = "\U0001f4da <b>Study</b>\n\n<i>No decks yet — ask an admin to add one.</i>"
    elif due == 0:
        text = f"✅ <b>All caught up!</b>\n\n<i>{decks} deck{'s' if decks != 1 else ''} available</i>"
    elif due == 1:
        text = "\U0001f9e0 <b>1 card to review</b>"
    else:
        text = f"\U0001f9e0 <b>{due} cards to review</b>"

    review_label = f'\U0001f9e0 Review · {due} due' if due > 0 else '\U0001f9e0 Review'
    markup = InlineKeyboardMarkup([
        [
            InlineKeyboardButton(review_label, callback_data='review'),
            InlineKeyboardButton('\U0001f4ca Due', callback_data='due'),
        ],
        [
            InlineKeyboardButton('♻️ Reset a deck', callback_data='reset_menu'),
            InlineKeyboardButton('❓ How it works', callback_data='help'),
        ],
    ])

    return text, markup


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    logging.info("Started /start")

    user = current_user(update)
    name = update.effective_user.first_name or user['username']

    text, markup = build_main_menu(context, user)
    await safe_send_text(
        update.message,
        f"Hey {html.escape(name)} \U0001f44b\n\n{text}",
        reply_markup=markup,
    )


async def main_menu(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Callback handler for the 'Menu' button (outside conversation)."""
    query = update.callback_query
    await query.answer()

    text, markup = build_main_menu(context, current_user(update))
    await safe_edit_text(query, text, reply_markup=markup)
