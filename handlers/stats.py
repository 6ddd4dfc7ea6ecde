import html
from typing import Any

from telegram import Update
from telegram.ext import ContextTypes

from handlers.session import api_for, current_user
from utils.constants import MENU_MARKUP
from utils.telegram_helpers import safe_edit_text, safe_send_text


def _deck_lines(due_cards_by_deck: dict[str, dict[str, Any]]) -> str:
    if not due_cards_by_deck:
        return "<i>No decks yet</i>"

    lines = []
    for deck_name, entry in due_cards_by_deck.items():
        name = html.escape(deck_name)
        if entry.get('error'):
            lines.append(f"⚠️ {name}  ·  <i>{html.escape(entry['error'])}</i>")
        else:
            lines.append(f"\U0001f4da {name}  ·  {entry['due_cards']}/{entry['total_cards']} due")
    return '\n'.join(lines)


def _build_due_text(context: ContextTypes.DEFAULT_TYPE, update: Update) -> str:
    result = api_for(context).get_user_due_cards(current_user(update))
    if not result['success']:
        return f"⚠️ {html.escape(result['message'])}"
    return f"\U0001f4ca <b>Due cards</b>\n\n{_deck_lines(result['due_cards_by_deck'])}"


async def due_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    await safe_edit_text(query, _build_due_text(context, update), reply_markup=MENU_MARKUP)


async def due_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/due slash command: send a fresh summary message."""
    await safe_send_text(update.message, _build_due_text(context, update), reply_markup=MENU_MARKUP)
