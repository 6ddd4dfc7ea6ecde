"""Reset a deck's progress: /reset <deck> or the menu's deck picker, then confirm."""

import html

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes

from handlers.session import api_for, current_user
from utils.constants import DECK_LABEL_MAX, MENU_BUTTON, MENU_MARKUP
from utils.telegram_helpers import safe_edit_text, safe_send_text


def _confirm_markup() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton("♻️ Yes, reset", callback_data='reset_yes'),
            InlineKeyboardButton("✖ Keep", callback_data='main_menu'),
        ],
    ])


def _confirm_text(deck_name: str) -> str:
    return (
        f"Reset your progress in <b>{html.escape(deck_name)}</b>?\n\n"
        "<i>Every card becomes new and due again.</i>"
    )


async def reset_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/reset <deck name>"""
    deck_name = ' '.join(context.args or []).strip()
    if not deck_name:
        await safe_send_text(update.message, "Usage: /reset &lt;deck name&gt;")
        return

    context.user_data['reset_deck'] = deck_name
    await safe_send_text(update.message, _confirm_text(deck_name), reply_markup=_confirm_markup())


async def reset_menu(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Menu button: list decks to pick one for reset."""
    query = update.callback_query
    await query.answer()

    result = api_for(context).get_user_due_cards(current_user(update))
    if not result['success']:
        await safe_edit_text(query, f"⚠️ {html.escape(result['message'])}", reply_markup=MENU_MARKUP)
        return

    decks = list(result['due_cards_by_deck'])
    context.user_data['reset_decks'] = decks
    buttons = [
        [InlineKeyboardButton(name[:DECK_LABEL_MAX], callback_data=f'reset_pick_{index}')]
        for index, name in enumerate(decks)
    ]
    buttons.append(MENU_BUTTON)
    await safe_edit_text(query, "♻️ Which deck?", reply_markup=InlineKeyboardMarkup(buttons))


async def reset_pick(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()

    index = int(query.data.split('_')[2])  # reset_pick_<index>
    decks = context.user_data.get('reset_decks', [])
    if index >= len(decks):
        await safe_edit_text(query, "⚠️ That deck list is out of date. Try again.", reply_markup=MENU_MARKUP)
        return

    context.user_data['reset_deck'] = decks[index]
    await safe_edit_text(query, _confirm_text(decks[index]), reply_markup=_confirm_markup())


async def reset_yes(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()

    deck_name = context.user_data.pop('reset_deck', None)
    context.user_data.pop('reset_decks', None)
    if deck_name is None:
        await safe_edit_text(query, "⚠️ Nothing to reset.", reply_markup=MENU_MARKUP)
        return

    result = api_for(context).reset_deck_progress(current_user(update), deck_name)
    icon = '✅' if result['success'] else '⚠️'
    await safe_edit_text(query, f"{icon} {html.escape(result['message'])}", reply_markup=MENU_MARKUP)
