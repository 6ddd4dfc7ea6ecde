import html
import logging
from typing import Any

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup, CallbackQuery
from telegram.ext import ContextTypes, ConversationHandler

from handlers.session import api_for, current_user
from utils.constants import DECK_LABEL_MAX, MENU_BUTTON, MENU_MARKUP, RATING_ICONS, ReviewState
from utils.srs import GOOD, RATING_LABELS, RATINGS, interval_label
from utils.telegram_helpers import safe_edit_text, safe_send_text


async def review_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Entry point: user clicks 'Review'."""
    query = update.callback_query
    await query.answer()

    text, markup = _deck_picker(update, context)
    await safe_edit_text(query, text, reply_markup=markup)
    return ReviewState.DECK_PICKER if context.user_data.get('review_decks') else ConversationHandler.END


async def review_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """/review slash command: same picker, as a new message."""
    text, markup = _deck_picker(update, context)
    await safe_send_text(update.message, text, reply_markup=markup)
    return ReviewState.DECK_PICKER if context.user_data.get('review_decks') else ConversationHandler.END


async def review_deck_selected(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """User picked a deck from the picker."""
    query = update.callback_query
    await query.answer()

    index = int(query.data.split('_')[2])  # review_deck_<index>
    decks = context.user_data.get('review_decks', [])
    if index >= len(decks):
        await safe_edit_text(query, "⚠️ That deck list is out of date. Try again.", reply_markup=MENU_MARKUP)
        return ConversationHandler.END

    deck_name = decks[index]
    result = api_for(context).get_flashcards_for_deck(current_user(update), deck_name)
    if not result['success']:
        await safe_edit_text(query, f"⚠️ {html.escape(result['message'])}", reply_markup=MENU_MARKUP)
        return ConversationHandler.END

    cards = [card for card in result['cards'] if card['is_due']]
    if not cards:
        await safe_edit_text(query, "✨ Nothing due in this deck.", reply_markup=MENU_MARKUP)
        return ConversationHandler.END

    context.user_data['review_deck'] = deck_name
    context.user_data['review_cards'] = cards
    context.user_data['review_index'] = 0
    context.user_data['review_correct'] = 0
    return await _show_front(query, context)


async def show_answer(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """User taps 'Show Answer': reveal side B (and C) + rating buttons."""
    query = update.callback_query
    await query.answer()

    card = _current_card(context)
    if card is None:
        return await _finish_review(query, context)

    lines = [
        html.escape(card['side_a']),
        '',
        f"\U0001f4a1 <b>{html.escape(card['side_b'])}</b>",
    ]
    if card.get('side_c'):
        lines += ['', f"<i>{html.escape(card['side_c'])}</i>"]
    media = _media_links(card)
    if media:
        lines += ['', media]
    lines += ['', _footer(context)]

    await safe_edit_text(query, '\n'.join(lines), reply_markup=InlineKeyboardMarkup(_build_rating_buttons()))
    return ReviewState.RATING


async def rate_card(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """User rates a card: record it, move to the next one."""
    query = update.callback_query
    await query.answer()

    rating = int(query.data.split('_')[1])
    card = _current_card(context)
    if card is None:
        return await _finish_review(query, context)

    deck_name = context.user_data['review_deck']
    result = api_for(context).record_card_rating(current_user(update), deck_name, card['id'], rating)
    if not result['success']:
        _cleanup_review_data(context)
        await safe_edit_text(query, f"⚠️ {html.escape(result['message'])}", reply_markup=MENU_MARKUP)
        return ConversationHandler.END

    if rating >= GOOD:
        context.user_data['review_correct'] = context.user_data.get('review_correct', 0) + 1

    logging.info(f"Card {card['id']} in {deck_name!r}: rated {rating}, next due {result['next_due']}")

    context.user_data['review_index'] = context.user_data.get('review_index', 0) + 1
    if _current_card(context) is None:
        return await _finish_review(query, context)
    return await _show_front(query, context)


async def cancel_review(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """User cancels mid-review. Works for both callback button and /cancel command."""
    reviewed = context.user_data.get('review_index', 0)
    _cleanup_review_data(context)

    text = f"⏹ Stopped after {reviewed} card{'s' if reviewed != 1 else ''}"

    if update.callback_query:
        await update.callback_query.answer()
        await safe_edit_text(update.callback_query, text, reply_markup=MENU_MARKUP)
    else:
        await safe_send_text(update.message, text, reply_markup=MENU_MARKUP)

    return ConversationHandler.END


# ============================================================
# Private helpers
# ============================================================

def _deck_picker(update: Update, context: ContextTypes.DEFAULT_TYPE) -> tuple[str, InlineKeyboardMarkup]:
    """Build the picker from the due summary; stores the deck list for the callbacks."""
    _cleanup_review_data(context)
    result = api_for(context).get_user_due_cards(current_user(update))
    if not result['success']:
        return f"⚠️ {html.escape(result['message'])}", MENU_MARKUP

    due_decks = [
        (name, entry['due_cards'])
        for name, entry in result['due_cards_by_deck'].items()
        if entry.get('due_cards')
    ]
    if not due_decks:
        return "✨ Nothing due — you're all caught up!", MENU_MARKUP

    context.user_data['review_decks'] = [name for name, _ in due_decks]
    buttons = [
        [InlineKeyboardButton(
            f"\U0001f4da {_truncate(name, DECK_LABEL_MAX)}  ·  {count} due",
            callback_data=f'review_deck_{index}',
        )]
        for index, (name, count) in enumerate(due_decks)
    ]
    buttons.append([InlineKeyboardButton("⏹ Cancel", callback_data='cancel_review')])

    total = sum(count for _, count in due_decks)
    return (
        f"\U0001f9e0 {total} card{'s' if total != 1 else ''} due\n\nChoose a deck:",
        InlineKeyboardMarkup(buttons),
    )


def _truncate(text: str, max_len: int) -> str:
    return text if len(text) <= max_len else text[:max_len - 1] + '…'


def _current_card(context: ContextTypes.DEFAULT_TYPE) -> dict[str, Any] | None:
    cards = context.user_data.get('review_cards', [])
    index = context.user_data.get('review_index', 0)
    return cards[index] if index < len(cards) else None


def _footer(context: ContextTypes.DEFAULT_TYPE) -> str:
    cards = context.user_data.get('review_cards', [])
    index = context.user_data.get('review_index', 0)
    deck_name = html.escape(context.user_data.get('review_deck', '—'))
    return f"\U0001f4c1 {deck_name}  ·  {index + 1}/{len(cards)}"


def _media_links(card: dict[str, Any]) -> str:
    links = []
    if card.get('audio_url'):
        links.append(f"<a href=\"{html.escape(card['audio_url'])}\">\U0001f50a Audio</a>")
    if card.get('image_url'):
        links.append(f"<a href=\"{html.escape(card['image_url'])}\">\U0001f5bc Image</a>")
    return '  '.join(links)


async def _show_front(query: CallbackQuery, context: ContextTypes.DEFAULT_TYPE) -> int:
    card = _current_card(context)
    buttons = InlineKeyboardMarkup([
        [InlineKeyboardButton("\U0001f440 Show answer", callback_data='show_answer')],
        [InlineKeyboardButton("⏹ Stop", callback_data='cancel_review')]
    ])
    text = f"{html.escape(card['side_a'])}\n\n{_footer(context)}"
    await safe_edit_text(query, text, reply_markup=buttons)
    return ReviewState.SHOWING_FRONT


def _build_rating_buttons() -> list[list[InlineKeyboardButton]]:
    """Two rows of two, each showing the interval that rating schedules."""
    buttons = [
        InlineKeyboardButton(
            f"{RATING_ICONS[rating]} {RATING_LABELS[rating]} {interval_label(rating)}",
            callback_data=f'rate_{rating}',
        )
        for rating in RATINGS
    ]
    return [buttons[:2], buttons[2:]]


async def _finish_review(query: CallbackQuery, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Show review summary and end conversation."""
    total = len(context.user_data.get('review_cards', []))
    correct = context.user_data.get('review_correct', 0)
    _cleanup_review_data(context)

    markup = InlineKeyboardMarkup([
        [InlineKeyboardButton("\U0001f9e0 Another deck", callback_data='review')],
        MENU_BUTTON,
    ])
    await safe_edit_text(query, f"\U0001f389 Done! {correct}/{total} recalled", reply_markup=markup)
    return ConversationHandler.END


def _cleanup_review_data(context: ContextTypes.DEFAULT_TYPE) -> None:
    for key in ('review_decks', 'review_deck', 'review_cards', 'review_index', 'review_correct'):
        context.user_data.pop(key, None)
