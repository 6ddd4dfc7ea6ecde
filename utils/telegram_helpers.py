"""
Telegram calls that never raise.

Handlers send everything through these. Card sides, deck names and
usernames are user content: html.escape() them before embedding, since
every message goes out with parse_mode='HTML'.
"""

import logging
from typing import Awaitable

from telegram import CallbackQuery, InlineKeyboardMarkup, Message
from telegram.error import BadRequest, Forbidden, NetworkError, TimedOut

logger = logging.getLogger(__name__)

PARSE_MODE = 'HTML'


async def _guarded(action: str, call: Awaitable) -> bool:
    try:
        await call
        return True
    except Forbidden:
        logger.warning(f"{action}: bot was blocked by user")
    except (TimedOut, NetworkError) as e:
        logger.warning(f"{action} network error: {e}")
    except BadRequest as e:
        if "message is not modified" in str(e).lower():
            return True  # same content, harmless
        logger.warning(f"{action} BadRequest: {e}")
    return False


async def safe_edit_text(
    query: CallbackQuery,
    text: str,
    reply_markup: InlineKeyboardMarkup | None = None,
) -> bool:
    """Edit the message behind a button press; send a fresh reply if the edit fails."""
    edited = await _guarded(
        'safe_edit_text',
        query.edit_message_text(text, reply_markup=reply_markup, parse_mode=PARSE_MODE),
    )
    if edited or query.message is None:
        return edited
    return await safe_send_text(query.message, text, reply_markup=reply_markup)


async def safe_send_text(
    message: Message,
    text: str,
    reply_markup: InlineKeyboardMarkup | None = None,
) -> bool:
    return await _guarded(
        'safe_send_text',
        message.reply_text(text, reply_markup=reply_markup, parse_mode=PARSE_MODE),
    )


async def safe_send_photo(
    message: Message,
    photo: str,
    caption: str | None = None,
) -> bool:
    return await _guarded(
        'safe_send_photo',
        message.reply_photo(photo=photo, caption=caption, parse_mode=PARSE_MODE),
    )
