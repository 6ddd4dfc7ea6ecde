import asyncio
import html
import logging

from telegram import Update
from telegram.ext import ContextTypes

from handlers.session import api_for, current_user
from utils.telegram_helpers import safe_send_photo, safe_send_text


async def lookup_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/lookup <word>: preview the audio and image a card would get."""
    word = ' '.join(context.args or []).strip()
    if not word:
        await safe_send_text(update.message, "Usage: /lookup &lt;word&gt;")
        return

    # Providers make blocking HTTP calls; keep them off the event loop
    result = await asyncio.to_thread(api_for(context).preview_multimedia_content, current_user(update), word)
    logging.info(f"Lookup {word!r}: success={result['success']}")

    if not result['success']:
        await safe_send_text(update.message, f"⚠️ {html.escape(result['message'])}")
        return

    lines = [f"\U0001f50e <b>{html.escape(word)}</b>", '']
    if result.get('audio_url'):
        lines.append(f"<a href=\"{html.escape(result['audio_url'])}\">\U0001f50a Pronunciation</a>")
    lines.append(f"<i>{html.escape(result['message'])}</i>")
    await safe_send_text(update.message, '\n'.join(lines))

    if result.get('image_url'):
        await safe_send_photo(update.message, result['image_url'], caption=html.escape(word))


async def attach_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/attach <deck> <card_id> <word>: store the lookup on a card (admins)."""
    args = context.args or []
    if len(args) < 3:
        await safe_send_text(update.message, "Usage: /attach &lt;deck&gt; &lt;card_id&gt; &lt;word&gt;")
        return

    deck_name, card_id, word = args[0], args[1], ' '.join(args[2:])
    result = await asyncio.to_thread(
        api_for(context).add_multimedia_to_card, current_user(update), deck_name, card_id, word
    )
    if not result['success']:
        await safe_send_text(update.message, f"⚠️ {html.escape(result['message'])}")
        return

    found = [name for name, key in (('audio', 'audio_url'), ('image', 'image_url')) if result.get(key)]
    await safe_send_text(
        update.message,
        f"✅ Added {' + '.join(found)} to <code>{html.escape(card_id)}</code> in "
        f"<b>{html.escape(deck_name)}</b>.",
    )
