from telegram import Update
from telegram.ext import ContextTypes

from utils.constants import MENU_MARKUP
from utils.srs import INTERVALS
from utils.telegram_helpers import safe_edit_text, safe_send_text


HELP_TEXT = (
    "<b>❓ How it works</b>\n\n"
    "1. Hit Review and pick a deck with due cards\n"
    "2. Try to recall the answer, then reveal it\n"
    "3. Rate how well you remembered\n\n"
    f"Again brings the card back in {INTERVALS[0]} day, Hard in {INTERVALS[1]}, "
    f"Good in {INTERVALS[2]}, Easy in {INTERVALS[3]}.\n\n"
    "/due — due cards per deck\n"
    "/reset &lt;deck&gt; — start a deck over\n"
    "/lookup &lt;word&gt; — audio + image preview (admins)\n"
    "/attach &lt;deck&gt; &lt;card_id&gt; &lt;word&gt; — add them to a card (admins)"
)


async def help_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    await safe_edit_text(query, HELP_TEXT, reply_markup=MENU_MARKUP)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await safe_send_text(update.message, HELP_TEXT, reply_markup=MENU_MARKUP)
