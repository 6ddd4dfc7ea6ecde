import logging

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)

from datetime import timedelta

import httpx
from telegram import Update
from telegram.error import BadRequest, Forbidden, TimedOut, NetworkError
from telegram.ext import (
    ApplicationBuilder,
    CommandHandler,
    ConversationHandler,
    CallbackQueryHandler,
    ContextTypes,
)

from config import (
    TG_BOT_TOKEN, PROXY_URL, DB_PATH, CACHE_TTL_DAYS, HTTP_TIMEOUT,
    PEXELS_API_KEY, SEED_SAMPLE_DECK,
)
from database.database import init_db
from database.store import TabularStore
from services.api import StudyApi
from services.deck_progress import DeckProgressService
from services.multimedia import MultimediaService
from services.providers import MerriamWebsterAudio, PexelsImages
from utils.cache import TTLCache
import handlers.help as hand_help
import handlers.lookup as hand_lookup
import handlers.manage as hand_manage
import handlers.review as hand_review
import handlers.start as hand_start
import handlers.stats as hand_stats
from utils.constants import ReviewState


def build_api(store: TabularStore, http_client: httpx.Client) -> StudyApi:
    """Wire the services once; handlers reach them through bot_data['api']."""
    cache = TTLCache(store, ttl=timedelta(days=CACHE_TTL_DAYS))
    multimedia = MultimediaService(
        store,
        cache,
        audio_provider=MerriamWebsterAudio(http_client),
        image_provider=PexelsImages(http_client, PEXELS_API_KEY),
    )
    return StudyApi(DeckProgressService(store), multimedia)


def main() -> None:
    logging.info("Running main")

    store = TabularStore(DB_PATH)
    logging.info("Init db...")
    init_db(store, seed_sample=SEED_SAMPLE_DECK)

    http_client = httpx.Client(timeout=HTTP_TIMEOUT, headers={'User-Agent': 'deckstudy-bot'})

    builder = ApplicationBuilder().token(TG_BOT_TOKEN)
    if PROXY_URL:
        builder = builder.proxy(PROXY_URL).get_updates_proxy(PROXY_URL)
    application = builder.build()
    application.bot_data['api'] = build_api(store, http_client)

    # Review conversation
    review_handler = ConversationHandler(
        entry_points=[
            CallbackQueryHandler(hand_review.review_entry, pattern='^review$'),
            CommandHandler('review', hand_review.review_command),
        ],
        per_message=False,

        states={
            ReviewState.DECK_PICKER: [
                CallbackQueryHandler(hand_review.review_deck_selected, pattern=r'^review_deck_\d+$'),
                CallbackQueryHandler(hand_review.cancel_review, pattern='^cancel_review$'),
            ],

            ReviewState.SHOWING_FRONT: [
                CallbackQueryHandler(hand_review.show_answer, pattern='^show_answer$'),
                CallbackQueryHandler(hand_review.cancel_review, pattern='^cancel_review$'),
            ],

            ReviewState.RATING: [
                CallbackQueryHandler(hand_review.rate_card, pattern='^rate_[0-3]$'),
                CallbackQueryHandler(hand_review.cancel_review, pattern='^cancel_review$'),
            ],
        },

        fallbacks=[CommandHandler('cancel', hand_review.cancel_review)]
    )

    application.add_handler(CommandHandler('start', hand_start.start))
    application.add_handler(review_handler)

    # Slash commands
    application.add_handler(CommandHandler('due', hand_stats.due_command))
    application.add_handler(CommandHandler('reset', hand_manage.reset_command))
    application.add_handler(CommandHandler('lookup', hand_lookup.lookup_command))
    application.add_handler(CommandHandler('attach', hand_lookup.attach_command))
    application.add_handler(CommandHandler('help', hand_help.help_command))

    # Standalone callback handlers
    application.add_handler(CallbackQueryHandler(hand_start.main_menu, pattern='^main_menu$'))
    application.add_handler(CallbackQueryHandler(hand_stats.due_entry, pattern='^due$'))
    application.add_handler(CallbackQueryHandler(hand_help.help_entry, pattern='^help$'))

    # Reset progress
    application.add_handler(CallbackQueryHandler(hand_manage.reset_menu, pattern='^reset_menu$'))
    application.add_handler(CallbackQueryHandler(hand_manage.reset_pick, pattern=r'^reset_pick_\d+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.reset_yes, pattern='^reset_yes$'))

    application.add_error_handler(error_handler)
    try:
        application.run_polling()
    finally:
        http_client.close()


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Log the error and try to tell the user something broke."""
    error = context.error
    logging.error(f"Update {update} caused error: {error}", exc_info=error)

    if isinstance(error, Forbidden):
        # Bot blocked by the user
        logging.warning(f"Bot was blocked by user: {error}")
        return

    if isinstance(error, (TimedOut, NetworkError)):
        logging.warning(f"Network issue: {error}")
        return

    if isinstance(error, BadRequest):
        msg = str(error).lower()
        if "message is not modified" in msg:
            # Same button tapped twice
            return
        logging.warning(f"Bad request: {error}")

    if isinstance(update, Update) and update.effective_chat:
        try:
            await context.bot.send_message(
                chat_id=update.effective_chat.id,
                text="⚠️ Something went wrong. Try /start to reset."
            )
        except (Forbidden, TimedOut, NetworkError, BadRequest) as e:
            logging.warning(f"Could not notify user about the error: {e}")


if __name__ == '__main__':
    logging.info("Starting app")
    main()
