"""
Session lookup for the Telegram front end.

Usernames end up inside deck column names ({username}_Rating), and sqlite
column names are case-insensitive, so they are always lowercased here.
"""

from telegram import Update
from telegram.ext import ContextTypes

from config import ADMIN_USERNAMES


def username_for(tg_user) -> str:
    if tg_user.username:
        return tg_user.username.lower()
    return f'tg{tg_user.id}'


def current_user(update: Update) -> dict | None:
    tg_user = update.effective_user
    if tg_user is None:
        return None
    username = username_for(tg_user)
    return {'username': username, 'is_admin': username in ADMIN_USERNAMES}


def api_for(context: ContextTypes.DEFAULT_TYPE):
    """The StudyApi built at startup (see bot.py)."""
    return context.bot_data['api']
