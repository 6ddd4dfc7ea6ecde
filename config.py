import os
from dotenv import load_dotenv

load_dotenv()

TG_BOT_TOKEN = os.getenv('TELEGRAM_BOT_TOKEN')
PROXY_URL = os.getenv('PROXY_URL')

DB_PATH = os.getenv('DB_PATH') or os.path.join(os.path.dirname(os.path.abspath(__file__)), 'study.db')

CACHE_TTL_DAYS = int(os.getenv('CACHE_TTL_DAYS', '7'))
HTTP_TIMEOUT = float(os.getenv('HTTP_TIMEOUT', '10'))
PEXELS_API_KEY = os.getenv('PEXELS_API_KEY')

ADMIN_USERNAMES = {
    name.strip().lstrip('@').lower()
    for name in os.getenv('ADMIN_USERNAMES', '').split(',')
    if name.strip()
}

SEED_SAMPLE_DECK = os.getenv('SEED_SAMPLE_DECK', '1').lower() not in ('0', 'false', 'no')
