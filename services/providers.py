"""
Third-party multimedia lookups.

Both providers answer with {'success': bool, 'url': str | None, 'message': str}
and never raise: network errors, timeouts, bad status codes and a missing
API key all come back as success=False with a message.

The Merriam-Webster lookup scrapes the public dictionary page. If the page
markup changes, extract_audio_url is the function that breaks.
"""

import logging
import re

import httpx

from utils.errors import ExternalServiceUnavailable

logger = logging.getLogger(__name__)

MW_DICTIONARY_URL = 'https://www.merriam-webster.com/dictionary/{word}'
MW_AUDIO_URL = 'https://media.merriam-webster.com/audio/prons/en/us/mp3/{dir}/{file}.mp3'
PEXELS_SEARCH_URL = 'https://api.pexels.com/v1/search'

_AUDIO_PLAYER = re.compile(
    r'<a[^>]*?class="[^"]*hw_pron_sound[^"]*"[^>]*?data-file="([^"]+)"[^>]*?data-dir="([^"]+)"',
    re.IGNORECASE | re.DOTALL,
)
_AUDIO_FILE_ONLY = re.compile(r'data-file="([^"]+)"', re.IGNORECASE)


def normalize_word(word: str) -> str:
    return re.sub(r'\s+', '-', word.strip().lower())


def _result(url: str | None, message: str) -> dict:
    return {'success': url is not None, 'url': url, 'message': message}


def extract_audio_url(content: str, word: str) -> str | None:
    match = _AUDIO_PLAYER.search(content)
    if match:
        return MW_AUDIO_URL.format(dir=match.group(2), file=match.group(1))

    # Older markup: only the file name, directory is the subfolder rule below
    match = _AUDIO_FILE_ONLY.search(content)
    if match:
        audio_file = match.group(1)
        return MW_AUDIO_URL.format(dir=_audio_dir(audio_file, word), file=audio_file)
    return None


def _audio_dir(audio_file: str, word: str) -> str:
    """MW's subdirectory rule: bix*, gg*, digits/punctuation -> number, else first letter."""
    if audio_file.startswith('bix'):
        return 'bix'
    if audio_file.startswith('gg'):
        return 'gg'
    first = audio_file[:1] or word[:1]
    if not first.isalpha():
        return 'number'
    return first


class MerriamWebsterAudio:
    def __init__(self, client: httpx.Client):
        self._client = client

    def fetch_audio(self, word: str) -> dict:
        normalized = normalize_word(word)
        try:
            content = self._get_page(normalized)
        except ExternalServiceUnavailable as e:
            logger.warning(f"Audio lookup failed for {word!r}: {e}")
            return _result(None, str(e))

        url = extract_audio_url(content, normalized)
        if url is None:
            return _result(None, f'No pronunciation audio found for "{word}".')
        return _result(url, 'Audio found.')

    def _get_page(self, normalized: str) -> str:
        url = MW_DICTIONARY_URL.format(word=normalized)
        try:
            response = self._client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise ExternalServiceUnavailable(f'Dictionary service unavailable: {e}') from e
        if response.status_code != 200:
            raise ExternalServiceUnavailable(
                f'Failed to fetch dictionary entry for "{normalized}". Response code: {response.status_code}'
            )
        return response.text


class PexelsImages:
    def __init__(self, client: httpx.Client, api_key: str | None):
        self._client = client
        self._api_key = api_key

    def fetch_image(self, word: str) -> dict:
        if not self._api_key:
            return _result(None, 'Image service not configured (no PEXELS_API_KEY).')

        try:
            response = self._client.get(
                PEXELS_SEARCH_URL,
                params={'query': word.strip(), 'per_page': 1},
                headers={'Authorization': self._api_key},
            )
            response.raise_for_status()
            photos = response.json().get('photos') or []
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Image lookup failed for {word!r}: {e}")
            return _result(None, f'Image service unavailable: {e}')

        if not photos:
            return _result(None, f'No images found for "{word}".')
        try:
            url = photos[0]['src']['medium']
        except (KeyError, TypeError):
            return _result(None, f'Image service returned an unexpected payload for "{word}".')
        return _result(url, 'Image found.')
