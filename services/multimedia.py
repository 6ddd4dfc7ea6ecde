"""
Audio + image lookup for a word, cached.

A lookup asks both providers. If at least one of them delivers, the combined
result is cached for the TTL (partial results carry a message saying what is
missing). If both fail nothing is cached, so the next call retries at once.
"""

import logging

from database.database import ensure_media_columns, require_table
from database.schema import ATTRIBUTION_COL, AUDIO_URL_COL, ID_COL, IMAGE_URL_COL
from database.store import TabularStore
from services.providers import normalize_word
from utils.cache import TTLCache
from utils.errors import CardNotFound, ExternalServiceUnavailable, SchemaError


def has_media(result: dict) -> bool:
    return bool(result.get('audio_url') or result.get('image_url'))


def is_lookup_result(entry) -> bool:
    return isinstance(entry, dict) and 'success' in entry and 'message' in entry


class MultimediaService:
    def __init__(self, store: TabularStore, cache: TTLCache, audio_provider, image_provider):
        self._store = store
        self._cache = cache
        self._audio = audio_provider
        self._image = image_provider

    def lookup(self, word: str) -> dict:
        normalized = normalize_word(word)
        return self._cache.get(
            f'multimedia:{normalized}',
            lambda: self._fetch(word.strip()),
            should_cache=has_media,
            validate=is_lookup_result,
        )

    def _fetch(self, word: str) -> dict:
        audio = self._call(self._audio.fetch_audio, word, 'Audio')
        image = self._call(self._image.fetch_image, word, 'Image')

        audio_url = audio['url'] if audio['success'] else None
        image_url = image['url'] if image['success'] else None

        if audio_url and image_url:
            message = f'Audio and image found for "{word}".'
        elif audio_url:
            message = f'Audio found for "{word}"; image unavailable: {image["message"]}'
        elif image_url:
            message = f'Image found for "{word}"; audio unavailable: {audio["message"]}'
        else:
            message = f'No multimedia found for "{word}". Audio: {audio["message"]} Image: {image["message"]}'

        logging.info(
            f"Multimedia fetched for {word!r}. Audio: {'found' if audio_url else 'not found'}, "
            f"Image: {'found' if image_url else 'not found'}"
        )
        return {
            'success': bool(audio_url or image_url),
            'word': word,
            'audio_url': audio_url,
            'image_url': image_url,
            'message': message,
        }

    @staticmethod
    def _call(fetch, word: str, kind: str) -> dict:
        # Providers report failures in their result; this also covers one that raises
        try:
            return fetch(word)
        except ExternalServiceUnavailable as e:
            logging.warning(f"{kind} provider unavailable for {word!r}: {e}")
            return {'success': False, 'url': None, 'message': str(e)}

    def attach_to_card(self, deck_name: str, card_id: str, word: str) -> dict:
        """
        Look the word up and store the result on the card's AudioUrl/ImageUrl/
        Attribution columns. Raises ExternalServiceUnavailable when nothing was found.
        """
        content = self.lookup(word)
        if not has_media(content):
            raise ExternalServiceUnavailable(content['message'])

        attribution = f'Merriam-Webster / Pexels for "{content["word"]}"'
        with self._store.transaction(deck_name):
            columns = ensure_media_columns(self._store, deck_name)
            table = require_table(self._store, deck_name)
            headers = table.get_headers()
            if ID_COL not in headers:
                raise SchemaError(deck_name, ID_COL)
            row = table.find_row(headers.index(ID_COL), card_id)
            if row is None:
                raise CardNotFound(deck_name, card_id)
            table.update_row(row, {
                columns[AUDIO_URL_COL]: content['audio_url'],
                columns[IMAGE_URL_COL]: content['image_url'],
                columns[ATTRIBUTION_COL]: attribution,
            })

        logging.info(f"Attached multimedia for {word!r} to card {card_id} in {deck_name!r}")
        return {
            'audio_url': content['audio_url'],
            'image_url': content['image_url'],
            'attribution': attribution,
            'message': content['message'],
        }
