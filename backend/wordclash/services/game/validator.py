"""Dictionary lookup for guessed words.

The lookup is an HTTP GET by spelling; 200 means the word exists and 404
means it does not. Any other answer, a timeout or a transport error falls
back to a permissive rule (words longer than two characters pass) so a slow
or unreachable dictionary never stalls the turn cycle.

``timeout`` is a wall-clock limit on the whole lookup. The request runs on a
small worker pool; if it has not answered by then the caller gets the
fallback and the request is left to finish (or fail) in the background.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as LookupTimeout
from urllib.parse import quote

import requests

DEFAULT_DICTIONARY_URL = 'https://api.dictionaryapi.dev/api/v2/entries/en/{word}'


class WordValidator:

    def __init__(self, url_template: str = DEFAULT_DICTIONARY_URL, timeout: float = 3.0,
                 session: requests.Session | None = None, logger: logging.Logger | None = None,
                 max_workers: int = 8):
        self.url_template = url_template
        self.timeout = float(timeout)
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='dictionary')

    @staticmethod
    def fallback(word: str) -> bool:
        return len(word) > 2

    def is_valid_word(self, word: str) -> bool:
        word = (word or '').strip().lower()
        if not word:
            return False
        url = self.url_template.format(word=quote(word))
        # (connect, read) per socket operation; the future bounds the whole call
        future = self._pool.submit(self.session.get, url, timeout=(self.timeout, self.timeout))
        try:
            response = future.result(timeout=self.timeout)
        except LookupTimeout:
            future.cancel()
            return self._fall_back(word, 'deadline')
        except requests.RequestException as exc:
            return self._fall_back(word, exc.__class__.__name__)
        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        return self._fall_back(word, f"status={response.status_code}")

    def shutdown(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)

    def _fall_back(self, word: str, reason: str) -> bool:
        accepted = self.fallback(word)
        self.logger.warning(f"[dictionary-fallback] word={word!r} reason={reason} accepted={accepted}")
        return accepted

    __call__ = is_valid_word
