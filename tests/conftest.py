from __future__ import annotations

import threading
from typing import List, Sequence

import pytest

from babelmark.configuration import _load_config_instance
from babelmark.errors import TranslationFailure
from babelmark.providers import TranslationProvider


class StubProvider(TranslationProvider):
    """Deterministic provider: prefixes every text with ``<language>:``."""

    name = "stub"

    def __init__(self, *, fail_languages: Sequence[str] = (), drop_last: bool = False) -> None:
        self.fail_languages = set(fail_languages)
        self.drop_last = drop_last
        self.calls: List[tuple[str, List[str]]] = []
        self._lock = threading.Lock()

    def translate(self, texts, *, target_language, source_language=None, model=None):
        with self._lock:
            self.calls.append((target_language, list(texts)))
        if target_language in self.fail_languages:
            raise TranslationFailure(f"quota exceeded for {target_language}")
        result = [f"{target_language}:{text}" for text in texts]
        if self.drop_last:
            result = result[:-1]
        return result


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()


@pytest.fixture(autouse=True)
def _clear_config_cache():
    _load_config_instance.cache_clear()
    yield
    _load_config_instance.cache_clear()
