"""Post-translation repair of Markdown damaged by the translation service.

Machine translation tends to rewrite ``[link](http://host/path)`` as
``[link] (http://host/chemin)``, pad emphasis markers with spaces, escape
quotes and angle brackets as HTML entities, and alter the capitalisation of
shortcode names. :func:`repair` undoes those changes deterministically.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping

URL_CHARS = r"-a-zA-Z0-9@:%._+~#=/"

HTML_ENTITIES: Mapping[str, str] = MappingProxyType(
    {
        "&quot;": '"',
        "&gt;": ">",
        "&lt;": "<",
        "&#39;": "'",
    }
)


@dataclass(frozen=True)
class RepairRules:
    """Compiled patterns used by :func:`repair`."""

    url_extract: re.Pattern[str] = field(
        default_factory=lambda: re.compile(rf"\]\([{URL_CHARS}]{{1,256}}\)")
    )
    bold_fix: re.Pattern[str] = field(
        default_factory=lambda: re.compile(r" (\*\*) ([A-Za-z0-9]+) (\*\*)")
    )
    italic_fix: re.Pattern[str] = field(
        default_factory=lambda: re.compile(r" (\*) ([A-Za-z0-9]+) (\*)")
    )
    video_shortcode: re.Pattern[str] = field(
        default_factory=lambda: re.compile(r"(\{\{)(<) {1,3}(video)", re.IGNORECASE)
    )
    youtube_shortcode: re.Pattern[str] = field(
        default_factory=lambda: re.compile(r"(\{\{)(<) {1,3}(youtube)", re.IGNORECASE)
    )
    url_damaged: re.Pattern[str] = field(
        default_factory=lambda: re.compile(rf"\] \([{URL_CHARS} ]{{1,256}}\)")
    )
    entities: Mapping[str, str] = field(default_factory=lambda: HTML_ENTITIES)

    def extract_urls(self, text: str) -> List[str]:
        """Return the ``](url)`` occurrences of ``text``, left to right."""

        return self.url_extract.findall(text)

    def repair(self, original_text: str, translated_text: str) -> str:
        found_urls = self.extract_urls(original_text)

        fixed = self.bold_fix.sub(r" \1\2\3", translated_text)
        for entity, replacement in self.entities.items():
            fixed = fixed.replace(entity, replacement)
        fixed = self.italic_fix.sub(r"\1\2\3", fixed)
        fixed = self.video_shortcode.sub(r"\1\2 video", fixed)
        fixed = self.youtube_shortcode.sub(r"\1\2 youtube", fixed)

        for found_url in found_urls:
            match = self.url_damaged.search(fixed)
            if match is None:
                break
            # found_url is "](url)"; keep the bracket from the translation.
            fixed = fixed[: match.start() + 1] + "(" + found_url[2:] + fixed[match.end():]

        return fixed


DEFAULT_RULES = RepairRules()


def repair(original_text: str, translated_text: str, rules: RepairRules = DEFAULT_RULES) -> str:
    """Repair ``translated_text`` using ``original_text`` as the reference."""

    return rules.repair(original_text, translated_text)
