"""Core data structures for the babelmark translator."""

from __future__ import annotations

import pathlib
from dataclasses import dataclass
from enum import Enum
from typing import List


class SegmentRole(str, Enum):
    """How a segment is sent for translation and re-emitted."""

    LITERAL = "literal"
    BODY_TEXT = "body-text"
    TITLE = "title"
    DESCRIPTION = "description"
    ALT_TEXT = "alt-text"

    @property
    def translatable(self) -> bool:
        return self is not SegmentRole.LITERAL


@dataclass(frozen=True)
class Segment:
    """One classified line of a source document."""

    index: int
    role: SegmentRole
    original: str
    raw_text: str = ""

    @property
    def translatable(self) -> bool:
        """True when the segment carries non-blank text for the provider."""

        return self.role.translatable and bool(self.raw_text.strip())


@dataclass
class Batch:
    """A bounded group of texts sent to the provider in one call."""

    batch_id: int
    positions: List[int]
    texts: List[str]


@dataclass(frozen=True)
class TranslationJob:
    """A single (source file, target language) unit of work."""

    source_path: pathlib.Path
    output_path: pathlib.Path
    source_language: str
    target_language: str
    base_name: str

    @property
    def kind(self) -> str:
        return self.source_path.suffix.lower().lstrip(".")
