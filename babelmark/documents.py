"""Document extraction and reassembly utilities."""

from __future__ import annotations

import json
import logging
import os
import pathlib
import tomllib
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Mapping, Sequence, Tuple

import tomli_w
import yaml

from .errors import DocumentIOError, TranslationFailure, UnsupportedFileTypeError
from .repair import DEFAULT_RULES, RepairRules
from .segmenter import FRONT_MATTER_DELIMITER, Segmenter
from .structures import Segment, SegmentRole

logger = logging.getLogger(__name__)

READING_TIME_KEY = "reading_time:"
WORDS_PER_MINUTE = 200

DATA_SUFFIXES = {".json": "json", ".yaml": "yaml", ".yml": "yaml", ".toml": "toml"}
SUPPORTED_SUFFIXES = frozenset({".md", *DATA_SUFFIXES})


def reassemble(
    segments: Sequence[Segment],
    translations: Mapping[int, str],
    rules: RepairRules = DEFAULT_RULES,
) -> str:
    """Rebuild a document from its segments and per-index translations."""

    parts: List[str] = []
    for segment in segments:
        if segment.role is SegmentRole.LITERAL:
            parts.append(segment.original)
            continue
        if not segment.translatable:
            parts.append(segment.original)
            if not segment.original.endswith("\n"):
                parts.append("\n")
            continue

        translated = translations.get(segment.index)
        if translated is None:
            raise TranslationFailure(f"No translation found for segment {segment.index}.")
        fixed = rules.repair(segment.raw_text, translated)

        if segment.role in (SegmentRole.TITLE, SegmentRole.DESCRIPTION):
            parts.append(f"{segment.role.value}: {fixed}\n")
        elif segment.role is SegmentRole.ALT_TEXT:
            _, bracket, suffix = segment.original.partition("]")
            if bracket:
                parts.append(f"![{fixed}]{suffix}\n")
            else:
                parts.append(segment.original + "\n")
        else:
            parts.append(fixed + "\n")
    return "".join(parts)


def read_source(path: pathlib.Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DocumentIOError(f"Failed to open file {path}: {exc}") from exc


def write_output(destination: pathlib.Path, content: str) -> None:
    """Write ``content`` in one step so a failed run never leaves partial output."""

    temporary = destination.with_name(destination.name + ".part")
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        temporary.write_text(content, encoding="utf-8")
        os.replace(temporary, destination)
    except OSError as exc:
        temporary.unlink(missing_ok=True)
        raise DocumentIOError(f"Failed to write file {destination}: {exc}") from exc


class BaseDocumentHandler(ABC):
    """Common base class for document handlers."""

    kind = "document"

    def __init__(self, source_path: pathlib.Path, rules: RepairRules = DEFAULT_RULES):
        self.source_path = source_path
        self.rules = rules

    @abstractmethod
    def collect_texts(self) -> List[str]:
        """Return the translatable texts in document order."""

    @abstractmethod
    def render(self, translations: Sequence[str]) -> str:
        """Produce the translated document from same-order translations."""

    def save(self, destination: pathlib.Path, translations: Sequence[str]) -> None:
        write_output(destination, self.render(translations))


class MarkdownDocumentHandler(BaseDocumentHandler):
    """Line-oriented Markdown with YAML front matter."""

    kind = "md"

    def __init__(self, source_path: pathlib.Path, rules: RepairRules = DEFAULT_RULES):
        super().__init__(source_path, rules)
        self.segments: List[Segment] = Segmenter().segment_text(read_source(source_path))

    def translatable_segments(self) -> List[Segment]:
        return [segment for segment in self.segments if segment.translatable]

    def collect_texts(self) -> List[str]:
        return [segment.raw_text for segment in self.translatable_segments()]

    def render(self, translations: Sequence[str]) -> str:
        translatable = self.translatable_segments()
        if len(translations) != len(translatable):
            raise TranslationFailure(
                "Translation count mismatch: expected "
                f"{len(translatable)}, got {len(translations)}"
            )
        mapping = {
            segment.index: translated
            for segment, translated in zip(translatable, translations)
        }
        return reassemble(self.segments, mapping, self.rules)


def _iter_strings(node: Any) -> Iterator[str]:
    if isinstance(node, str):
        yield node
    elif isinstance(node, Mapping):
        for value in node.values():
            yield from _iter_strings(value)
    elif isinstance(node, list):
        for item in node:
            yield from _iter_strings(item)


def _replace_strings(node: Any, replacements: Iterator[str]) -> Any:
    if isinstance(node, str):
        return next(replacements)
    if isinstance(node, Mapping):
        return {key: _replace_strings(value, replacements) for key, value in node.items()}
    if isinstance(node, list):
        return [_replace_strings(item, replacements) for item in node]
    return node


class DataDocumentHandler(BaseDocumentHandler):
    """JSON, YAML and TOML files whose string leaves are translated."""

    def __init__(self, source_path: pathlib.Path, rules: RepairRules = DEFAULT_RULES):
        super().__init__(source_path, rules)
        suffix = source_path.suffix.lower()
        if suffix not in DATA_SUFFIXES:
            raise UnsupportedFileTypeError(f"Not a data file: {source_path}")
        self.kind = DATA_SUFFIXES[suffix]
        self.data = self._load(read_source(source_path))

    def _load(self, text: str) -> Any:
        try:
            if self.kind == "json":
                return json.loads(text)
            if self.kind == "yaml":
                return yaml.safe_load(text)
            return tomllib.loads(text)
        except (json.JSONDecodeError, yaml.YAMLError, tomllib.TOMLDecodeError) as exc:
            raise DocumentIOError(
                f"Failed to parse {self.kind} file {self.source_path}: {exc}"
            ) from exc

    def collect_texts(self) -> List[str]:
        return list(_iter_strings(self.data))

    def render(self, translations: Sequence[str]) -> str:
        originals = self.collect_texts()
        if len(translations) != len(originals):
            raise TranslationFailure(
                "Translation count mismatch: expected "
                f"{len(originals)}, got {len(translations)}"
            )
        # Blank leaves are never sent, so they keep their original value.
        fixed = [
            self.rules.repair(original, translated) if original.strip() else original
            for original, translated in zip(originals, translations)
        ]
        translated_data = _replace_strings(self.data, iter(fixed))

        if self.kind == "json":
            return json.dumps(translated_data, indent=2, ensure_ascii=False) + "\n"
        if self.kind == "yaml":
            return yaml.safe_dump(translated_data, allow_unicode=True, sort_keys=False)
        return tomli_w.dumps(translated_data)


def detect_handler(
    path: pathlib.Path,
    rules: RepairRules = DEFAULT_RULES,
) -> Tuple[str, BaseDocumentHandler]:
    """Select an appropriate handler for the provided file."""

    suffix = path.suffix.lower()
    if suffix == ".md":
        handler: BaseDocumentHandler = MarkdownDocumentHandler(path, rules)
        return handler.kind, handler
    if suffix in DATA_SUFFIXES:
        handler = DataDocumentHandler(path, rules)
        return handler.kind, handler
    raise UnsupportedFileTypeError(
        f"Unsupported file type '{suffix}' for {path}: use .md, .json, .yaml, .yml or .toml."
    )


def estimate_reading_minutes(text: str) -> int:
    """Whole minutes needed to read ``text``."""

    return len(text.split()) // WORDS_PER_MINUTE


def _front_matter_bounds(lines: Sequence[str]) -> Tuple[int, int] | None:
    delimiters = [
        idx for idx, line in enumerate(lines)
        if line.rstrip("\r\n") == FRONT_MATTER_DELIMITER
    ]
    if len(delimiters) < 2:
        return None
    return delimiters[0], delimiters[1]


def add_reading_time(path: pathlib.Path) -> bool:
    """Insert ``reading_time`` as the last front matter field.

    Returns True when the file was rewritten.
    """

    content = read_source(path)
    if READING_TIME_KEY in content:
        return False

    parts = content.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    bounds = _front_matter_bounds(lines)
    if bounds is None:
        raise DocumentIOError(f"No front matter delimiter found in {path}")

    minutes = estimate_reading_minutes(content)
    if minutes < 1:
        return False
    unit = "minute" if minutes == 1 else "minutes"
    _, closing = bounds
    lines.insert(closing, f"reading_time: {minutes} {unit}\n")
    write_output(path, "".join(lines))
    logger.debug("Added reading time (%d %s) to %s", minutes, unit, path)
    return True


def summarise_segments(segments: Sequence[Segment]) -> Dict[str, int]:
    """Count segments per role, for verbose progress output."""

    counts: Dict[str, int] = {}
    for segment in segments:
        counts[segment.role.value] = counts.get(segment.role.value, 0) + 1
    return counts
