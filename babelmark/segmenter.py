"""Line classification and batching utilities."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Sequence

from .structures import Batch, Segment, SegmentRole

SHORTCODE_OPEN = "{{"
CODE_FENCE = "```"
FRONT_MATTER_DELIMITER = "---"
CALLOUT_PREFIX = "> [!"
IMAGE_PREFIX = "!"

DEFAULT_FRONT_MATTER_KEYS = ("title", "description")
MAX_BATCH_SIZE = 10


class ParserState(Enum):
    """Where the parser currently is inside a Markdown document."""

    BODY = "body"
    FRONT_MATTER = "front-matter"
    CODE_FENCE_IN_BODY = "code-fence-in-body"
    CODE_FENCE_IN_FRONT_MATTER = "code-fence-in-front-matter"

    @property
    def in_code_fence(self) -> bool:
        return self in (
            ParserState.CODE_FENCE_IN_BODY,
            ParserState.CODE_FENCE_IN_FRONT_MATTER,
        )

    @property
    def in_front_matter(self) -> bool:
        return self in (
            ParserState.FRONT_MATTER,
            ParserState.CODE_FENCE_IN_FRONT_MATTER,
        )

    def toggle_code_fence(self) -> "ParserState":
        return _CODE_FENCE_TRANSITIONS[self]

    def toggle_front_matter(self) -> "ParserState":
        if self.in_code_fence:
            raise ValueError("Front matter cannot toggle inside a code fence.")
        if self is ParserState.BODY:
            return ParserState.FRONT_MATTER
        return ParserState.BODY


_CODE_FENCE_TRANSITIONS = {
    ParserState.BODY: ParserState.CODE_FENCE_IN_BODY,
    ParserState.CODE_FENCE_IN_BODY: ParserState.BODY,
    ParserState.FRONT_MATTER: ParserState.CODE_FENCE_IN_FRONT_MATTER,
    ParserState.CODE_FENCE_IN_FRONT_MATTER: ParserState.FRONT_MATTER,
}


def split_lines(text: str) -> List[str]:
    """Split on ``\\n`` only, dropping one trailing ``\\r`` per line.

    A final newline does not start an extra empty line.
    """

    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def unquote_yaml(value: str) -> str:
    """Strip one layer of matching YAML quotes from a scalar value."""

    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        unquoted = value[1:-1]
        unquoted = unquoted.replace('\\"', '"')
        return unquoted.replace("\\\\", "\\")
    if len(value) >= 2 and value.startswith("'") and value.endswith("'"):
        return value[1:-1]
    return value


def extract_alt_text(line: str) -> str | None:
    """Return the alt text of an image line, or None if it is malformed."""

    head = line.split("]", 1)[0]
    if "[" not in head:
        return None
    return head.split("[", 1)[1]


class Segmenter:
    """Turns the lines of a Markdown document into ordered segments."""

    def __init__(self, front_matter_keys: Iterable[str] = DEFAULT_FRONT_MATTER_KEYS) -> None:
        self.front_matter_keys = frozenset(front_matter_keys)
        unknown = self.front_matter_keys.difference(DEFAULT_FRONT_MATTER_KEYS)
        if unknown:
            raise ValueError(
                "Unsupported front matter keys: " + ", ".join(sorted(unknown))
            )
        self.state = ParserState.BODY

    def segment_text(self, text: str) -> List[Segment]:
        return self.segment_lines(split_lines(text))

    def segment_lines(self, lines: Iterable[str]) -> List[Segment]:
        self.state = ParserState.BODY
        segments: List[Segment] = []
        for index, line in enumerate(lines):
            segments.append(self._classify(index, line))
        return segments

    def _classify(self, index: int, line: str) -> Segment:
        if line.startswith(SHORTCODE_OPEN):
            return self._literal(index, line)
        if line.startswith(CODE_FENCE):
            self.state = self.state.toggle_code_fence()
            return self._literal(index, line)
        if self.state.in_code_fence:
            return self._literal(index, line)
        if line == FRONT_MATTER_DELIMITER:
            self.state = self.state.toggle_front_matter()
            return self._literal(index, line)
        if not self.state.in_front_matter:
            return self._classify_body(index, line)
        return self._classify_front_matter(index, line)

    def _classify_body(self, index: int, line: str) -> Segment:
        if line.startswith(IMAGE_PREFIX):
            alt_text = extract_alt_text(line)
            if alt_text is None:
                return self._literal(index, line)
            return Segment(
                index=index,
                role=SegmentRole.ALT_TEXT,
                original=line,
                raw_text=alt_text,
            )
        if line.startswith(CALLOUT_PREFIX) or line == "":
            return self._literal(index, line)
        return Segment(
            index=index,
            role=SegmentRole.BODY_TEXT,
            original=line,
            raw_text=line,
        )

    def _classify_front_matter(self, index: int, line: str) -> Segment:
        key, separator, value = line.partition(":")
        if not separator or key not in self.front_matter_keys:
            return self._literal(index, line)
        role = SegmentRole(key)
        return Segment(
            index=index,
            role=role,
            original=line,
            raw_text=unquote_yaml(value.strip()),
        )

    @staticmethod
    def _literal(index: int, line: str) -> Segment:
        return Segment(index=index, role=SegmentRole.LITERAL, original=line + "\n")


class BatchBuilder:
    """Partitions non-blank texts into fixed-size batches, preserving order."""

    def __init__(self, max_size: int = MAX_BATCH_SIZE) -> None:
        self.max_size = max(1, max_size)

    def build(self, texts: Sequence[str]) -> List[Batch]:
        positions = [idx for idx, text in enumerate(texts) if text.strip()]
        batches: List[Batch] = []
        for batch_id, start in enumerate(range(0, len(positions), self.max_size), start=1):
            chunk = positions[start:start + self.max_size]
            batches.append(
                Batch(
                    batch_id=batch_id,
                    positions=chunk,
                    texts=[texts[idx] for idx in chunk],
                )
            )
        return batches
