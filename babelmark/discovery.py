"""Locating source documents and deriving their translated counterparts."""

from __future__ import annotations

import logging
import pathlib
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Sequence

from .documents import SUPPORTED_SUFFIXES
from .errors import DocumentIOError, UnsupportedFileTypeError
from .structures import TranslationJob

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORIES = frozenset({"images"})


@dataclass(frozen=True)
class SourceName:
    """A file name split as ``<base>.<language>.<ext>``."""

    base_name: str
    language: str
    extension: str

    def for_language(self, language: str) -> str:
        return f"{self.base_name}.{language}.{self.extension}"


def parse_source_name(file_name: str) -> SourceName | None:
    """Split ``index.en.md`` into its parts; None when the name does not fit."""

    parts = file_name.split(".")
    if len(parts) < 3:
        return None
    extension = parts[-1]
    if f".{extension.lower()}" not in SUPPORTED_SUFFIXES:
        return None
    return SourceName(base_name=parts[0], language=parts[-2], extension=extension)


def _sorted_entries(directory: pathlib.Path) -> List[pathlib.Path]:
    try:
        return sorted(directory.iterdir(), key=lambda entry: entry.name)
    except OSError as exc:
        raise DocumentIOError(f"Failed to read directory {directory}: {exc}") from exc


def iter_source_files(
    root: pathlib.Path,
    *,
    source_language: str,
    file_names: Iterable[str],
) -> Iterator[tuple[pathlib.Path, SourceName]]:
    """Yield eligible source files below ``root``, skipping ``images`` folders."""

    valid_names = set(file_names)
    for entry in _sorted_entries(root):
        if entry.is_dir():
            if entry.name in SKIPPED_DIRECTORIES:
                logger.debug("Skipping directory %s", entry)
                continue
            yield from iter_source_files(
                entry,
                source_language=source_language,
                file_names=valid_names,
            )
            continue
        name = parse_source_name(entry.name)
        if name is None:
            continue
        if name.base_name not in valid_names or name.language != source_language:
            continue
        yield entry, name


def plan_content_jobs(
    path: pathlib.Path,
    *,
    source_language: str,
    target_languages: Sequence[str],
    file_names: Iterable[str],
) -> List[TranslationJob]:
    """Plan one job per (source file, target language) for a file or a tree."""

    if path.is_dir():
        sources = list(
            iter_source_files(
                path,
                source_language=source_language,
                file_names=file_names,
            )
        )
    elif path.is_file():
        name = parse_source_name(path.name)
        if name is None:
            raise UnsupportedFileTypeError(
                f"Invalid file name format: {path}. Expected <name>.<language>.<ext>."
            )
        sources = [(path, name)]
    else:
        raise DocumentIOError(f"Path not found: {path}")

    return [
        TranslationJob(
            source_path=source,
            output_path=source.with_name(name.for_language(language)),
            source_language=source_language,
            target_language=language,
            base_name=name.base_name,
        )
        for language in target_languages
        for source, name in sources
    ]


def plan_data_jobs(
    data_root: pathlib.Path,
    *,
    source_language: str,
    target_languages: Sequence[str],
) -> List[TranslationJob]:
    """Mirror ``<data>/<source>/**`` into ``<data>/<target>/**``."""

    source_root = data_root / source_language
    if not source_root.is_dir():
        raise DocumentIOError(f"Data directory not found: {source_root}")

    sources = sorted(
        candidate
        for candidate in source_root.rglob("*")
        if candidate.is_file()
        and candidate.suffix.lower() in SUPPORTED_SUFFIXES
        and SKIPPED_DIRECTORIES.isdisjoint(candidate.relative_to(source_root).parts[:-1])
    )
    return [
        TranslationJob(
            source_path=source,
            output_path=data_root / language / source.relative_to(source_root),
            source_language=source_language,
            target_language=language,
            base_name=source.stem,
        )
        for language in target_languages
        for source in sources
    ]
