"""High-level orchestration for document translation."""

from __future__ import annotations

import logging
import pathlib
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence

from .documents import (
    MarkdownDocumentHandler,
    add_reading_time,
    detect_handler,
    summarise_segments,
)
from .errors import BabelmarkError, ErrorRecord, TranslationFailure
from .policy import ErrorPolicy
from .providers import TranslationProvider
from .repair import DEFAULT_RULES, RepairRules
from .segmenter import MAX_BATCH_SIZE, BatchBuilder
from .structures import TranslationJob

logger = logging.getLogger(__name__)

BATCH_PAUSE_SECONDS = 0.1


class BatchTranslator:
    """Sends texts to a provider in bounded batches and keeps their positions.

    Blank entries are never sent and come back as empty strings. Any provider
    error, or a response whose length differs from its request, fails the
    whole call: partial results are never returned.
    """

    def __init__(
        self,
        provider: TranslationProvider,
        *,
        model: str | None = None,
        batch_size: int = MAX_BATCH_SIZE,
        pause_seconds: float = BATCH_PAUSE_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.provider = provider
        self.model = model
        self.batch_builder = BatchBuilder(batch_size)
        self.pause_seconds = pause_seconds
        self._sleep = sleep

    def translate_batch(
        self,
        target_language: str,
        texts: Sequence[str],
        *,
        source_language: str | None = None,
    ) -> List[str]:
        results = [""] * len(texts)
        batches = self.batch_builder.build(texts)

        for batch in batches:
            logger.info(
                "Translating batch of %d texts to language '%s' (batch %d of %d)",
                len(batch.texts),
                target_language,
                batch.batch_id,
                len(batches),
            )
            try:
                response = self.provider.translate(
                    batch.texts,
                    target_language=target_language,
                    source_language=source_language,
                    model=self.model,
                )
            except TranslationFailure:
                logger.warning(
                    "Translation failed for language '%s'; first text in batch: %r",
                    target_language,
                    batch.texts[0],
                )
                raise
            except Exception as exc:
                raise TranslationFailure(f"Translate: {exc}") from exc

            if len(response) != len(batch.texts):
                raise TranslationFailure(
                    "Translation response length mismatch: expected "
                    f"{len(batch.texts)}, got {len(response)}"
                )
            for position, translated in zip(batch.positions, response):
                results[position] = translated

            if batch.batch_id < len(batches) and self.pause_seconds > 0:
                self._sleep(self.pause_seconds)

        return results

    def translate_text(
        self,
        target_language: str,
        text: str,
        *,
        source_language: str | None = None,
    ) -> str:
        return self.translate_batch(
            target_language, [text], source_language=source_language
        )[0]


@dataclass
class UnitOutcome:
    """Result of one (file, language) unit."""

    job: TranslationJob
    status: str
    texts: int = 0
    reason: str | None = None


@dataclass
class TranslationSummary:
    """Report returned after a run."""

    provider_name: str
    model: str | None
    elapsed_seconds: float
    outcomes: List[UnitOutcome] = field(default_factory=list)
    errors: List[ErrorRecord] = field(default_factory=list)

    def _count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def translated_units(self) -> int:
        return self._count("translated")

    @property
    def skipped_units(self) -> int:
        return self._count("skipped")

    @property
    def failed_units(self) -> int:
        return self._count("failed")

    @property
    def succeeded(self) -> bool:
        if self.failed_units:
            return False
        return bool(self.translated_units or self.skipped_units)


class TranslationRunner:
    """Coordinates extraction, translation, repair and writing for many units."""

    def __init__(
        self,
        *,
        provider: TranslationProvider,
        jobs: Sequence[TranslationJob],
        model: str | None = None,
        force_overwrite: bool = False,
        reading_time: bool = True,
        batch_translator: BatchTranslator | None = None,
        rules: RepairRules = DEFAULT_RULES,
    ) -> None:
        self.provider = provider
        self.jobs = list(jobs)
        self.model = model
        self.force_overwrite = force_overwrite
        self.reading_time = reading_time
        self.batch_translator = batch_translator or BatchTranslator(provider, model=model)
        self.rules = rules
        self.error_policy = ErrorPolicy()

    def run(self) -> TranslationSummary:
        start_time = time.time()

        if self.reading_time:
            self._prepare_reading_time()

        by_language: Dict[str, List[TranslationJob]] = {}
        for job in self.jobs:
            by_language.setdefault(job.target_language, []).append(job)

        outcomes: Dict[TranslationJob, UnitOutcome] = {}
        if by_language:
            with ThreadPoolExecutor(
                max_workers=len(by_language),
                thread_name_prefix="babelmark",
            ) as pool:
                futures = [
                    pool.submit(self._run_language, language, jobs)
                    for language, jobs in by_language.items()
                ]
                for future in futures:
                    for outcome in future.result():
                        outcomes[outcome.job] = outcome

        return TranslationSummary(
            provider_name=self.provider.name,
            model=self.model,
            elapsed_seconds=time.time() - start_time,
            outcomes=[outcomes[job] for job in self.jobs],
            errors=self.error_policy.snapshot(),
        )

    def _prepare_reading_time(self) -> None:
        """Insert reading time once per file, before language tasks fan out."""

        touched: set[pathlib.Path] = set()
        for job in self.jobs:
            if job.kind != "md":
                continue
            paths = [job.source_path]
            if self._already_translated(job):
                if job.base_name == "_index":
                    continue
                paths.append(job.output_path)
            for path in paths:
                if path in touched:
                    continue
                touched.add(path)
                try:
                    add_reading_time(path)
                except BabelmarkError as exc:
                    logger.warning("Failed to add reading time to %s: %s", path, exc)

    def _already_translated(self, job: TranslationJob) -> bool:
        return job.output_path.exists() and not self.force_overwrite

    def _run_language(
        self,
        language: str,
        jobs: Sequence[TranslationJob],
    ) -> List[UnitOutcome]:
        logger.info("Starting %d document(s) for language '%s'", len(jobs), language)
        return [self._run_job(job) for job in jobs]

    def _run_job(self, job: TranslationJob) -> UnitOutcome:
        if self._already_translated(job):
            logger.info("Skipping %s: %s already exists", job.source_path, job.output_path)
            return UnitOutcome(job=job, status="skipped", reason="output already exists")

        print(f"Translating:\t {job.source_path}\nto: \t\t{job.output_path}")
        try:
            count = self.translate_job(job)
        except Exception as exc:
            record = self.error_policy.handle_exception(
                exc,
                source=str(job.source_path),
                language=job.target_language,
            )
            return UnitOutcome(job=job, status="failed", reason=record.message)
        return UnitOutcome(job=job, status="translated", texts=count)

    def translate_job(self, job: TranslationJob) -> int:
        """Translate one document fully in memory, then write it."""

        _, handler = detect_handler(job.source_path, self.rules)
        if isinstance(handler, MarkdownDocumentHandler):
            logger.debug(
                "Segments in %s: %s",
                job.source_path,
                summarise_segments(handler.segments),
            )
        texts = handler.collect_texts()
        translations = self.batch_translator.translate_batch(
            job.target_language,
            texts,
            source_language=job.source_language,
        )
        handler.save(job.output_path, translations)
        return len(texts)
