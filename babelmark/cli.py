"""Command line interface for the babelmark translator."""

from __future__ import annotations

import argparse
import pathlib
import sys
from typing import Iterable, List, Optional, Sequence

from .configuration import DEFAULT_CONFIG_FILE, BabelmarkConfig, get_settings
from .discovery import plan_content_jobs, plan_data_jobs
from .errors import BabelmarkError, ConfigurationError
from .logs import configure_logging
from .providers import build_provider
from .structures import TranslationJob
from .translator import TranslationRunner, TranslationSummary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="babelmark",
        description=(
            "Translate Markdown content and JSON/YAML/TOML data files while "
            "preserving code, links and shortcodes."
        ),
    )
    parser.add_argument(
        "path",
        nargs="?",
        help="Content directory or a single <name>.<language>.<ext> file. "
        "Defaults to file_path from the configuration.",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help=f"Configuration file (default: {DEFAULT_CONFIG_FILE}).",
    )
    parser.add_argument(
        "-d",
        "--data",
        help="Data directory laid out as <data>/<language>/...; mirrored per target language.",
    )
    parser.add_argument(
        "-l",
        "--language",
        action="append",
        dest="languages",
        help="Target language code (repeatable). Defaults to the configured languages.",
    )
    parser.add_argument(
        "-p",
        "--provider",
        help="Translation provider identifier (default: google).",
    )
    parser.add_argument(
        "-m",
        "--model",
        help="Provider-specific model or engine identifier.",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Translate again even if the output file already exists.",
    )
    parser.add_argument(
        "--no-reading-time",
        action="store_true",
        help="Do not insert reading_time into Markdown front matter.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    parser.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete provider requests and responses for troubleshooting.",
    )
    return parser


def plan_jobs(
    *,
    settings: BabelmarkConfig,
    path: str | None,
    data_dir: str | None,
    target_languages: Sequence[str],
) -> List[TranslationJob]:
    jobs: List[TranslationJob] = []
    if path:
        jobs.extend(
            plan_content_jobs(
                pathlib.Path(path).expanduser(),
                source_language=settings.default_language,
                target_languages=target_languages,
                file_names=settings.eligible_file_names(),
            )
        )
    if data_dir:
        jobs.extend(
            plan_data_jobs(
                pathlib.Path(data_dir).expanduser(),
                source_language=settings.default_language,
                target_languages=target_languages,
            )
        )
    return jobs


def execute_translation(
    *,
    settings: BabelmarkConfig,
    path: str | None,
    data_dir: str | None,
    target_languages: Sequence[str],
    provider: str | None,
    model: str | None,
    force_overwrite: bool,
    reading_time: bool,
    provider_debug: bool,
) -> tuple[int, TranslationSummary | None, str | None]:
    """Execute a translation run and return the exit code, summary, and message."""

    try:
        jobs = plan_jobs(
            settings=settings,
            path=path,
            data_dir=data_dir,
            target_languages=target_languages,
        )
    except BabelmarkError as exc:
        return 1, None, str(exc)

    if not jobs:
        return 1, None, "No translatable files were found."

    try:
        translation_provider = build_provider(
            provider or settings.provider,
            credentials_path=settings.credentials_path,
            project_id=settings.project_id,
            debug=provider_debug,
        )
    except ConfigurationError as exc:
        return 1, None, str(exc)

    runner = TranslationRunner(
        provider=translation_provider,
        jobs=jobs,
        model=model or settings.model,
        force_overwrite=force_overwrite,
        reading_time=reading_time,
    )
    try:
        summary = runner.run()
    except KeyboardInterrupt:
        return 2, None, "Translation interrupted by user."
    finally:
        translation_provider.close()

    if summary.succeeded:
        return 0, summary, None
    if summary.failed_units:
        return 1, summary, f"Translation errors occurred in {summary.failed_units} unit(s)."
    return 1, summary, "No documents were translated."


def print_summary(summary: TranslationSummary) -> None:
    """Output a friendly report once processing completes."""

    print("\nTranslation complete.")
    print(
        "  Units:           "
        f"{summary.translated_units} translated / {len(summary.outcomes)} total "
        f"({summary.skipped_units} skipped, {summary.failed_units} failed)"
    )
    print(
        f"  Provider:        {summary.provider_name}"
        + (f" ({summary.model})" if summary.model else "")
    )
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")
    if summary.errors:
        print("  Failures:")
        for record in summary.errors:
            print(f"    - {record.label()}")


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        settings = get_settings(args.config)
    except ConfigurationError as exc:
        print(exc)
        return 1

    provider_debug = bool(args.debug_provider or settings.provider_debug)
    configure_logging(verbose=args.verbose, debug=provider_debug)

    path = args.path or (None if args.data else settings.file_path)
    if not path and not args.data:
        parser.error("a path is required when file_path is not configured")

    exit_code, summary, message = execute_translation(
        settings=settings,
        path=path,
        data_dir=args.data,
        target_languages=args.languages or settings.target_languages(),
        provider=args.provider,
        model=args.model,
        force_overwrite=args.force,
        reading_time=settings.reading_time and not args.no_reading_time,
        provider_debug=provider_debug,
    )

    if message:
        print(message)
    if summary:
        print_summary(summary)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
