"""Prepper-backed configuration loader for babelmark."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, List, Mapping, Sequence

from dotenv import dotenv_values
from prepper import (
    ConfigNotFound,
    Field,
    IoError,
    SchemaError,
    SchemaModel,
    ValidationError,
    model_validator,
)
from prepper.config import ConfigInstance
from prepper.merge import merge_layer
from prepper.provenance import ProvenanceRecorder

from .errors import ConfigurationError

ENV_PREFIX = "BABELMARK_"
DEFAULT_CONFIG_FILE = "config.json"
DEFAULT_FILE_NAMES = ("index", "_index")
LIST_OPTIONS = ("languages", "file_names")


class BabelmarkConfig(SchemaModel):
    """Schema describing all supported configuration options."""

    default_language: str = Field(
        default="en",
        description="Language code of the source documents.",
    )
    languages: List[str] | None = Field(
        default=None,
        description="All site languages, including the default one.",
    )
    file_path: str | None = Field(
        default=None,
        description="Content root used when no path is given on the command line.",
    )
    file_names: List[str] | None = Field(
        default=None,
        description="Base names eligible for translation.",
    )
    credentials_path: str = Field(
        default="google-secret.json",
        description="Service account JSON used by the Google provider.",
    )
    project_id: str | None = Field(default=None)
    provider: str = Field(
        default="google",
        description="Translation provider identifier.",
    )
    model: str | None = Field(default=None)
    reading_time: bool = Field(default=True)
    provider_debug: bool = Field(default=False)

    @model_validator(mode="before")
    def _normalise_lists(data: Any) -> Any:
        if isinstance(data, dict):
            for option in LIST_OPTIONS:
                raw_value = data.get(option)
                if isinstance(raw_value, str):
                    data[option] = [
                        item.strip() for item in raw_value.split(",") if item.strip()
                    ]
            for option in ("credentials_path", "default_language"):
                if data.get(option) == "":
                    data.pop(option)
        return data

    def target_languages(self) -> List[str]:
        """Configured languages minus the default one, in configured order."""

        return [
            language
            for language in (self.languages or [])
            if language != self.default_language
        ]

    def eligible_file_names(self) -> List[str]:
        return list(self.file_names or DEFAULT_FILE_NAMES)


@lru_cache(maxsize=8)
def _load_config_instance(config_path: Path, app_dir: Path) -> ConfigInstance:
    """Load configuration layers once per path and cache the immutable instance."""

    try:
        provenance = ProvenanceRecorder()
        combined = _load_json_file(config_path, provenance=provenance)
        _merge_env_sources(
            combined,
            provenance=provenance,
            app_dir=app_dir,
            schema=BabelmarkConfig,
        )

        if not combined:
            raise ConfigNotFound("No configuration sources were found.")

        model = BabelmarkConfig.validate(combined, provenance=provenance)
        _validate_languages(model)

        return ConfigInstance(
            model=model,
            provenance=provenance,
            env_prefix=ENV_PREFIX,
            schema_cls=BabelmarkConfig,
        )
    except ConfigNotFound as exc:
        raise ConfigurationError(
            f"No configuration sources were found. Provide {config_path}, a .env "
            f"file, or {ENV_PREFIX}* environment variables."
        ) from exc
    except IoError as exc:
        raise ConfigurationError(
            f"Configuration files could not be read: {exc}"
        ) from exc
    except SchemaError as exc:
        raise ConfigurationError(f"Configuration schema error: {exc}") from exc
    except ValidationError as exc:
        issues = _format_validation_errors(exc.to_dict())
        raise ConfigurationError(issues) from exc


def _load_json_file(
    path: Path,
    *,
    provenance: ProvenanceRecorder,
) -> dict[str, Any]:
    """Load the JSON configuration file as the base layer, if present."""

    result: dict[str, Any] = {}
    if not path.exists():
        return result
    try:
        parsed = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise IoError(f"Failed to read config file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise IoError(f"Failed to parse config JSON {path}: {exc}") from exc
    if not isinstance(parsed, Mapping):
        raise IoError(
            f"Invalid configuration file {path}: expected an object at the root."
        )
    merge_layer(result, dict(parsed), provenance=provenance, source=f"file:{path}", layer="file")
    return result


def _merge_env_sources(
    target: dict[str, Any],
    *,
    provenance: ProvenanceRecorder,
    app_dir: Path,
    schema: type[SchemaModel],
) -> None:
    """Merge .env and process environment variables into the target mapping."""

    allowed = set(schema.__field_infos__.keys())

    def merge_values(values: Mapping[str, str], *, source_prefix: str) -> None:
        for key, value in sorted(values.items()):
            if value is None or not key.startswith(ENV_PREFIX):
                continue
            option = key[len(ENV_PREFIX):].lower()
            if option not in allowed:
                continue
            merge_layer(
                target,
                {option: value},
                provenance=provenance,
                source=f"env:{source_prefix}:{key}",
                layer="env",
            )

    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        dotenv_content = dotenv_values(dotenv_path)
        merge_values(
            {k: v for k, v in dotenv_content.items() if v is not None},
            source_prefix=".env",
        )

    merge_values(
        {k: v for k, v in os.environ.items() if isinstance(v, str)},
        source_prefix="process",
    )


def _validate_languages(settings: BabelmarkConfig) -> None:
    errors: list[str] = []
    if not settings.languages:
        errors.append("languages must list the site languages, including the default.")
    elif not settings.target_languages():
        errors.append(
            "No target languages configured: languages only contains "
            f"'{settings.default_language}'."
        )

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise ConfigurationError(
            "Configuration validation errors detected:\n" + bullet_list
        )


def _format_validation_errors(entries: Sequence[dict[str, Any]]) -> str:
    details: list[str] = []
    for entry in entries:
        path = entry.get("path") or []
        if isinstance(path, (list, tuple)):
            location = ".".join(str(part) for part in path if part not in {None, ""})
        else:
            location = str(path)
        message = str(entry.get("message") or entry.get("msg") or "Invalid value")
        source = entry.get("source")
        origin = f" (source: {source})" if source else ""
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}{origin}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


def get_config(
    config_path: str | os.PathLike[str] = DEFAULT_CONFIG_FILE,
    app_dir: Path | None = None,
) -> ConfigInstance:
    """Return the immutable configuration instance."""

    base_dir = (app_dir or Path.cwd()).resolve()
    path = Path(config_path)
    if not path.is_absolute():
        path = base_dir / path
    return _load_config_instance(path.resolve(), base_dir)


def get_settings(
    config_path: str | os.PathLike[str] = DEFAULT_CONFIG_FILE,
    app_dir: Path | None = None,
) -> BabelmarkConfig:
    """Return the validated schema model for typed access."""

    return get_config(config_path, app_dir=app_dir).model()
