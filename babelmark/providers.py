"""Translation provider abstractions."""

from __future__ import annotations

import json
import logging
import os
import pathlib
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from .errors import ConfigurationError, TranslationFailure

logger = logging.getLogger(__name__)


class TranslationProvider(ABC):
    """Capability that translates an ordered list of texts.

    Implementations must return exactly one translation per input, in input
    order, and must be safe to share between threads.
    """

    name = "provider"

    @abstractmethod
    def translate(
        self,
        texts: Sequence[str],
        *,
        target_language: str,
        source_language: str | None = None,
        model: str | None = None,
    ) -> List[str]:
        """Translate ``texts`` into ``target_language``."""

    def close(self) -> None:
        """Release the underlying client, if any."""


class EchoTranslationProvider(TranslationProvider):
    """A provider that returns the original text (useful for dry runs)."""

    name = "echo"

    def translate(
        self,
        texts: Sequence[str],
        *,
        target_language: str,
        source_language: str | None = None,
        model: str | None = None,
    ) -> List[str]:
        return list(texts)


def read_project_id(credentials_path: str | os.PathLike[str]) -> str:
    """Return the ``project_id`` stored in a service account JSON file."""

    path = pathlib.Path(credentials_path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(
            f"Failed to read credentials file {path}: {exc}"
        ) from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            f"Failed to parse credentials JSON {path}: {exc}"
        ) from exc

    project_id = data.get("project_id") if isinstance(data, dict) else None
    if not isinstance(project_id, str) or not project_id:
        raise ConfigurationError(f"project_id not found in credentials file {path}.")
    return project_id


class GoogleTranslationProvider(TranslationProvider):
    """Translation provider backed by Google Cloud Translation (v2 API)."""

    name = "google"
    DEFAULT_MODEL = "nmt"

    def __init__(
        self,
        *,
        credentials_path: str | os.PathLike[str],
        project_id: str | None = None,
        debug: bool = False,
    ) -> None:
        self.debug = debug
        self.credentials_path = pathlib.Path(credentials_path)
        self.project_id = project_id or read_project_id(self.credentials_path)
        logger.info("Using Google Cloud project: %s", self.project_id)
        self._client = self._build_client()

    def _build_client(self) -> Any:
        try:
            from google.cloud import translate_v2  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise ConfigurationError(
                "google-cloud-translate is not installed. Install with "
                "`pip install google-cloud-translate`."
            ) from exc

        try:
            return translate_v2.Client.from_service_account_json(
                str(self.credentials_path)
            )
        except Exception as exc:  # pragma: no cover - credential parsing
            raise ConfigurationError(
                f"Failed to create translate client: {exc}"
            ) from exc

    def translate(
        self,
        texts: Sequence[str],
        *,
        target_language: str,
        source_language: str | None = None,
        model: str | None = None,
    ) -> List[str]:
        if not texts:
            return []

        _log_debug(self, "provider.request.payload", list(texts))
        try:
            response = self._client.translate(
                list(texts),
                target_language=target_language,
                source_language=source_language,
                model=model or self.DEFAULT_MODEL,
            )
        except Exception as exc:  # pragma: no cover - network call
            raise TranslationFailure(
                f"Translation service failed for language '{target_language}': {exc}"
            ) from exc
        _log_debug(self, "provider.response.items", response)

        if isinstance(response, dict):
            response = [response]
        translations: List[str] = []
        for item in response:
            translated = item.get("translatedText") if isinstance(item, dict) else None
            if not isinstance(translated, str):
                raise TranslationFailure(
                    "Translation provider response malformed: missing translatedText."
                )
            translations.append(translated)
        return translations

    def close(self) -> None:
        http = getattr(self._client, "_http", None)
        if http is not None and hasattr(http, "close"):
            http.close()


class OpenAITranslationProvider(TranslationProvider):
    """Translation provider that uses OpenAI chat models."""

    name = "openai"
    DEFAULT_MODEL = "gpt-5-mini"

    def __init__(self, *, debug: bool = False) -> None:
        self.debug = debug
        provider_value = os.getenv("LLM_PROVIDER", "openai") or "openai"
        normalized = provider_value.strip().lower()
        if normalized in {"azure_open_ai", "azure-openai"}:
            normalized = "azure_openai"
        if normalized not in {"openai", "azure_openai"}:
            normalized = "openai"

        self.provider_kind = normalized
        self._client, self._default_model = self._build_client()

    def _build_client(self) -> tuple[Any, str]:
        if self.provider_kind == "azure_openai":
            return self._build_azure_client()

        return self._build_openai_client()

    def _build_openai_client(self) -> tuple[Any, str]:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ConfigurationError(
                "OpenAI configuration missing. Set OPENAI_API_KEY or choose a "
                "different provider."
            )
        try:
            from openai import OpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise ConfigurationError(
                "OpenAI Python SDK not installed. Install with `pip install openai`."
            ) from exc

        return OpenAI(api_key=api_key), self.DEFAULT_MODEL

    def _build_azure_client(self) -> tuple[Any, str]:
        settings = {
            "AZURE_OPENAI_API_KEY": os.getenv("AZURE_OPENAI_API_KEY"),
            "AZURE_OPENAI_ENDPOINT": os.getenv("AZURE_OPENAI_ENDPOINT"),
            "AZURE_OPENAI_API_VERSION": os.getenv("AZURE_OPENAI_API_VERSION"),
            "AZURE_OPENAI_DEPLOYMENT_NAME": os.getenv("AZURE_OPENAI_DEPLOYMENT_NAME"),
        }
        missing = [name for name, value in settings.items() if not value]
        if missing:
            raise ConfigurationError(
                "Azure OpenAI configuration incomplete. Please set: "
                + ", ".join(missing)
                + "."
            )

        try:
            from openai import AzureOpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise ConfigurationError(
                "OpenAI Python SDK not installed. Install with `pip install openai`."
            ) from exc

        client = AzureOpenAI(
            api_key=settings["AZURE_OPENAI_API_KEY"],
            api_version=settings["AZURE_OPENAI_API_VERSION"],
            azure_endpoint=settings["AZURE_OPENAI_ENDPOINT"],
        )
        return client, settings["AZURE_OPENAI_DEPLOYMENT_NAME"]  # type: ignore[return-value]

    def translate(
        self,
        texts: Sequence[str],
        *,
        target_language: str,
        source_language: str | None = None,
        model: str | None = None,
    ) -> List[str]:
        if not texts:
            return []

        payload = [{"id": str(idx), "text": text} for idx, text in enumerate(texts)]
        system_prompt = (
            "You are a professional translator. Return only JSON. "
            "Translate the provided Markdown fragments into the requested language. "
            "Preserve formatting, link targets, shortcodes such as {{< video >}}, "
            "numbers, and markup. "
            "Respond strictly with an object shaped as "
            '{"translations": [{"id": "...", "translated": "..."}]}. '
            "Do not add commentary. Do not wrap the JSON in markdown code fences."
        )
        user_prompt = {
            "target_language": target_language,
            "source_language": source_language,
            "segments": payload,
        }
        _log_debug(self, "provider.request.payload", user_prompt)

        response_items = self._invoke_model(
            system_prompt=system_prompt,
            user_payload=user_prompt,
            model=model or self._default_model,
        )
        _log_debug(self, "provider.response.items", response_items)

        mapping: Dict[str, str] = {}
        for item in response_items:
            if not isinstance(item, dict):
                raise TranslationFailure(
                    "Translation provider response malformed: expected objects."
                )
            segment_id = item.get("id")
            translated = item.get("translated")
            if not isinstance(segment_id, str) or not isinstance(translated, str):
                raise TranslationFailure(
                    "Translation provider response malformed: missing fields."
                )
            mapping[segment_id] = translated

        missing = [entry["id"] for entry in payload if entry["id"] not in mapping]
        if missing:
            raise TranslationFailure(
                "Translation provider response missing segments: " + ", ".join(missing)
            )
        return [mapping[entry["id"]] for entry in payload]

    def _invoke_model(
        self,
        *,
        system_prompt: str,
        user_payload: dict,
        model: str,
    ) -> list[dict[str, Any]]:
        """Call the OpenAI Responses API and return structured JSON data."""

        try:
            response = self._client.responses.create(
                model=model,
                input=[
                    {
                        "role": "system",
                        "content": [
                            {"type": "input_text", "text": system_prompt},
                        ],
                    },
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "input_text",
                                "text": json.dumps(user_payload, ensure_ascii=False),
                            }
                        ],
                    },
                ],
            )
        except Exception as exc:  # pragma: no cover - network call
            raise TranslationFailure(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc

        output_text = getattr(response, "output_text", None)
        if not output_text:
            raise TranslationFailure(
                "Translation provider response empty or unrecognised."
            )
        return normalise_translations(str(output_text))


class LegacyOpenAITranslationProvider(OpenAITranslationProvider):
    """Translation provider that uses the Chat Completions API for compatibility."""

    name = "legacy-openai"

    def _invoke_model(
        self,
        *,
        system_prompt: str,
        user_payload: dict,
        model: str,
    ) -> list[dict[str, Any]]:
        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=0,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {
                        "role": "user",
                        "content": json.dumps(user_payload, ensure_ascii=False),
                    },
                ],
            )
        except Exception as exc:  # pragma: no cover - network call
            raise TranslationFailure(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc

        content: str | None = None
        for choice in getattr(response, "choices", None) or []:
            message = getattr(choice, "message", None)
            message_content = getattr(message, "content", None)
            if message_content:
                content = str(message_content)
                break

        if content is None:
            raise TranslationFailure(
                "Translation provider response empty or unrecognised."
            )
        return normalise_translations(content)


def strip_code_fence(text: str) -> str:
    """Remove leading/trailing markdown code fences if present."""

    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped

    # Drop opening fence and optional language hint.
    first_newline = stripped.find("\n")
    if first_newline == -1:
        return stripped
    body = stripped[first_newline + 1 :]
    closing_index = body.rfind("```")
    if closing_index != -1:
        body = body[:closing_index]
    return body.strip()


def normalise_translations(payload: Any) -> list[dict[str, Any]]:
    """Normalise a raw model reply into a list of translation dictionaries."""

    if isinstance(payload, str):
        try:
            payload = json.loads(strip_code_fence(payload))
        except json.JSONDecodeError as exc:
            raise TranslationFailure(
                f"Translation provider returned invalid JSON: {exc}"
            ) from exc

    if isinstance(payload, dict):
        translations = payload.get("translations")
        if isinstance(translations, list):
            return translations

    if isinstance(payload, list):
        return payload

    raise TranslationFailure(
        "Translation provider response malformed: could not find translations list."
    )


def _log_debug(provider: TranslationProvider, label: str, payload: Any) -> None:
    """Emit structured debug information when enabled."""

    if not getattr(provider, "debug", False):
        return
    try:
        message = json.dumps(payload, ensure_ascii=False, indent=2)
    except (TypeError, ValueError):
        message = repr(payload)
    logger.debug("[%s] %s:\n%s", provider.name, label, message)


def build_provider(
    name: str | None,
    *,
    credentials_path: str | os.PathLike[str] | None = None,
    project_id: str | None = None,
    debug: bool = False,
) -> TranslationProvider:
    """Factory to create providers by name."""

    normalized = (name or "google").strip().lower()
    if normalized in {"google", "gcp", "default"}:
        if credentials_path is None:
            raise ConfigurationError("credentials_path is required for the Google provider.")
        return GoogleTranslationProvider(
            credentials_path=credentials_path,
            project_id=project_id,
            debug=debug,
        )
    if normalized in {"openai", "gpt"}:
        return OpenAITranslationProvider(debug=debug)
    if normalized in {"legacy-openai", "legacy_openai", "legacy", "openai-legacy"}:
        return LegacyOpenAITranslationProvider(debug=debug)
    if normalized in {"echo", "noop", "mock"}:
        return EchoTranslationProvider()
    raise ConfigurationError(f"Unknown translation provider '{name}'.")
