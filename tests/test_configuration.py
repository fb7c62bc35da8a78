import json
import os

import pytest

from babelmark.configuration import get_settings
from babelmark.errors import ConfigurationError


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("BABELMARK_"):
            monkeypatch.delenv(key)
    return tmp_path


def write_config(directory, payload):
    path = directory / "config.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_defaults(clean_env):
    path = write_config(clean_env, {"languages": ["en", "fr", "de"]})

    settings = get_settings(path, app_dir=clean_env)

    assert settings.default_language == "en"
    assert settings.credentials_path == "google-secret.json"
    assert settings.provider == "google"
    assert settings.reading_time is True
    assert settings.eligible_file_names() == ["index", "_index"]
    assert settings.target_languages() == ["fr", "de"]


def test_file_values(clean_env):
    path = write_config(
        clean_env,
        {
            "default_language": "nl",
            "languages": ["nl", "en"],
            "file_names": ["post"],
            "credentials_path": "secrets/gcp.json",
        },
    )

    settings = get_settings(path, app_dir=clean_env)

    assert settings.target_languages() == ["en"]
    assert settings.eligible_file_names() == ["post"]
    assert settings.credentials_path == "secrets/gcp.json"


def test_environment_overrides_file(clean_env, monkeypatch):
    path = write_config(clean_env, {"languages": ["en", "fr"]})
    monkeypatch.setenv("BABELMARK_LANGUAGES", "en, es, it")

    settings = get_settings(path, app_dir=clean_env)

    assert settings.target_languages() == ["es", "it"]


def test_dotenv_file_is_read(clean_env):
    (clean_env / ".env").write_text("BABELMARK_LANGUAGES=en,ja\n", encoding="utf-8")

    settings = get_settings(clean_env / "config.json", app_dir=clean_env)

    assert settings.target_languages() == ["ja"]


def test_only_default_language_is_rejected(clean_env):
    path = write_config(clean_env, {"languages": ["en"]})

    with pytest.raises(ConfigurationError, match="No target languages"):
        get_settings(path, app_dir=clean_env)


def test_malformed_json_is_rejected(clean_env):
    path = clean_env / "config.json"
    path.write_text("{ not json", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        get_settings(path, app_dir=clean_env)


def test_missing_configuration(clean_env):
    with pytest.raises(ConfigurationError, match="No configuration sources"):
        get_settings(clean_env / "config.json", app_dir=clean_env)
