import pytest

from household_categorizer.core import settings


def test_read_config_file(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text(
        "# ledger settings\n"
        "LEDGER_API_URL: http://ledger:3000  # local\n"
        "LEDGER_API_TOKEN: \"abc#def\"\n"
        "DEFAULT_BANK_FORMAT: 'hsbc'\n"
        "EMPTY:\n"
        "not a pair\n",
        encoding="utf-8",
    )
    values = settings.read_config_file(str(config))
    assert values == {
        "LEDGER_API_URL": "http://ledger:3000",
        "LEDGER_API_TOKEN": "abc#def",
        "DEFAULT_BANK_FORMAT": "hsbc",
    }


def test_read_missing_config_file(tmp_path):
    assert settings.read_config_file(str(tmp_path / "nope.yaml")) == {}
    assert settings.read_config_file(None) == {}


def test_get_env_int(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LEARNING_CACHE_LIMIT", "50")
    assert settings.get_env_int("LEARNING_CACHE_LIMIT", 200, min_value=1) == 50

    monkeypatch.setenv("LEARNING_CACHE_LIMIT", "zero")
    assert settings.get_env_int("LEARNING_CACHE_LIMIT", 200, min_value=1) == 200

    monkeypatch.setenv("LEARNING_CACHE_LIMIT", "0")
    assert settings.get_env_int("LEARNING_CACHE_LIMIT", 200, min_value=1) == 200


def test_get_env_float_and_str(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("FORMAT_DETECTION_THRESHOLD", "72.5")
    assert settings.get_env_float("FORMAT_DETECTION_THRESHOLD", 80.0) == 72.5
    monkeypatch.setenv("FORMAT_DETECTION_THRESHOLD", "high")
    assert settings.get_env_float("FORMAT_DETECTION_THRESHOLD", 80.0) == 80.0

    monkeypatch.setenv("DEFAULT_BANK_FORMAT", "  ")
    assert settings.get_env_str("DEFAULT_BANK_FORMAT", "standard") == "standard"


def test_secrets_are_masked():
    assert settings._mask_env_value("LEDGER_API_TOKEN", "supersecret") == "su...et"
    assert settings._mask_env_value("LEDGER_API_TOKEN", "abc") == "****"
    assert settings._mask_env_value("LEDGER_API_URL", "http://ledger") == "http://ledger"
