import json
from pathlib import Path

import pytest

from worker_supervisor.config import ConfigurationError, runtime
from worker_supervisor.config.runtime_helpers import DotenvLoader, JsonDefaultsLoader, ListNormalizer


@pytest.fixture
def unloaded_defaults():
    runtime.reset_default_values()
    yield
    runtime.reset_default_values()


def test_load_default_values_prefers_dotenv_over_json(monkeypatch, tmp_path, unloaded_defaults):
    dotenv_path = tmp_path / ".env"
    dotenv_path.write_text('FIRST=from_env\nexport SHARED="env"\n# comment\n')

    json_path = tmp_path / "worker_supervisor.json"
    json_path.write_text(json.dumps({"SHARED": "json", "OTHER": 3, "FLAG": True, "NESTED": {"a": 1}}))

    monkeypatch.setattr(runtime, "_DOTENV_CANDIDATES", (dotenv_path,))
    monkeypatch.setattr(runtime, "_JSON_DEFAULT_CANDIDATES", (json_path,))

    defaults = runtime._load_default_values()
    assert defaults == {"FIRST": "from_env", "SHARED": "env", "OTHER": "3", "FLAG": "true"}
    # Cached value is reused without re-reading files
    assert runtime._load_default_values() is defaults


def test_env_str_uses_file_defaults_and_handles_blanks(monkeypatch):
    runtime._DEFAULT_VALUES = {"FALLBACK": " spaced "}
    monkeypatch.delenv("FALLBACK", raising=False)
    assert runtime.env_str("FALLBACK") == "spaced"

    monkeypatch.setenv("ALLOW_BLANK", "")
    assert runtime.env_str("ALLOW_BLANK", allow_blank=True) == ""
    assert runtime.env_str("ALLOW_BLANK", "fallback") == "fallback"

    monkeypatch.delenv("MISSING_REQUIRED", raising=False)
    with pytest.raises(ConfigurationError):
        runtime.env_str("MISSING_REQUIRED", required=True)


def test_env_int_float_and_seconds_validation(monkeypatch):
    monkeypatch.setenv("WORKER_TEST_INT", "7")
    assert runtime.env_int("WORKER_TEST_INT") == 7

    monkeypatch.setenv("WORKER_TEST_INT", "seven")
    with pytest.raises(ConfigurationError, match="integer"):
        runtime.env_int("WORKER_TEST_INT")

    monkeypatch.setenv("WORKER_TEST_FLOAT", "1.5")
    assert runtime.env_float("WORKER_TEST_FLOAT") == 1.5

    monkeypatch.setenv("WORKER_TEST_SECONDS", "-1")
    with pytest.raises(ConfigurationError, match="non-negative"):
        runtime.env_seconds("WORKER_TEST_SECONDS")

    monkeypatch.delenv("WORKER_TEST_SECONDS")
    assert runtime.env_seconds("WORKER_TEST_SECONDS", 2.5) == 2.5


def test_env_bool_accepts_common_spellings(monkeypatch):
    for raw in ("1", "true", "YES", "on"):
        monkeypatch.setenv("WORKER_TEST_BOOL", raw)
        assert runtime.env_bool("WORKER_TEST_BOOL") is True
    for raw in ("0", "false", "No", "off"):
        monkeypatch.setenv("WORKER_TEST_BOOL", raw)
        assert runtime.env_bool("WORKER_TEST_BOOL") is False

    monkeypatch.setenv("WORKER_TEST_BOOL", "maybe")
    with pytest.raises(ConfigurationError):
        runtime.env_bool("WORKER_TEST_BOOL")


def test_env_list_and_path(monkeypatch):
    monkeypatch.setenv("WORKER_TEST_LIST", "a, b,,a")
    assert runtime.env_list("WORKER_TEST_LIST") == ("a", "b")
    assert runtime.env_list("WORKER_TEST_LIST", unique=False) == ("a", "b", "a")

    monkeypatch.delenv("WORKER_TEST_LIST")
    assert runtime.env_list("WORKER_TEST_LIST", or_value=["x"]) == ("x",)
    assert runtime.env_list("WORKER_TEST_LIST") is None

    monkeypatch.setenv("WORKER_TEST_PATH", "~/worker.jar")
    assert runtime.env_path("WORKER_TEST_PATH") == Path("~/worker.jar").expanduser()


def test_list_normalizer_helpers():
    assert ListNormalizer.split_and_normalize(" a ; b ;", ";", True) == ["a", "b"]
    assert ListNormalizer.split_and_normalize("a; b", ";", False) == ["a", " b"]
    assert ListNormalizer.deduplicate_preserving_order(["b", "a", "b"]) == ("b", "a")


def test_loaders_return_empty_for_missing_files(tmp_path):
    assert DotenvLoader.load_from_file(tmp_path / "absent.env") == {}
    assert JsonDefaultsLoader.load_from_file(tmp_path / "absent.json") == {}


def test_json_loader_rejects_non_object(tmp_path):
    path = tmp_path / "defaults.json"
    path.write_text("[1, 2]")
    with pytest.raises(ConfigurationError):
        JsonDefaultsLoader.load_from_file(path)

    path.write_text("{not json")
    with pytest.raises(ConfigurationError):
        JsonDefaultsLoader.load_from_file(path)
