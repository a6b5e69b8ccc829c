"""Pruebas de carga y validación de configuración.

Tests for configuration loading and validation.
"""

import pytest

from election_tracker.config import ConfigError, TrackerSettings, load_config
from election_tracker.core.models import PrecinctKey

yaml = pytest.importorskip("yaml")


@pytest.fixture()
def clean_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("DATA_BASE_URL", "DATA_DIR", "HEADER_LINES", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def test_load_config_reads_yaml(clean_env):
    """Español: Función test_load_config_reads_yaml del módulo tests/test_config.py.

    English: Function test_load_config_reads_yaml defined in tests/test_config.py.
    """
    data_dir = clean_env / "data"
    data_dir.mkdir()
    config_file = clean_env / "tracker.yaml"
    config_file.write_text(
        yaml.safe_dump(
            {
                "data_dir": str(data_dir),
                "header_lines": 0,
                "precinct_delimiter": "/",
                "community_segment": 0,
                "precinct_segment": 1,
                "fetch_timeout_seconds": 3,
                "max_concurrent_fetches": 2,
                "log_level": "DEBUG",
            }
        ),
        encoding="utf-8",
    )

    settings = load_config(config_file)

    assert settings.DATA_DIR == data_dir
    assert settings.HEADER_LINES == 0
    assert settings.FETCH_TIMEOUT_SECONDS == 3.0
    assert settings.MAX_CONCURRENT_FETCHES == 2
    assert settings.METADATA_FILENAME == "metadata.json"
    assert settings.key_resolver()("Uptown/100") == PrecinctKey("Uptown", "100")


def test_load_config_from_environment(clean_env, monkeypatch):
    monkeypatch.setenv("DATA_BASE_URL", "https://results.example.test/election")
    monkeypatch.setenv("HEADER_LINES", "3")

    settings = load_config()

    assert str(settings.DATA_BASE_URL).startswith("https://results.example.test/election")
    assert settings.DATA_DIR is None
    assert settings.HEADER_LINES == 3


def test_load_config_reads_dotenv_file(clean_env):
    (clean_env / "results").mkdir()
    (clean_env / ".env").write_text("DATA_DIR=results\nLOG_LEVEL=WARNING\n", encoding="utf-8")

    settings = load_config()

    assert settings.DATA_DIR.name == "results"
    assert settings.LOG_LEVEL == "WARNING"


def test_exactly_one_source_is_required(clean_env):
    with pytest.raises(ConfigError):
        load_config()

    both = clean_env / "both.yaml"
    both.write_text(
        yaml.safe_dump({"data_dir": str(clean_env), "data_base_url": "https://example.test"}),
        encoding="utf-8",
    )
    with pytest.raises(ConfigError):
        load_config(both)


def test_missing_data_dir_is_rejected(clean_env):
    config_file = clean_env / "tracker.yaml"
    config_file.write_text(yaml.safe_dump({"data_dir": str(clean_env / "missing")}), encoding="utf-8")

    with pytest.raises(ConfigError, match="does not exist"):
        load_config(config_file)


def test_invalid_yaml_and_values_are_rejected(clean_env):
    broken = clean_env / "broken.yaml"
    broken.write_text("data_dir: [unterminated", encoding="utf-8")
    not_mapping = clean_env / "list.yaml"
    not_mapping.write_text("- 1\n- 2\n", encoding="utf-8")
    negative = clean_env / "negative.yaml"
    negative.write_text(yaml.safe_dump({"data_dir": str(clean_env), "header_lines": -1}), encoding="utf-8")

    for path in (broken, not_mapping, negative, clean_env / "absent.yaml"):
        with pytest.raises(ConfigError):
            load_config(path)


def test_settings_defaults(clean_env):
    settings = TrackerSettings(DATA_DIR=clean_env)

    assert settings.HEADER_LINES == 2
    assert settings.PRECINCT_DELIMITER == "-"
    assert settings.FETCH_RETRIES == 3
    assert settings.key_resolver()("01-100-Uptown") == PrecinctKey("Uptown", "100")
