import json

import pytest

from proxypool.config import AppConfig, get_config, load_config
from proxypool.errors import ConfigError

TOML_TEXT = """
[verify]
semaphore = 20
timeout = 5
test_urls = ["https://cip.cc"]
verify_level = 1

[db]
driver = "sqlite"
connection_string = "sqlite://proxies.db"
table_name = "proxies"
max_connections = 5

[log]
console_levels = ["info", "warn", "error"]
"""


def _document():
    return {
        "verify": {"semaphore": 20, "timeout": 5,
                   "test_urls": ["https://cip.cc"], "verify_level": 2},
        "db": {"driver": "sqlite", "connection_string": "sqlite://proxies.db",
               "table_name": "proxies", "max_connections": 5},
        "log": {"console_levels": ["debug"]},
    }


def test_load_toml(tmp_path):
    path = tmp_path / "Config.toml"
    path.write_text(TOML_TEXT, encoding="utf-8")
    config = load_config(path)
    assert config.verify.semaphore == 20
    assert config.verify.test_urls == ["https://cip.cc"]
    assert config.db.driver == "sqlite"
    assert config.db.table_name == "proxies"
    assert config.log.console_levels == ["info", "warn", "error"]


def test_name_without_suffix_finds_toml(tmp_path):
    (tmp_path / "Config.toml").write_text(TOML_TEXT, encoding="utf-8")
    assert load_config(tmp_path / "Config").db.max_connections == 5


def test_name_without_suffix_finds_json(tmp_path):
    (tmp_path / "Config.json").write_text(json.dumps(_document()), encoding="utf-8")
    config = load_config(tmp_path / "Config")
    assert config.verify.verify_level == 2
    assert config == AppConfig.from_dict(_document())


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "Config")


def test_malformed_toml_raises(tmp_path):
    path = tmp_path / "Config.toml"
    path.write_text("[verify\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_missing_section_raises():
    document = _document()
    del document["db"]
    with pytest.raises(ConfigError):
        AppConfig.from_dict(document)


@pytest.mark.parametrize(
    ("section", "key", "value"),
    [("verify", "semaphore", -1), ("verify", "timeout", "5"),
     ("verify", "test_urls", "https://cip.cc"), ("db", "max_connections", True),
     ("db", "driver", 3), ("log", "console_levels", [1])],
)
def test_bad_field_raises(section, key, value):
    document = _document()
    document[section][key] = value
    with pytest.raises(ConfigError):
        AppConfig.from_dict(document)


def test_missing_field_raises():
    document = _document()
    del document["verify"]["verify_level"]
    with pytest.raises(ConfigError):
        AppConfig.from_dict(document)


def test_get_config_loads_once_from_working_directory(tmp_path, monkeypatch):
    (tmp_path / "Config.toml").write_text(TOML_TEXT, encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    get_config.cache_clear()
    try:
        first = get_config()
        assert first.verify.semaphore == 20
        assert get_config() is first
    finally:
        get_config.cache_clear()