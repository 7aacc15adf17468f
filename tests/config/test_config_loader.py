"""
Tests for configuration loading.
"""

import pytest

from animewatcher.config import loader
from animewatcher.config.loader import (
    ConfigError,
    DEFAULT_CONFIG,
    get_config_value,
    load_config,
    merge_config,
)


@pytest.mark.unit
def test_missing_file_uses_defaults(tmp_path):
    config = load_config(tmp_path / "absent.yaml")

    assert config == DEFAULT_CONFIG
    config['api']['max_retries'] = 99
    assert DEFAULT_CONFIG['api']['max_retries'] == 3


@pytest.mark.unit
def test_default_path_is_used_when_none_given(tmp_path, monkeypatch):
    monkeypatch.setattr(loader, "default_config_path", lambda: tmp_path / "config.yaml")
    (tmp_path / "config.yaml").write_text("mode: dub\n")

    assert load_config()['mode'] == "dub"


@pytest.mark.unit
def test_user_values_merge_over_defaults(make_config):
    path = make_config({
        "quality": 720,
        "api": {"max_retries": 1},
        "keybindings": {"quit": ["x"]},
    })

    config = load_config(path)

    assert config['quality'] == 720
    assert config['api'] == {
        'request_timeout': 30,
        'max_retries': 1,
        'retry_backoff_seconds': 0.5,
    }
    assert config['keybindings']['quit'] == ["x"]
    assert config['keybindings']['up'] == ['k', 'Up']


@pytest.mark.unit
def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")

    assert load_config(path) == DEFAULT_CONFIG


@pytest.mark.unit
def test_invalid_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("mode: [unclosed\n")

    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(path)


@pytest.mark.unit
def test_non_mapping_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ConfigError, match="YAML dictionary"):
        load_config(path)


@pytest.mark.unit
def test_merge_replaces_non_dict_values():
    base = {"a": {"b": 1, "c": [1, 2]}, "d": 1}

    merged = merge_config(base, {"a": {"c": [3]}, "d": {"e": 2}})

    assert merged == {"a": {"b": 1, "c": [3]}, "d": {"e": 2}}
    assert base == {"a": {"b": 1, "c": [1, 2]}, "d": 1}


@pytest.mark.unit
def test_get_config_value():
    config = {"ui": {"manual_quality": True}}

    assert get_config_value(config, "ui.manual_quality") is True
    assert get_config_value(config, "ui.missing", "fallback") == "fallback"
    assert get_config_value(config, "ui.manual_quality.deeper") is None
