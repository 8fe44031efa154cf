import pytest

from allscreenshots_cli.app.core.errors import ConfigError
from allscreenshots_cli.app.core.formatting import (
    format_duration_ms,
    format_file_size,
    format_interval,
    format_number,
    truncate_url,
)
from allscreenshots_cli.app.core.settings import API_KEY_ENV, Config, RuntimeConfig, mask_api_key, resolve_api_key


def test_missing_config_file_gives_defaults(tmp_path):
    config = Config.load(tmp_path / "config.yaml")
    assert config.auth.api_key is None
    assert config.defaults.device == "Desktop HD"
    assert config.display.width == 80


def test_api_key_round_trips_through_yaml(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    Config().set_api_key("as_live_1234567890abcd", path)

    loaded = Config.load(path)
    assert loaded.auth.api_key == "as_live_1234567890abcd"

    loaded.remove_api_key(path)
    assert Config.load(path).auth.api_key is None


def test_partial_config_keeps_other_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("defaults:\n  format: webp\ndisplay:\n  width: 120\n")
    config = Config.load(path)
    assert config.defaults.format == "webp"
    assert config.defaults.output_dir == "./screenshots"
    assert config.display.width == 120
    assert config.display.height == 24


@pytest.mark.parametrize("content", ["auth: [unclosed", "- just\n- a list\n", "display:\n  width: wide\n"])
def test_broken_config_raises_config_error(tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content)
    with pytest.raises(ConfigError):
        Config.load(path)


def test_api_key_precedence():
    config = Config()
    config.auth.api_key = "from-config"
    assert resolve_api_key("from-flag", config, {API_KEY_ENV: "from-env"}) == "from-flag"
    assert resolve_api_key(None, config, {API_KEY_ENV: "from-env"}) == "from-env"
    assert resolve_api_key(None, config, {}) == "from-config"
    assert resolve_api_key(None, Config(), {}) is None


def test_runtime_config_carries_defaults():
    config = Config()
    config.defaults.format = "jpeg"
    runtime = RuntimeConfig.resolve(None, config, {API_KEY_ENV: "env-key"})
    assert runtime.api_key == "env-key"
    assert runtime.defaults.format == "jpeg"


def test_mask_api_key():
    assert mask_api_key("as_live_1234567890abcd") == "as_live_...abcd"
    assert mask_api_key("short") == "*****"
    assert mask_api_key("exactly12chr") == "************"


def test_human_readable_formatting():
    assert format_file_size(512) == "512 bytes"
    assert format_file_size(2048) == "2.00 KB"
    assert format_file_size(5 * 1024 * 1024) == "5.00 MB"
    assert format_duration_ms(250) == "250ms"
    assert format_duration_ms(1500) == "1.5s"
    assert format_duration_ms(125_000) == "2m 5s"
    assert format_interval(90) == "1m 30s"
    assert format_interval(5) == "5s"
    assert format_number(1234567) == "1,234,567"


def test_truncate_url_keeps_short_urls():
    assert truncate_url("https://example.com") == "https://example.com"
    long_url = "https://example.com/" + "a" * 60
    assert truncate_url(long_url) == long_url[:47] + "..."
    assert len(truncate_url(long_url, 20)) == 20
