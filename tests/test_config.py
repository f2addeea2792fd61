from pathlib import Path

from elementsnip.config import SnipConfig, configure_webengine_logging, load_config


def test_load_config_defaults() -> None:
    config = load_config({})
    assert config == SnipConfig()
    assert config.restore_delay_ms == 100
    assert config.load_timeout_ms == 30_000


def test_load_config_reads_environment_overrides(tmp_path: Path) -> None:
    config = load_config(
        {
            "ELEMENTSNIP_START_URL": "https://example.org",
            "ELEMENTSNIP_HIGHLIGHT_OUTLINE": "3px solid orange",
            "ELEMENTSNIP_RESTORE_DELAY_MS": "250",
            "ELEMENTSNIP_LOG_DIR": str(tmp_path),
        }
    )
    assert config.start_url == "https://example.org"
    assert config.highlight_outline == "3px solid orange"
    assert config.highlight_fill == SnipConfig().highlight_fill
    assert config.restore_delay_ms == 250
    assert config.log_dir == tmp_path


def test_load_config_ignores_invalid_numbers_and_clamps() -> None:
    config = load_config({"ELEMENTSNIP_RESTORE_DELAY_MS": "soon", "ELEMENTSNIP_LOAD_TIMEOUT_MS": "5"})
    assert config.restore_delay_ms == 100
    assert config.load_timeout_ms == 1000


def test_configure_webengine_logging_merges_flags() -> None:
    env = {"QTWEBENGINE_CHROMIUM_FLAGS": "--foo", "QT_LOGGING_RULES": "qt.foo=true"}
    configure_webengine_logging(env)
    configure_webengine_logging(env)
    assert set(env["QTWEBENGINE_CHROMIUM_FLAGS"].split()) == {"--foo", "--disable-logging", "--log-level=3"}
    assert env["QT_LOGGING_RULES"] == "qt.foo=true;qt.webengine.console=false"
