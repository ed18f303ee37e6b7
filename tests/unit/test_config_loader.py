from __future__ import annotations
import pytest
from pathlib import Path
from sheet_sync.config.loader import load_config, ConfigError
from sheet_sync.sheet.columns import DEFAULT_FALLBACKS, DEFAULT_VARIANTS


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.environment == "production"
    assert cfg.proxy.direct_endpoint == "https://proxy.test/exec"
    assert cfg.proxy.local_endpoint == "http://localhost:8080/api/gsheet"
    assert cfg.proxy.timeout_seconds == 5
    assert cfg.database.user == "appuser"
    assert cfg.database.port == 5432


def test_load_config_defaults_columns(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.columns.variants["phone"] == DEFAULT_VARIANTS["phone"]
    assert cfg.columns.fallbacks == DEFAULT_FALLBACKS


def test_load_config_column_overrides_merge_with_defaults(write_config: Path):
    text = write_config.read_text(encoding="utf-8") + (
        "columns:\n"
        "  variants:\n"
        "    phone: [mobile no, phone]\n"
        "  fallbacks:\n"
        "    name: 0\n"
    )
    write_config.write_text(text, encoding="utf-8")
    cfg = load_config(write_config)
    assert cfg.columns.variants["phone"] == ("mobile no", "phone")
    assert cfg.columns.variants["email"] == DEFAULT_VARIANTS["email"]
    assert cfg.columns.fallbacks["name"] == 0
    assert cfg.columns.fallbacks["payment_status"] == DEFAULT_FALLBACKS["payment_status"]


def test_load_config_missing_file(temp_workdir: Path):
    missing = temp_workdir / "config" / "not_exists.yml"
    with pytest.raises(ConfigError):
        load_config(missing)


def test_load_config_missing_proxy(write_config: Path):
    write_config.write_text("environment: production\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value) and "required property" in str(e.value)


def test_load_config_unknown_column_field(write_config: Path):
    text = write_config.read_text(encoding="utf-8") + "columns:\n  variants:\n    shoe_size: [size]\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_load_config_amount_has_no_positional_fallback(write_config: Path):
    # amount は常に最終列へフォールバックする
    text = write_config.read_text(encoding="utf-8") + "columns:\n  fallbacks:\n    amount: 3\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(write_config)


def test_load_config_extra_field(write_config: Path):
    text = write_config.read_text(encoding="utf-8") + "\nextra_field: not_allowed\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_load_config_invalid_yaml(write_config: Path):
    write_config.write_text("proxy: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "invalid yaml" in str(e.value)


def test_load_config_non_mapping_root(write_config: Path):
    write_config.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(write_config)
