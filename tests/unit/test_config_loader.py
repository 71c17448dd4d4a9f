from __future__ import annotations

from pathlib import Path

import pytest

from levscore.config.loader import ConfigError, build_config, load_config
from levscore.models.config_models import ArticleColumnMapping, ImportLimits, ScoringThresholds


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.organization_id == "org-1"
    assert cfg.uploader == "anna@example.com"
    assert cfg.source_directory == "./data"
    assert cfg.mode == "scored"
    assert cfg.limits.max_rows == 1000
    assert cfg.database.port == 5432
    assert cfg.raw_mapping is None


def test_defaults_applied():
    cfg = build_config({"organization_id": "o", "uploader": "u", "source_directory": "./data"})
    assert cfg.mode == "scored"
    assert cfg.full_refresh is False
    assert cfg.derive_missing_fields is True
    assert cfg.limits == ImportLimits()
    assert cfg.scoring == ScoringThresholds()
    assert cfg.database.host is None


def test_raw_mode_config(temp_workdir: Path, raw_config_yaml: str):
    path = temp_workdir / "config" / "raw.yml"
    path.write_text(raw_config_yaml, encoding="utf-8")
    cfg = load_config(path)
    assert cfg.mode == "raw"
    assert cfg.full_refresh is True
    assert cfg.raw_mapping == ArticleColumnMapping(
        supplier_number="LevNr",
        supplier_name="Leverantör",
        revenue="Omsättning",
        article_number="Artikel",
        quantity="Antal",
        margin="TG",
    )


def test_raw_mode_requires_mapping():
    with pytest.raises(ConfigError, match="raw_mapping"):
        build_config({"organization_id": "o", "uploader": "u", "source_directory": "d", "mode": "raw"})


def test_scoring_override():
    cfg = build_config(
        {"organization_id": "o", "uploader": "u", "source_directory": "d", "scoring": {"strong_total": 7.5}}
    )
    assert cfg.scoring.strong_total == 7.5
    assert cfg.scoring.breadth_low == 0.7


@pytest.mark.parametrize(
    "data",
    [
        {"uploader": "u", "source_directory": "d"},
        {"organization_id": "o", "uploader": "u", "source_directory": "d", "unknown": 1},
        {"organization_id": "o", "uploader": "u", "source_directory": "d", "mode": "fast"},
        {"organization_id": "o", "uploader": "u", "source_directory": "d", "limits": {"max_rows": 0}},
    ],
)
def test_schema_violations(data):
    with pytest.raises(ConfigError, match="config validation failed"):
        build_config(data)


def test_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="config file not found"):
        load_config(temp_workdir / "config" / "nope.yml")


def test_invalid_yaml(temp_workdir: Path):
    path = temp_workdir / "config" / "bad.yml"
    path.write_text("organization_id: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(path)


def test_root_must_be_mapping(temp_workdir: Path):
    path = temp_workdir / "config" / "list.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="must be a mapping"):
        load_config(path)
