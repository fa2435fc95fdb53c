"""Tests for the risk catalog."""

from pathlib import Path

from cortex.autonomy.risk import RiskCatalog, RiskTier


def test_default_catalog_tiers() -> None:
    catalog = RiskCatalog.default()

    assert catalog.get("create_task").tier == RiskTier.LOW
    assert catalog.get("create_task").default_confidence == 80
    assert catalog.get("create_lead").tier == RiskTier.MEDIUM
    assert catalog.get("send_email").tier == RiskTier.HIGH
    assert catalog.get("delete_everything") is None
    assert "search_web" in catalog
    assert len(catalog) == 26


def test_load_from_toml(tmp_path) -> None:
    path = tmp_path / "risk.toml"
    path.write_text(
        '[tools.archive_note]\ntier = "low"\ndefault_confidence = 60\n\n'
        '[tools.wire_money]\ntier = "high"\n'
    )
    catalog = RiskCatalog.load(path)

    assert len(catalog) == 2
    assert catalog.get("archive_note").default_confidence == 60
    assert catalog.get("wire_money").tier == RiskTier.HIGH
    assert catalog.get("wire_money").default_confidence == 0
    assert "create_task" not in catalog


def test_missing_file_falls_back_to_defaults(tmp_path) -> None:
    catalog = RiskCatalog.load(tmp_path / "nope.toml")
    assert len(catalog) == 26


def test_malformed_file_falls_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "risk.toml"
    path.write_text("[tools.broken\ntier = ")
    assert len(RiskCatalog.load(path)) == 26


def test_file_without_tools_table_falls_back(tmp_path) -> None:
    path = tmp_path / "risk.toml"
    path.write_text('title = "nothing here"\n')
    assert len(RiskCatalog.load(path)) == 26


def test_invalid_entries_are_skipped() -> None:
    catalog = RiskCatalog.from_dict(
        {
            "ok": {"tier": "medium"},
            "bad_tier": {"tier": "extreme"},
            "bad_confidence": {"tier": "low", "default_confidence": 150},
            "not_a_table": "low",
        }
    )
    assert "ok" in catalog
    assert "bad_tier" not in catalog
    assert "bad_confidence" not in catalog
    assert "not_a_table" not in catalog


def test_shipped_catalog_matches_defaults() -> None:
    shipped = RiskCatalog.load(Path(__file__).parent.parent / "config" / "RISK_CATALOG.toml")
    defaults = RiskCatalog.default()

    assert {lvl.tool_name: (lvl.tier, lvl.default_confidence) for lvl in shipped} == {
        lvl.tool_name: (lvl.tier, lvl.default_confidence) for lvl in defaults
    }
