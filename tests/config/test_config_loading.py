"""
Tests for tire_config: packaged defaults, YAML parsing, validation and
the active-config cache.
"""

from uuid import uuid4

import pytest
import yaml

from tire_config import (
    DEFAULT_CONFIG_PATH,
    TireLedgerConfig,
    clear_config_cache,
    get_active_config,
)
from tire_config.loader import compute_checksum, load_config, parse_config
from tire_config.schema import IntakePolicy, LocationLabels, RetreadPolicy, TireCatalog


@pytest.fixture(autouse=True)
def _fresh_cache():
    clear_config_cache()
    yield
    clear_config_cache()


class TestPackagedDefaults:

    def test_defaults_match_schema_defaults(self):
        config = load_config(DEFAULT_CONFIG_PATH)
        assert config.locations == LocationLabels()
        assert config.catalog == TireCatalog()
        assert config.intake == IntakePolicy()
        assert config.retread == RetreadPolicy()
        assert config.actors.system_actor_id is None

    def test_location_labels(self):
        labels = get_active_config().locations
        assert labels.warehouse == "MAIN_WAREHOUSE"
        assert labels.vehicle("KAA-123") == "Vehicle-KAA-123"
        assert labels.retread_supplier("RT01") == "RETREAD:RT01"

    def test_fallback_serial_format(self):
        assert get_active_config().intake.fallback_serial("PO-202401-0001", 2, 7) == (
            "PO-202401-0001-002-007"
        )

    def test_checksum_recorded(self):
        config = get_active_config()
        assert len(config.checksum) == 64

    def test_active_config_cached(self):
        assert get_active_config() is get_active_config()

    def test_load_logged(self, captured_logs):
        get_active_config()
        logs = captured_logs()
        loaded = [r for r in logs if r["message"] == "tire_config_loaded"]
        assert len(loaded) == 1
        assert loaded[0]["config_id"] == "tire-ledger-default"


class TestParsing:

    def test_missing_sections_take_defaults(self):
        config = parse_config({"config_id": "minimal"})
        assert config.config_id == "minimal"
        assert config.locations.disposal == "DISPOSAL"

    def test_system_actor_parsed_as_uuid(self):
        actor = uuid4()
        config = parse_config({"actors": {"system_actor_id": str(actor)}})
        assert config.actors.system_actor_id == actor

    def test_catalog_sizes_override(self):
        config = parse_config({"catalog": {"sizes": ["11R22.5"]}})
        assert config.catalog.is_valid_size("11R22.5")
        assert not config.catalog.is_valid_size("295/80R22.5")

    def test_unknown_top_level_key_rejected(self):
        with pytest.raises(ValueError, match="unknown top-level"):
            parse_config({"ledger": {}})

    def test_unknown_section_key_rejected(self):
        with pytest.raises(ValueError, match="intake"):
            parse_config({"intake": {"grn_suffix": "X"}})

    def test_file_override(self, tmp_path):
        path = tmp_path / "tire.yaml"
        path.write_text(yaml.safe_dump({
            "config_id": "site-a",
            "version": 2,
            "locations": {"warehouse": "YARD_2"},
            "intake": {"allow_over_receipt": False},
        }))
        config = get_active_config(path)
        assert isinstance(config, TireLedgerConfig)
        assert config.version == 2
        assert config.locations.warehouse == "YARD_2"
        assert config.intake.allow_over_receipt is False

    def test_checksum_is_order_independent(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})


class TestValidation:

    def test_vehicle_format_needs_placeholder(self):
        with pytest.raises(ValueError):
            LocationLabels(vehicle_format="Truck")

    def test_empty_catalog_rejected(self):
        with pytest.raises(ValueError):
            TireCatalog(sizes=())

    def test_fallback_format_needs_index(self):
        with pytest.raises(ValueError):
            IntakePolicy(fallback_serial_format="{order}-{line}")

    def test_rejection_method_must_be_a_disposal_method(self):
        with pytest.raises(ValueError):
            RetreadPolicy(rejection_method="SCRAP")

    def test_version_must_be_positive(self):
        with pytest.raises(ValueError):
            parse_config({"version": 0})
