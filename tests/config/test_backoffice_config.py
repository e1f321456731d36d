"""
Tests for backoffice_config: schema validation, YAML loading and the
shipped default set.
"""

import pytest
import yaml

from backoffice_config import (
    DEFAULT_CONFIG_PATH,
    ApproverRoutingConfig,
    BackofficeConfig,
    CategorySchema,
    EligibilityConfig,
    NumberingConfig,
    get_active_config,
)
from backoffice_config.loader import compute_checksum, load_config, parse_config
from backoffice_modules.purchase.service import PurchaseService
from backoffice_modules.reimbursement.service import ReimbursementService


class TestDefaultSet:

    def test_shipped_yaml_matches_builtin_defaults(self):
        loaded = get_active_config()
        defaults = BackofficeConfig.with_defaults()

        assert loaded.routing == defaults.routing
        assert loaded.numbering == defaults.numbering
        assert loaded.eligibility == defaults.eligibility
        assert loaded.finance_sync == defaults.finance_sync
        assert loaded.categories == defaults.categories

    def test_trace_logged(self, captured_logs):
        get_active_config()
        traces = [r for r in captured_logs() if r["message"] == "BACKOFFICE_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["config_id"] == "default"
        assert traces[0]["routing_scopes"] == ["company", "school"]
        assert len(traces[0]["config_checksum"]) == 64

    def test_default_path_exists(self):
        assert DEFAULT_CONFIG_PATH.exists()

    def test_transport_schema(self):
        schema = BackofficeConfig.with_defaults().category_schema("transport")
        assert schema.required_keys == ("from_location", "to_location")
        assert "travel_date" in schema.allowed_keys

    def test_unknown_category_has_no_schema(self):
        assert BackofficeConfig.with_defaults().category_schema("gifts") is None


class TestLoading:

    def test_partial_file_uses_defaults(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(yaml.safe_dump({
            "config_id": "campus",
            "version": 3,
            "approver_routing": {"school": "bursar"},
            "numbering": {"purchase_prefix": "PO"},
        }))

        config = load_config(path)
        assert config.config_id == "campus"
        assert config.version == 3
        assert config.routing.role_by_organization == {"school": "bursar"}
        assert config.numbering.purchase_prefix == "PO"
        assert config.numbering.reimbursement_prefix == "RB"
        assert config.categories == BackofficeConfig.with_defaults().categories

    def test_custom_categories_replace_defaults(self):
        config = parse_config({
            "categories": {
                "gifts": [{"key": "recipient", "required": True}, {"key": "occasion"}],
            },
        })
        assert set(config.categories) == {"gifts"}
        assert config.category_schema("gifts").required_keys == ("recipient",)

    def test_empty_file_is_all_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == BackofficeConfig.with_defaults()

    def test_non_mapping_root_rejected(self):
        with pytest.raises(ValueError):
            parse_config(["not", "a", "mapping"])

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_checksum_is_order_independent(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})


class TestValidation:

    def test_empty_routing_rejected(self):
        with pytest.raises(ValueError):
            ApproverRoutingConfig(role_by_organization={})

    def test_identical_prefixes_rejected(self):
        with pytest.raises(ValueError):
            NumberingConfig(purchase_prefix="X", reimbursement_prefix="X")

    def test_zero_width_rejected(self):
        with pytest.raises(ValueError):
            NumberingConfig(sequence_width=0)

    def test_empty_ready_statuses_rejected(self):
        with pytest.raises(ValueError):
            EligibilityConfig(inbound_ready_statuses=frozenset())

    def test_field_without_key_rejected(self):
        with pytest.raises(KeyError):
            CategorySchema.from_dict("gifts", [{"label": "no key"}])

    def test_version_must_be_positive(self):
        with pytest.raises(ValueError):
            BackofficeConfig(version=0)


class TestServicesWithoutConfig:

    def test_builtin_defaults_used_without_reading_yaml(
        self, session, deterministic_clock, requester, purchase_input, reimbursement_input,
        test_actor_id, captured_logs,
    ):
        purchases = PurchaseService(session, clock=deterministic_clock)
        claims = ReimbursementService(session, clock=deterministic_clock)

        purchase = purchases.create(purchase_input(), test_actor_id)
        claim = claims.create(reimbursement_input(), test_actor_id)

        assert purchase.purchase_number == "PC2024010001"
        assert claim.reimbursement_number == "RB2024010001"
        assert not any(r["message"] == "BACKOFFICE_CONFIG_TRACE" for r in captured_logs())
