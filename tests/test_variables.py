"""Tests for variable extraction."""

import pytest

from bifrost.models.configuration import parse_configuration
from bifrost.terraform.variables import (
    DEFAULT_STARTUP_SCRIPT,
    VariableType,
    extract_variables,
    infer_type,
    make_variable,
)

BASE_NAMES = [
    "project_id",
    "application_name",
    "primary_region",
    "vpc_cidr",
    "primary_subnet_cidr",
    "secondary_subnet_cidrs",
    "enable_private_google_access",
    "enable_flow_logs",
    "enable_cloud_nat",
    "enable_cloud_armor",
    "enable_private_service_connect",
]


def by_name(variables):
    return {v.name: v for v in variables}


class TestInferType:
    """Test type inference from defaults."""

    def test_types(self):
        assert infer_type("x") == VariableType.STRING
        assert infer_type(65001) == VariableType.NUMBER
        assert infer_type(True) == VariableType.BOOLEAN
        assert infer_type({}) == VariableType.MAP

    def test_unsupported(self):
        with pytest.raises(TypeError):
            infer_type(["a"])

    def test_map_default_is_read_only(self):
        variable = make_variable("secondary_subnet_cidrs", {"a": "10.0.0.0/24"})
        with pytest.raises(TypeError):
            variable.default["b"] = "10.0.1.0/24"


class TestExtractVariables:
    """Test the variable table for different configurations."""

    def test_minimal(self, minimal_data):
        variables = extract_variables(parse_configuration(minimal_data))
        assert [v.name for v in variables] == BASE_NAMES
        table = by_name(variables)
        assert table["secondary_subnet_cidrs"].default == {}
        assert table["secondary_subnet_cidrs"].type == VariableType.MAP
        assert table["enable_private_google_access"].default is True
        assert table["enable_flow_logs"].default is False

    def test_shop_adds_vpn_placeholders(self, shop_config):
        variables = extract_variables(shop_config)
        names = [v.name for v in variables]
        assert names == BASE_NAMES + [
            "startup_script",
            "on_prem_gateway_ip",
            "vpn_shared_secret",
            "on_prem_cidr",
        ]
        table = by_name(variables)
        assert table["startup_script"].default == DEFAULT_STARTUP_SCRIPT
        assert table["vpn_shared_secret"].sensitive is True
        assert table["on_prem_gateway_ip"].placeholder is True
        assert table["vpc_cidr"].placeholder is False

    def test_attachment_placeholders(self, full_config):
        table = by_name(extract_variables(full_config))
        assert table["on_prem_bgp_asn"].type == VariableType.NUMBER
        assert table["on_prem_bgp_asn"].default == 65001
        assert "interconnect_ip_range" in table
        assert "vpn_shared_secret" not in table

    def test_values_follow_configuration(self, full_config):
        table = by_name(extract_variables(full_config))
        assert table["project_id"].default == "atlas-prod"
        assert table["secondary_subnet_cidrs"].default == {
            "europe-west1": "10.0.2.0/24",
            "asia-east1": "10.0.3.0/24",
        }
        assert table["enable_cloud_armor"].default is True

    def test_region_count_does_not_grow_variables(self, minimal_data, full_config):
        small = extract_variables(parse_configuration(minimal_data))
        names = {v.name for v in extract_variables(full_config)}
        assert {v.name for v in small} <= names
        assert not any(name.startswith("subnet_cidr_") for name in names)

    def test_names_are_unique(self, full_config):
        names = [v.name for v in extract_variables(full_config)]
        assert len(names) == len(set(names))

    def test_generation_time_flags_are_marked_informational(self, full_config):
        """Flags that only shape generation say that editing them changes nothing."""
        table = by_name(extract_variables(full_config))
        for name in (
            "enable_flow_logs",
            "enable_cloud_nat",
            "enable_cloud_armor",
            "enable_private_service_connect",
        ):
            assert "regenerate to change" in table[name].description
        assert "regenerate" not in table["enable_private_google_access"].description
