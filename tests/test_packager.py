"""Tests for the artifact packager."""

import re

import pytest

from bifrost.core.errors import DanglingReferenceError
from bifrost.models.configuration import parse_configuration
from bifrost.terraform.assembler import assemble
from bifrost.terraform.packager import (
    ArtifactBundle,
    package,
    render_defaults,
    render_variables,
)
from bifrost.terraform.variables import extract_variables, make_variable


@pytest.fixture
def shop_bundle(shop_config):
    return package(assemble(shop_config), extract_variables(shop_config), shop_config)


class TestArtifactBundle:
    """Test the bundle container."""

    def test_files(self, shop_bundle):
        files = shop_bundle.files()
        assert list(files) == ["main.tf", "variables.tf", "terraform.tfvars", "README.md"]
        assert files["main.tf"] == shop_bundle.main

    def test_is_frozen(self, shop_bundle):
        with pytest.raises(Exception):
            shop_bundle.main = ""

    def test_main_is_assembled_text(self, shop_config, shop_bundle):
        assert shop_bundle.main == assemble(shop_config).text


class TestRenderVariables:
    """Test variable declaration blocks."""

    def test_string_variable(self):
        text = render_variables([make_variable("vpc_cidr", "10.0.0.0/16")])
        assert text == (
            'variable "vpc_cidr" {\n'
            "  type        = string\n"
            '  description = "CIDR block for the VPC network"\n'
            '  default     = "10.0.0.0/16"\n'
            "}\n"
        )

    def test_sensitive_variable(self):
        text = render_variables([make_variable("vpn_shared_secret", "s3cret")])
        assert "sensitive   = true" in text

    def test_map_variable(self):
        text = render_variables([make_variable("secondary_subnet_cidrs", {"europe-west1": "10.0.2.0/24"})])
        assert "type        = map(string)" in text
        assert '"europe-west1" = "10.0.2.0/24"' not in text
        assert 'europe-west1 = "10.0.2.0/24"' in text

    def test_startup_script_is_escaped(self):
        text = render_variables([make_variable("startup_script", "#!/bin/bash\necho ${HOME}\n")])
        assert 'default     = "#!/bin/bash\\necho $${HOME}\\n"' in text


class TestRenderDefaults:
    """Test terraform.tfvars rendering."""

    def test_scalars_and_maps(self):
        text = render_defaults([
            make_variable("project_id", "p-1"),
            make_variable("enable_flow_logs", False),
            make_variable("on_prem_bgp_asn", 65001),
            make_variable("secondary_subnet_cidrs", {"asia-east1": "10.0.3.0/24"}),
        ])
        lines = text.splitlines()
        assert lines[0] == 'project_id             = "p-1"'
        assert lines[1] == "enable_flow_logs       = false"
        assert lines[2] == "on_prem_bgp_asn        = 65001"
        assert lines[3] == "secondary_subnet_cidrs = {"
        assert lines[4] == '  asia-east1 = "10.0.3.0/24"'
        assert lines[5] == "}"

    def test_empty_map(self):
        text = render_defaults([make_variable("secondary_subnet_cidrs", {})])
        assert text == "secondary_subnet_cidrs = {}\n"


class TestDeclaredVariables:
    """Test that everything main uses is declared."""

    def test_missing_declaration_raises(self, shop_config):
        variables = [v for v in extract_variables(shop_config) if v.name != "vpn_shared_secret"]
        with pytest.raises(DanglingReferenceError) as exc_info:
            package(assemble(shop_config), variables, shop_config)
        assert exc_info.value.reference == "var.vpn_shared_secret"

    def test_variables_and_defaults_agree(self, full_config):
        bundle = package(assemble(full_config), extract_variables(full_config), full_config)
        declared = set(re.findall(r'^variable "([^"]+)"', bundle.variables, re.MULTILINE))
        assigned = set(re.findall(r"^([a-z_]+)\s+=", bundle.defaults, re.MULTILINE))
        assert declared == assigned


class TestReadme:
    """Test the operator documentation."""

    def test_shop_readme(self, shop_bundle):
        readme = shop_bundle.documentation
        assert readme.startswith("# shop Network Infrastructure")
        assert "On-premises connectivity (Cloud VPN, low redundancy)" in readme
        assert "- us-central1 (primary): 10.0.1.0/24" in readme
        assert "Workload endpoints: 1" in readme
        assert "- `vpn_shared_secret`: Shared secret for the VPN tunnel (sensitive)" in readme
        assert "terraform init" in readme
        assert "terraform plan -var-file=terraform.tfvars" in readme
        assert "terraform apply -var-file=terraform.tfvars" in readme
        assert "terraform destroy -var-file=terraform.tfvars" in readme

    def test_no_workloads(self, minimal_data):
        config = parse_configuration(minimal_data)
        bundle = package(assemble(config), extract_variables(config), config)
        assert "Workload endpoints: 0" in bundle.documentation
        assert "No placeholder values" in bundle.documentation

    def test_full_features(self, full_config):
        bundle = package(assemble(full_config), extract_variables(full_config), full_config)
        readme = bundle.documentation
        assert "Dedicated Interconnect, high redundancy" in readme
        assert "Multi-cloud connectivity (aws, azure)" in readme
        assert "Site-to-site data transfer" in readme
        assert "Cloud Armor" in readme
        assert "- europe-west1: 10.0.2.0/24" in readme
        assert "`on_prem_bgp_asn`" in readme
