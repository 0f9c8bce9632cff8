"""Shared test fixtures."""

import copy
import json

import pytest

from bifrost.models.configuration import parse_configuration

SHOP = {
    "applicationName": "shop",
    "network": {
        "primaryRegion": "us-central1",
        "vpcCidr": "10.0.0.0/16",
        "primarySubnetCidr": "10.0.1.0/24",
    },
    "connectivity": {"onPrem": {"enabled": True, "type": "vpn"}},
    "workloads": [
        {"name": "web", "kind": "compute", "region": "us-central1", "scaling": {"min": 1, "max": 3}},
    ],
}

FULL = {
    "applicationName": "atlas",
    "projectId": "atlas-prod",
    "architecture": "segmented",
    "network": {
        "primaryRegion": "us-central1",
        "secondaryRegions": ["europe-west1", "asia-east1"],
        "vpcCidr": "10.0.0.0/16",
        "primarySubnetCidr": "10.0.1.0/24",
        "subnetCidrs": {"europe-west1": "10.0.2.0/24", "asia-east1": "10.0.3.0/24"},
        "enableFlowLogs": True,
    },
    "connectivity": {
        "onPrem": {"enabled": True, "type": "dedicated-interconnect", "redundancy": "high"},
        "multiCloud": {
            "enabled": True,
            "providers": [
                {"name": "aws", "regions": ["us-east-1"], "redundancy": "high"},
                {"name": "azure", "regions": ["eastus"]},
            ],
        },
        "siteToSite": {"enabled": True, "dataTransfer": True},
    },
    "security": {
        "enableCloudArmor": True,
        "enableCloudNat": True,
        "firewallRules": [
            {
                "name": "allow-http",
                "direction": "ingress",
                "sourceRanges": ["0.0.0.0/0"],
                "targetTags": ["web"],
                "allowed": [{"protocol": "tcp", "ports": [80, 443]}],
            },
            {
                "name": "deny-egress",
                "direction": "EGRESS",
                "priority": 900,
                "sourceRanges": ["192.0.2.0/24"],
                "allowed": [{"protocol": "all"}],
            },
        ],
    },
    "workloads": [
        {"name": "api", "kind": "gke", "region": "europe-west1", "scaling": {"min": 2, "max": 6}},
        {"name": "frontend", "kind": "cloud-run", "region": "us-central1"},
        {"name": "batch", "kind": "compute", "region": "asia-east1", "machineType": "n2-standard-4"},
    ],
}


@pytest.fixture
def shop_data():
    """Raw mapping for the single-region shop application."""
    return copy.deepcopy(SHOP)


@pytest.fixture
def shop_config(shop_data):
    return parse_configuration(shop_data)


@pytest.fixture
def full_data():
    """Raw mapping exercising every section."""
    return copy.deepcopy(FULL)


@pytest.fixture
def full_config(full_data):
    return parse_configuration(full_data)


@pytest.fixture
def minimal_data():
    """Smallest valid configuration: one region, nothing enabled."""
    return {
        "applicationName": "tiny",
        "network": {"primaryRegion": "us-east1", "primarySubnetCidr": "10.0.1.0/24"},
    }


@pytest.fixture
def config_file(tmp_path):
    """Write a mapping to a configuration file and return its path."""

    def write(data, name="app.yaml"):
        path = tmp_path / name
        path.write_text(json.dumps(data, indent=2))
        return path

    return write
