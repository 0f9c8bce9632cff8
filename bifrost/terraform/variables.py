"""Variable extraction: a flat, typed variable table from the configuration."""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

import structlog

from bifrost.models.configuration import Configuration, ConnectionType, WorkloadKind

log = structlog.get_logger()

DEFAULT_STARTUP_SCRIPT = (
    "#!/bin/bash\n"
    "apt-get update\n"
    "apt-get install -y nginx\n"
    "systemctl start nginx\n"
    "systemctl enable nginx\n"
)

# Documentation-range values the operator is expected to replace
VPN_PLACEHOLDERS = {
    "on_prem_gateway_ip": "203.0.113.1",
    "vpn_shared_secret": "change-me-shared-secret",
    "on_prem_cidr": "192.168.0.0/16",
}

ATTACHMENT_PLACEHOLDERS = {
    "on_prem_bgp_peer_ip": "169.254.1.1",
    "on_prem_bgp_asn": 65001,
    "interconnect_ip_range": "169.254.1.0/30",
}

DESCRIPTIONS = {
    "project_id": "Google Cloud project ID",
    "application_name": "Name of the distributed application",
    "primary_region": "Primary Google Cloud region",
    "vpc_cidr": "CIDR block for the VPC network",
    "primary_subnet_cidr": "CIDR block for the primary subnet",
    "secondary_subnet_cidrs": "CIDR blocks for secondary subnets, keyed by region",
    "enable_private_google_access": "Enable private Google access for subnets",
    "enable_flow_logs": "VPC flow logs were enabled at generation time (informational; regenerate to change)",
    "enable_cloud_nat": "Cloud NAT was generated for outbound access (informational; regenerate to change)",
    "enable_cloud_armor": "Cloud Armor policy was generated (informational; regenerate to change)",
    "enable_private_service_connect": "Private Service Connect was requested (informational; regenerate to change)",
    "startup_script": "Startup script for Compute Engine instances",
    "on_prem_gateway_ip": "IP address of the on-premises VPN gateway",
    "vpn_shared_secret": "Shared secret for the VPN tunnel",
    "on_prem_cidr": "CIDR block of the on-premises network",
    "on_prem_bgp_peer_ip": "BGP peer IP for the interconnect",
    "on_prem_bgp_asn": "BGP ASN of the on-premises network",
    "interconnect_ip_range": "IP range for the interconnect router interface",
}

SENSITIVE = {"vpn_shared_secret"}


class VariableType(Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "bool"
    MAP = "map(string)"


@dataclass(frozen=True)
class Variable:
    """One input variable of the generated module.

    Attributes:
        name: Variable name as referenced by ``var.<name>``
        type: Type inferred from the default value
        default: Default value (a read-only mapping for map variables)
        description: Human-readable description
        sensitive: Rendered with ``sensitive = true``
        placeholder: Default is not real and must be overridden
    """

    name: str
    type: VariableType
    default: Any
    description: str
    sensitive: bool = False
    placeholder: bool = False


def infer_type(value: Any) -> VariableType:
    """Infer the Terraform type of a default value."""
    if isinstance(value, bool):
        return VariableType.BOOLEAN
    if isinstance(value, (int, float)):
        return VariableType.NUMBER
    if isinstance(value, Mapping):
        return VariableType.MAP
    if isinstance(value, str):
        return VariableType.STRING
    raise TypeError(f"No variable type for {type(value).__name__}")


def make_variable(name: str, default: Any, placeholder: bool = False) -> Variable:
    if isinstance(default, Mapping):
        default = MappingProxyType(dict(default))
    return Variable(
        name=name,
        type=infer_type(default),
        default=default,
        description=DESCRIPTIONS.get(name, f"Configuration for {name}"),
        sensitive=name in SENSITIVE,
        placeholder=placeholder,
    )


def extract_variables(config: Configuration) -> list[Variable]:
    """Walk the configuration and produce the variable table.

    Secondary subnet CIDRs are a single map variable keyed by region, so the
    number of variables does not grow with the number of regions.
    """
    network = config.network
    security = config.security

    defaults = [
        ("project_id", config.identity.project_id),
        ("application_name", config.application_name),
        ("primary_region", network.primary_region),
        ("vpc_cidr", network.vpc_cidr),
        ("primary_subnet_cidr", network.subnet_cidr(network.primary_region)),
        (
            "secondary_subnet_cidrs",
            {region: network.subnet_cidr(region) for region in network.secondary_regions},
        ),
        ("enable_private_google_access", network.private_access),
        ("enable_flow_logs", network.flow_logs),
        ("enable_cloud_nat", security.nat),
        ("enable_cloud_armor", security.armor),
        ("enable_private_service_connect", security.private_service_connect),
    ]
    if any(w.kind == WorkloadKind.COMPUTE for w in config.workloads):
        defaults.append(("startup_script", DEFAULT_STARTUP_SCRIPT))

    variables = [make_variable(name, value) for name, value in defaults]

    on_prem = config.connectivity.on_prem
    if on_prem.enabled:
        if on_prem.connection_type == ConnectionType.VPN:
            placeholders = VPN_PLACEHOLDERS
        else:
            placeholders = ATTACHMENT_PLACEHOLDERS
        variables.extend(
            make_variable(name, value, placeholder=True) for name, value in placeholders.items()
        )

    log.debug("variables_extracted", count=len(variables))
    return variables
