"""Resource kinds and helpers shared by the section generators."""

from typing import Any

from bifrost.models.configuration import Configuration
from bifrost.terraform.hcl import Interpolation, Reference, VarRef
from bifrost.terraform.registry import IdentifierRegistry

# Resource kinds
NETWORK = "google_compute_network"
SUBNETWORK = "google_compute_subnetwork"
ROUTER = "google_compute_router"
ROUTER_NAT = "google_compute_router_nat"
VPN_GATEWAY = "google_compute_vpn_gateway"
ADDRESS = "google_compute_address"
FORWARDING_RULE = "google_compute_forwarding_rule"
VPN_TUNNEL = "google_compute_vpn_tunnel"
ROUTE = "google_compute_route"
INTERCONNECT_ATTACHMENT = "google_compute_interconnect_attachment"
ROUTER_INTERFACE = "google_compute_router_interface"
ROUTER_PEER = "google_compute_router_peer"
HUB = "google_network_connectivity_hub"
SPOKE = "google_network_connectivity_spoke"
FIREWALL = "google_compute_firewall"
SECURITY_POLICY = "google_compute_security_policy"
INSTANCE_TEMPLATE = "google_compute_instance_template"
HEALTH_CHECK = "google_compute_health_check"
INSTANCE_GROUP_MANAGER = "google_compute_region_instance_group_manager"
AUTOSCALER = "google_compute_region_autoscaler"
CLUSTER = "google_container_cluster"
NODE_POOL = "google_container_node_pool"
RUN_SERVICE = "google_cloud_run_service"
RUN_IAM_MEMBER = "google_cloud_run_service_iam_member"


def display_name(registry: IdentifierRegistry, name: str) -> Interpolation:
    """Cloud-side resource name, parameterised by var.application_name.

    The symbolic name always starts with the application name, so the
    prefix is swapped for the variable and the rest is kept verbatim.
    """
    suffix = name[len(registry.application_name):]
    return Interpolation("${var.application_name}" + suffix)


def region_value(config: Configuration, region: str) -> Any:
    """The primary region goes through var.primary_region; others are literal."""
    if region == config.network.primary_region:
        return VarRef("primary_region")
    return region


def network_ref(registry: IdentifierRegistry, attribute: str = "id") -> Reference:
    return Reference(NETWORK, registry.reserve("network"), attribute)


def subnet_ref(registry: IdentifierRegistry, region: str, attribute: str = "id") -> Reference:
    return Reference(SUBNETWORK, registry.reserve("subnet", region), attribute)


def router_ref(registry: IdentifierRegistry, region: str, attribute: str = "id") -> Reference:
    return Reference(ROUTER, registry.reserve("router", region), attribute)
