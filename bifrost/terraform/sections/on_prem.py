"""On-premises connectivity: Cloud VPN or an Interconnect attachment."""

import structlog

from bifrost.models.configuration import Configuration, ConnectionType
from bifrost.terraform.declarations import ResourceDeclaration
from bifrost.terraform.hcl import VarRef
from bifrost.terraform.registry import IdentifierRegistry
from bifrost.terraform.sections.common import (
    ADDRESS,
    FORWARDING_RULE,
    INTERCONNECT_ATTACHMENT,
    ROUTE,
    ROUTER_INTERFACE,
    ROUTER_PEER,
    VPN_GATEWAY,
    VPN_TUNNEL,
    display_name,
    network_ref,
    router_ref,
)

log = structlog.get_logger()

TITLE = "On-Premises Connectivity"

# IPsec needs ESP plus IKE on UDP 500 and NAT-T on UDP 4500
VPN_FORWARDING_RULES = (
    ("esp", "ESP", None),
    ("udp500", "UDP", "500"),
    ("udp4500", "UDP", "4500"),
)

ON_PREM_ROUTE_PRIORITY = 1000
ADVERTISED_ROUTE_PRIORITY = 100


def generate_on_prem(
    config: Configuration, registry: IdentifierRegistry
) -> list[ResourceDeclaration]:
    """Emit on-premises connectivity resources when enabled."""
    on_prem = config.connectivity.on_prem
    if not on_prem.enabled:
        return []

    if on_prem.connection_type == ConnectionType.VPN:
        declarations = _vpn(registry)
    else:
        declarations = _attachment(config, registry)

    log.debug(
        "section_generated",
        section=TITLE,
        connection_type=on_prem.connection_type.value,
        declarations=len(declarations),
    )
    return declarations


def _vpn(registry: IdentifierRegistry) -> list[ResourceDeclaration]:
    region = VarRef("primary_region")

    gateway_name = registry.reserve("vpn-gateway")
    gateway = ResourceDeclaration(
        VPN_GATEWAY,
        gateway_name,
        {
            "name": display_name(registry, gateway_name),
            "network": network_ref(registry, "id"),
            "region": region,
        },
        section=TITLE,
    )

    address_name = registry.reserve("vpn-address")
    address = ResourceDeclaration(
        ADDRESS,
        address_name,
        {
            "name": display_name(registry, address_name),
            "region": region,
        },
        section=TITLE,
    )

    rules = []
    for label, protocol, port in VPN_FORWARDING_RULES:
        name = registry.reserve("vpn-rule", index=label)
        attributes = {
            "name": display_name(registry, name),
            "ip_protocol": protocol,
        }
        if port:
            attributes["port_range"] = port
        attributes.update({
            "ip_address": address.ref("address"),
            "target": gateway.ref("id"),
            "region": region,
        })
        rules.append(ResourceDeclaration(FORWARDING_RULE, name, attributes, section=TITLE))

    tunnel_name = registry.reserve("vpn-tunnel")
    tunnel = ResourceDeclaration(
        VPN_TUNNEL,
        tunnel_name,
        {
            "name": display_name(registry, tunnel_name),
            "region": region,
            "peer_ip": VarRef("on_prem_gateway_ip"),
            "shared_secret": VarRef("vpn_shared_secret"),
            "target_vpn_gateway": gateway.ref("id"),
            "local_traffic_selector": [VarRef("vpc_cidr")],
            "remote_traffic_selector": [VarRef("on_prem_cidr")],
        },
        depends_on=tuple(rule.name for rule in rules),
        section=TITLE,
    )

    route_name = registry.reserve("on-prem-route")
    route = ResourceDeclaration(
        ROUTE,
        route_name,
        {
            "name": display_name(registry, route_name),
            "dest_range": VarRef("on_prem_cidr"),
            "network": network_ref(registry, "name"),
            "next_hop_vpn_tunnel": tunnel.ref("id"),
            "priority": ON_PREM_ROUTE_PRIORITY,
        },
        section=TITLE,
    )

    return [gateway, address, *rules, tunnel, route]


def _attachment(config: Configuration, registry: IdentifierRegistry) -> list[ResourceDeclaration]:
    on_prem = config.connectivity.on_prem
    primary = config.network.primary_region
    region = VarRef("primary_region")

    attachment_name = registry.reserve("interconnect")
    attributes = {
        "name": display_name(registry, attachment_name),
        "type": "DEDICATED" if on_prem.connection_type == ConnectionType.DEDICATED else "PARTNER",
        "router": router_ref(registry, primary, "id"),
        "region": region,
        "edge_availability_domain": "AVAILABILITY_DOMAIN_1",
    }
    if on_prem.connection_type == ConnectionType.PARTNER:
        attributes["admin_enabled"] = True
    if on_prem.encryption:
        attributes["encryption"] = "IPSEC"
    attachment = ResourceDeclaration(INTERCONNECT_ATTACHMENT, attachment_name, attributes, section=TITLE)

    interface_name = registry.reserve("router-interface")
    interface = ResourceDeclaration(
        ROUTER_INTERFACE,
        interface_name,
        {
            "name": display_name(registry, interface_name),
            "router": router_ref(registry, primary, "name"),
            "region": region,
            "ip_range": VarRef("interconnect_ip_range"),
            "interconnect_attachment": attachment.ref("self_link"),
        },
        section=TITLE,
    )

    peer_name = registry.reserve("bgp-peer")
    peer = ResourceDeclaration(
        ROUTER_PEER,
        peer_name,
        {
            "name": display_name(registry, peer_name),
            "router": router_ref(registry, primary, "name"),
            "region": region,
            "peer_ip_address": VarRef("on_prem_bgp_peer_ip"),
            "peer_asn": VarRef("on_prem_bgp_asn"),
            "advertised_route_priority": ADVERTISED_ROUTE_PRIORITY,
            "interface": interface.ref("name"),
        },
        section=TITLE,
    )

    return [attachment, interface, peer]
