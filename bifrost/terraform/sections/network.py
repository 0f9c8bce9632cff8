"""Network section: VPC, one subnet and router per region, optional NAT."""

import structlog

from bifrost.models.configuration import Configuration
from bifrost.terraform.declarations import ResourceDeclaration
from bifrost.terraform.hcl import Block, VarRef
from bifrost.terraform.registry import IdentifierRegistry
from bifrost.terraform.sections.common import (
    NETWORK,
    ROUTER,
    ROUTER_NAT,
    SUBNETWORK,
    display_name,
    region_value,
)

log = structlog.get_logger()

TITLE = "Network"

ROUTER_ASN = 64514
NETWORK_MTU = 1460


def generate_network(
    config: Configuration, registry: IdentifierRegistry
) -> list[ResourceDeclaration]:
    """Emit the VPC, per-region subnets and routers, and NAT when enabled."""
    settings = config.network
    declarations = []

    network_name = registry.reserve("network")
    network = ResourceDeclaration(
        NETWORK,
        network_name,
        {
            "name": display_name(registry, network_name),
            "auto_create_subnetworks": False,
            "mtu": NETWORK_MTU,
            "routing_mode": "GLOBAL" if settings.secondary_regions else "REGIONAL",
        },
        section=TITLE,
    )
    declarations.append(network)

    for region in settings.regions:
        name = registry.reserve("subnet", region)
        attributes = {
            "name": display_name(registry, name),
            "ip_cidr_range": _subnet_cidr(config, region),
            "region": region_value(config, region),
            "network": network.ref("id"),
            "private_ip_google_access": VarRef("enable_private_google_access"),
        }
        if settings.flow_logs:
            attributes["log_config"] = Block({
                "aggregation_interval": "INTERVAL_10_MIN",
                "flow_sampling": 0.5,
                "metadata": "INCLUDE_ALL_METADATA",
            })
        declarations.append(ResourceDeclaration(SUBNETWORK, name, attributes, section=TITLE))

    routers = {}
    for region in settings.regions:
        name = registry.reserve("router", region)
        router = ResourceDeclaration(
            ROUTER,
            name,
            {
                "name": display_name(registry, name),
                "region": region_value(config, region),
                "network": network.ref("id"),
                "bgp": Block({"asn": ROUTER_ASN}),
            },
            section=TITLE,
        )
        routers[region] = router
        declarations.append(router)

    if config.security.nat:
        for region in settings.regions:
            name = registry.reserve("nat", region)
            declarations.append(ResourceDeclaration(
                ROUTER_NAT,
                name,
                {
                    "name": display_name(registry, name),
                    "router": routers[region].ref("name"),
                    "region": region_value(config, region),
                    "nat_ip_allocate_option": "AUTO_ONLY",
                    "source_subnetwork_ip_ranges_to_nat": "ALL_SUBNETWORKS_ALL_IP_RANGES",
                    "log_config": Block({"enable": True, "filter": "ERRORS_ONLY"}),
                },
                section=TITLE,
            ))

    log.debug(
        "section_generated",
        section=TITLE,
        regions=len(settings.regions),
        declarations=len(declarations),
    )
    return declarations


def _subnet_cidr(config: Configuration, region: str) -> VarRef:
    if region == config.network.primary_region:
        return VarRef("primary_subnet_cidr")
    return VarRef("secondary_subnet_cidrs", key=region)
