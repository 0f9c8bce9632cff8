"""Multi-cloud connectivity: one hub and one spoke per external provider."""

import structlog

from bifrost.models.configuration import Configuration
from bifrost.terraform.declarations import ResourceDeclaration
from bifrost.terraform.hcl import Block, VarRef
from bifrost.terraform.registry import IdentifierRegistry
from bifrost.terraform.sections.common import HUB, SPOKE, display_name, network_ref

log = structlog.get_logger()

TITLE = "Multi-Cloud Connectivity"


def generate_multi_cloud(
    config: Configuration, registry: IdentifierRegistry
) -> list[ResourceDeclaration]:
    """Emit a hub and spoke per enabled provider.

    Names are keyed by provider, not list position, so reordering the
    provider list leaves every generated name unchanged.
    """
    declarations = []

    for provider in config.connectivity.multi_cloud.active_providers:
        label = provider.name.upper()
        description = f"Hub for {label} connectivity"
        if provider.regions:
            description += f" ({', '.join(provider.regions)})"
        labels = {
            "provider": provider.name,
            "redundancy": provider.redundancy.value,
        }

        hub_name = registry.reserve("hub", index=provider.name)
        hub = ResourceDeclaration(
            HUB,
            hub_name,
            {
                "name": display_name(registry, hub_name),
                "description": description,
                "labels": labels,
            },
            section=TITLE,
        )

        spoke_name = registry.reserve("spoke", index=provider.name)
        spoke = ResourceDeclaration(
            SPOKE,
            spoke_name,
            {
                "name": display_name(registry, spoke_name),
                "location": VarRef("primary_region"),
                "description": f"Spoke for {label} connectivity",
                "hub": hub.ref("id"),
                "linked_vpc_network": Block({"uri": network_ref(registry, "id")}),
                "labels": labels,
            },
            section=TITLE,
        )
        declarations.extend([hub, spoke])

    if declarations:
        log.debug("section_generated", section=TITLE, declarations=len(declarations))
    return declarations
