"""Security section: firewall rules and an optional Cloud Armor policy."""

import structlog

from bifrost.models.configuration import Configuration, Direction, FirewallRule
from bifrost.terraform.declarations import ResourceDeclaration
from bifrost.terraform.hcl import Block
from bifrost.terraform.registry import IdentifierRegistry
from bifrost.terraform.sections.common import (
    FIREWALL,
    SECURITY_POLICY,
    display_name,
    network_ref,
)

log = structlog.get_logger()

TITLE = "Security"

DEFAULT_ALLOW_PRIORITY = 1000
# Largest signed 32-bit value; the default deny rule is always evaluated last
MAX_RULE_PRIORITY = 2**31 - 1


def generate_security(
    config: Configuration, registry: IdentifierRegistry
) -> list[ResourceDeclaration]:
    """Emit one firewall per rule and, with armor on, a security policy."""
    security = config.security
    declarations = [_firewall(registry, rule) for rule in security.firewall_rules]

    if security.armor:
        name = registry.reserve("security-policy")
        declarations.append(ResourceDeclaration(
            SECURITY_POLICY,
            name,
            {
                "name": display_name(registry, name),
                "description": f"Security policy for {config.application_name}",
                "rule": [
                    _policy_rule("allow", DEFAULT_ALLOW_PRIORITY, "Default allow rule"),
                    _policy_rule("deny(403)", MAX_RULE_PRIORITY, "Default deny rule"),
                ],
                "adaptive_protection_config": Block({
                    "layer_7_ddos_defense_config": Block({"enable": True}),
                }),
            },
            section=TITLE,
        ))

    log.debug(
        "section_generated",
        section=TITLE,
        firewall_rules=len(security.firewall_rules),
        armor=security.armor,
    )
    return declarations


def _firewall(registry: IdentifierRegistry, rule: FirewallRule) -> ResourceDeclaration:
    name = registry.reserve("firewall", index=rule.name)
    attributes = {
        "name": display_name(registry, name),
        "network": network_ref(registry, "name"),
        "direction": rule.direction.value,
        "priority": rule.priority,
    }
    if rule.source_ranges:
        # Egress rules match on destination, ingress rules on source
        key = "source_ranges" if rule.direction == Direction.INGRESS else "destination_ranges"
        attributes[key] = list(rule.source_ranges)
    if rule.target_tags:
        attributes["target_tags"] = list(rule.target_tags)
    if rule.allowed:
        blocks = []
        for allowed in rule.allowed:
            allow = {"protocol": allowed.protocol}
            if allowed.ports:
                allow["ports"] = list(allowed.ports)
            blocks.append(Block(allow))
        attributes["allow"] = blocks
    return ResourceDeclaration(FIREWALL, name, attributes, section=TITLE)


def _policy_rule(action: str, priority: int, description: str) -> Block:
    return Block({
        "action": action,
        "priority": priority,
        "match": Block({
            "versioned_expr": "SRC_IPS_V1",
            "config": Block({"src_ip_ranges": ["*"]}),
        }),
        "description": description,
    })
