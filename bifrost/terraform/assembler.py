"""Template assembler: runs the sections in order and renders main.tf."""

import re
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional

import structlog

from bifrost.config import TemplateSettings
from bifrost.core.errors import (
    DanglingReferenceError,
    NameCollisionError,
    UnresolvedRegionError,
    UnsupportedWorkloadKind,
)
from bifrost.models.configuration import (
    Configuration,
    ConnectionType,
    WorkloadKind,
)
from bifrost.terraform.declarations import OutputDeclaration, ResourceDeclaration
from bifrost.terraform.hcl import (
    Expression,
    Interpolation,
    Reference,
    VarRef,
    quote,
    render_block,
)
from bifrost.terraform.registry import IdentifierRegistry
from bifrost.terraform.sections import SECTIONS
from bifrost.terraform.sections.common import ADDRESS, HUB, network_ref, subnet_ref
from bifrost.terraform.sections.workloads import (
    WORKLOAD_BUILDERS,
    cluster_ranges,
    endpoint_reference,
)
from bifrost.terraform.services import after_services, project_services

log = structlog.get_logger()

# Variables the fixed provider block reads
PREAMBLE_VARIABLES = ("project_id", "primary_region")

_TEMPLATE_VARIABLE = re.compile(r"\$\{var\.([A-Za-z_][A-Za-z0-9_-]*)")


@dataclass(frozen=True)
class AssembledTemplate:
    """The rendered main text plus the structure it was rendered from."""

    text: str
    declarations: tuple[ResourceDeclaration, ...]
    outputs: tuple[OutputDeclaration, ...]
    variable_references: tuple[str, ...]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(d.name for d in self.declarations)

    def section(self, title: str) -> list[ResourceDeclaration]:
        return [d for d in self.declarations if d.section == title]

    def of_kind(self, kind: str) -> list[ResourceDeclaration]:
        return [d for d in self.declarations if d.kind == kind]

    def output(self, name: str) -> Optional[OutputDeclaration]:
        for output in self.outputs:
            if output.name == name:
                return output
        return None


def validate_topology(config: Configuration) -> None:
    """Check the cross-section invariants before anything is generated.

    Raises:
        UnsupportedWorkloadKind: A workload kind has no builder
        UnresolvedRegionError: A workload or subnet region is not in the network
        NameCollisionError: Two workloads, providers or rules share a name
        ConfigurationError: GKE clusters cannot get disjoint address ranges
    """
    known_regions = set(config.network.regions)
    for region in config.network.subnet_cidrs:
        if region not in known_regions:
            raise UnresolvedRegionError(
                region, "network.subnetCidrs", field_path=f"network.subnetCidrs.{region}"
            )

    for position, workload in enumerate(config.workloads):
        if workload.kind not in WORKLOAD_BUILDERS:
            raise UnsupportedWorkloadKind(workload.kind, field_path=f"workloads.{position}.kind")
        if workload.region not in known_regions:
            raise UnresolvedRegionError(
                workload.region, workload.name, field_path=f"workloads.{position}.region"
            )

    _require_unique((w.name for w in config.workloads), "workloads")
    _require_unique(
        (p.name for p in config.connectivity.multi_cloud.providers),
        "connectivity.multiCloud.providers",
    )
    _require_unique(
        (r.name for r in config.security.firewall_rules), "security.firewallRules"
    )

    if any(w.kind == WorkloadKind.ORCHESTRATED for w in config.workloads):
        cluster_ranges(config)


def _require_unique(names: Iterable[str], field_path: str) -> None:
    counts = Counter(names)
    for name, count in counts.items():
        if count > 1:
            raise NameCollisionError(name, field_path=field_path, detail=f"declared {count} times")


def assemble(
    config: Configuration, settings: Optional[TemplateSettings] = None
) -> AssembledTemplate:
    """Generate and render the main Terraform text.

    Either the whole template is produced or an error is raised; no
    partial text is ever returned.

    Args:
        config: Validated configuration
        settings: Version pins for the preamble (defaults if omitted)

    Returns:
        AssembledTemplate with the text and its declarations
    """
    settings = settings or TemplateSettings()
    validate_topology(config)

    registry = IdentifierRegistry(config.application_name)
    services = project_services(config, registry)
    sections = [(services.section, [services])]
    for section in SECTIONS:
        generated = section.generate(config, registry)
        sections.append((section.title, after_services(generated, services)))

    declarations = tuple(d for _, generated in sections for d in generated)
    outputs = tuple(build_outputs(config, registry))
    check_references(declarations, outputs)

    kinds = {d.name: d.kind for d in declarations}
    parts = [render_preamble(config, settings)]
    for title, generated in sections:
        if not generated:
            continue
        blocks = [render_declaration(d, kinds) for d in generated]
        parts.append(f"# {title}\n" + "\n\n".join(blocks))
    if outputs:
        blocks = [render_output(o) for o in outputs]
        parts.append("# Outputs\n" + "\n\n".join(blocks))
    text = "\n\n".join(parts) + "\n"

    variable_references = _variables_used(
        [e for d in declarations for e in d.expressions()]
    )

    log.info(
        "template_assembled",
        application=config.application_name,
        declarations=len(declarations),
        outputs=len(outputs),
    )
    return AssembledTemplate(
        text=text,
        declarations=declarations,
        outputs=outputs,
        variable_references=variable_references,
    )


def build_outputs(config: Configuration, registry: IdentifierRegistry) -> list[OutputDeclaration]:
    """Outputs: network, primary subnet, VPN address, hubs and endpoints."""
    outputs = [
        OutputDeclaration(
            "vpc_network_id", network_ref(registry, "id"), "The ID of the VPC network"
        ),
        OutputDeclaration(
            "vpc_network_name", network_ref(registry, "name"), "The name of the VPC network"
        ),
        OutputDeclaration(
            "primary_subnet_id",
            subnet_ref(registry, config.network.primary_region, "id"),
            "The ID of the primary subnet",
        ),
    ]

    on_prem = config.connectivity.on_prem
    if on_prem.enabled and on_prem.connection_type == ConnectionType.VPN:
        outputs.append(OutputDeclaration(
            "vpn_gateway_ip",
            Reference(ADDRESS, registry.reserve("vpn-address"), "address"),
            "The external IP address of the VPN gateway",
        ))

    providers = config.connectivity.multi_cloud.active_providers
    if providers:
        outputs.append(OutputDeclaration(
            "connectivity_hubs",
            {p.name: Reference(HUB, registry.reserve("hub", index=p.name), "id") for p in providers},
            "Network Connectivity Center hub IDs, keyed by provider",
        ))

    outputs.append(OutputDeclaration(
        "workload_endpoints",
        {w.name: endpoint_reference(registry, w) for w in config.workloads},
        "Endpoints for deployed workloads, keyed by workload",
    ))
    return outputs


def check_references(
    declarations: Iterable[ResourceDeclaration], outputs: Iterable[OutputDeclaration]
) -> None:
    """Every reference must target a declaration of the right kind declared earlier.

    Raises:
        DanglingReferenceError: A reference or depends_on entry does not resolve
        NameCollisionError: Two declarations share a symbolic name
    """
    declared: dict[str, str] = {}

    for declaration in declarations:
        for reference in declaration.references():
            _resolve(reference, declared, declaration.address)
        for dependency in declaration.depends_on:
            if dependency not in declared:
                raise DanglingReferenceError(dependency, declaration.address)
        if declaration.name in declared:
            raise NameCollisionError(declaration.name, detail=declaration.address)
        declared[declaration.name] = declaration.kind

    for output in outputs:
        for reference in output.references():
            _resolve(reference, declared, f"output.{output.name}")


def _resolve(reference: Reference, declared: dict[str, str], owner: str) -> None:
    if declared.get(reference.name) != reference.kind:
        raise DanglingReferenceError(reference.render(), owner)


def _variables_used(expressions: Iterable[Expression]) -> tuple[str, ...]:
    names = set(PREAMBLE_VARIABLES)
    for expression in expressions:
        if isinstance(expression, VarRef):
            names.add(expression.name)
        elif isinstance(expression, Interpolation):
            names.update(_TEMPLATE_VARIABLE.findall(expression.template))
    return tuple(sorted(names))


def render_preamble(config: Configuration, settings: TemplateSettings) -> str:
    """Fixed header: provider requirements and the google and google-beta providers."""
    version = quote(settings.google_provider_version)
    return f"""# Generated Terraform for {config.application_name} distributed application
# Architecture: {config.identity.architecture.value}

terraform {{
  required_version = {quote(settings.terraform_version)}

  required_providers {{
    google = {{
      source  = "hashicorp/google"
      version = {version}
    }}
    google-beta = {{
      source  = "hashicorp/google-beta"
      version = {version}
    }}
  }}
}}

provider "google" {{
  project = var.project_id
  region  = var.primary_region
}}

provider "google-beta" {{
  project = var.project_id
  region  = var.primary_region
}}"""


def render_declaration(declaration: ResourceDeclaration, kinds: dict[str, str]) -> str:
    attributes = dict(declaration.attributes)
    if declaration.depends_on:
        attributes["depends_on"] = [
            Reference(kinds[name], name, "") for name in declaration.depends_on
        ]
    return render_block("resource", (declaration.kind, declaration.name), attributes)


def render_output(output: OutputDeclaration) -> str:
    attributes = {}
    if output.description:
        attributes["description"] = output.description
    attributes["value"] = output.value
    return render_block("output", (output.name,), attributes)
