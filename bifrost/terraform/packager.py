"""Artifact packager: main text, variable declarations, defaults and README."""

from dataclasses import dataclass
from typing import Iterable

import structlog

from bifrost.core.errors import DanglingReferenceError
from bifrost.models.configuration import Configuration, ConnectionType
from bifrost.terraform.assembler import AssembledTemplate
from bifrost.terraform.hcl import Raw, render_block, render_key, render_value
from bifrost.terraform.variables import Variable

log = structlog.get_logger()

MAIN_FILE = "main.tf"
VARIABLES_FILE = "variables.tf"
DEFAULTS_FILE = "terraform.tfvars"
README_FILE = "README.md"


@dataclass(frozen=True)
class ArtifactBundle:
    """The four text artifacts of one generation run."""

    main: str
    variables: str
    defaults: str
    documentation: str

    def files(self) -> dict[str, str]:
        """Artifacts keyed by the file name they are written to."""
        return {
            MAIN_FILE: self.main,
            VARIABLES_FILE: self.variables,
            DEFAULTS_FILE: self.defaults,
            README_FILE: self.documentation,
        }


def package(
    assembled: AssembledTemplate, variables: list[Variable], config: Configuration
) -> ArtifactBundle:
    """Bundle the assembled template with its variables and documentation.

    Raises:
        DanglingReferenceError: The main text uses a variable that is not declared
    """
    declared = {v.name for v in variables}
    for name in assembled.variable_references:
        if name not in declared:
            raise DanglingReferenceError(f"var.{name}", MAIN_FILE)

    bundle = ArtifactBundle(
        main=assembled.text,
        variables=render_variables(variables),
        defaults=render_defaults(variables),
        documentation=render_readme(config, variables, assembled),
    )
    log.debug("artifacts_packaged", variables=len(variables))
    return bundle


def render_variables(variables: Iterable[Variable]) -> str:
    blocks = []
    for variable in variables:
        attributes = {
            "type": Raw(variable.type.value),
            "description": variable.description,
            "default": variable.default,
        }
        if variable.sensitive:
            attributes["sensitive"] = True
        blocks.append(render_block("variable", (variable.name,), attributes))
    return "\n\n".join(blocks) + "\n"


def render_defaults(variables: Iterable[Variable]) -> str:
    """terraform.tfvars with one assignment per variable."""
    variables = list(variables)
    width = max((len(render_key(v.name)) for v in variables), default=0)
    lines = [f"{render_key(v.name).ljust(width)} = {render_value(v.default)}" for v in variables]
    return "\n".join(lines) + "\n"


def _features(config: Configuration) -> list[str]:
    features = []
    on_prem = config.connectivity.on_prem
    if on_prem.enabled:
        label = {
            ConnectionType.VPN: "Cloud VPN",
            ConnectionType.DEDICATED: "Dedicated Interconnect",
            ConnectionType.PARTNER: "Partner Interconnect",
        }[on_prem.connection_type]
        features.append(f"On-premises connectivity ({label}, {on_prem.redundancy.value} redundancy)")
    providers = config.connectivity.multi_cloud.active_providers
    if providers:
        names = ", ".join(p.name for p in providers)
        features.append(f"Multi-cloud connectivity ({names})")
    if config.connectivity.site_to_site.enabled and config.connectivity.site_to_site.data_transfer:
        features.append("Site-to-site data transfer")
    if config.network.private_access:
        features.append("Private Google access")
    if config.network.flow_logs:
        features.append("VPC flow logs")
    if config.security.nat:
        features.append("Cloud NAT")
    if config.security.armor:
        features.append("Cloud Armor")
    if config.security.private_service_connect:
        features.append("Private Service Connect")
    return features


def render_readme(
    config: Configuration, variables: Iterable[Variable], assembled: AssembledTemplate
) -> str:
    """Operator documentation for the generated module."""
    name = config.application_name
    network = config.network

    features = _features(config) or ["None beyond the base network"]
    feature_lines = "\n".join(f"- {feature}" for feature in features)

    region_lines = [f"- {network.primary_region} (primary): {network.subnet_cidr(network.primary_region)}"]
    region_lines.extend(
        f"- {region}: {network.subnet_cidr(region)}" for region in network.secondary_regions
    )
    region_text = "\n".join(region_lines)

    placeholders = [v for v in variables if v.placeholder]
    if placeholders:
        override_lines = "\n".join(
            f"- `{v.name}`: {v.description}" + (" (sensitive)" if v.sensitive else "")
            for v in placeholders
        )
    else:
        override_lines = "No placeholder values; the defaults come from your configuration."

    workload_lines = "\n".join(
        f"- `{w.name}` ({w.kind.value}, {w.region})" for w in config.workloads
    )
    output_lines = "\n".join(f"- `{o.name}`: {o.description}" for o in assembled.outputs)

    return f"""# {name} Network Infrastructure

Terraform configuration for the {name} distributed application on Google Cloud.
Architecture: {config.identity.architecture.value}

## Prerequisites

- Terraform CLI
- Google Cloud SDK configured for project `{config.identity.project_id}`
- Permissions to manage networking and compute resources

## Enabled Features

{feature_lines}

## Regions

{region_text}

## Workloads

Workload endpoints: {len(config.workloads)}
{workload_lines}

## Values to Override

{override_lines}

Set these in `{DEFAULTS_FILE}` before applying.

## Usage

1. Initialize Terraform:
   ```bash
   terraform init
   ```

2. Review the plan:
   ```bash
   terraform plan -var-file={DEFAULTS_FILE}
   ```

3. Apply the configuration:
   ```bash
   terraform apply -var-file={DEFAULTS_FILE}
   ```

4. Destroy resources:
   ```bash
   terraform destroy -var-file={DEFAULTS_FILE}
   ```

## Outputs

{output_lines}
"""

