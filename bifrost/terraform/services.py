"""Project services: the Google APIs a generated template needs enabled."""

import dataclasses
from typing import Iterable

from bifrost.models.configuration import Configuration, WorkloadKind
from bifrost.terraform.declarations import ResourceDeclaration
from bifrost.terraform.hcl import Raw, VarRef, render_value
from bifrost.terraform.registry import IdentifierRegistry

TITLE = "Required APIs"

PROJECT_SERVICE = "google_project_service"

REQUIRED_APIS = (
    "compute.googleapis.com",
    "container.googleapis.com",
    "servicenetworking.googleapis.com",
    "networkconnectivity.googleapis.com",
    "dns.googleapis.com",
    "cloudresourcemanager.googleapis.com",
)
SERVERLESS_API = "run.googleapis.com"


def required_apis(config: Configuration) -> tuple[str, ...]:
    apis = list(REQUIRED_APIS)
    if any(w.kind == WorkloadKind.SERVERLESS for w in config.workloads):
        apis.append(SERVERLESS_API)
    return tuple(apis)


def project_services(config: Configuration, registry: IdentifierRegistry) -> ResourceDeclaration:
    """A single for_each resource enabling every API in required_apis."""
    name = registry.reserve("required-apis")
    return ResourceDeclaration(
        PROJECT_SERVICE,
        name,
        {
            "for_each": Raw(f"toset({render_value(list(required_apis(config)))})"),
            "project": VarRef("project_id"),
            "service": Raw("each.value"),
            "disable_dependent_services": False,
            "disable_on_destroy": False,
        },
        section=TITLE,
    )


def after_services(
    declarations: Iterable[ResourceDeclaration], services: ResourceDeclaration
) -> list[ResourceDeclaration]:
    """Order root resources after the API enablement.

    A declaration that references nothing and depends on nothing would
    otherwise be created in parallel with the services it needs.
    """
    ordered = []
    for declaration in declarations:
        if declaration.depends_on or next(declaration.references(), None) is not None:
            ordered.append(declaration)
        else:
            ordered.append(dataclasses.replace(declaration, depends_on=(services.name,)))
    return ordered
