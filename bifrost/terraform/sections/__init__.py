"""Section generators, in the order the assembler must run them.

Later sections reference identifiers reserved by earlier ones (subnets,
routers, the network), so the order is part of the contract.
"""

from dataclasses import dataclass
from typing import Callable

from bifrost.models.configuration import Configuration
from bifrost.terraform.declarations import ResourceDeclaration
from bifrost.terraform.registry import IdentifierRegistry
from bifrost.terraform.sections import multi_cloud, network, on_prem, security, workloads

SectionGenerator = Callable[[Configuration, IdentifierRegistry], list[ResourceDeclaration]]


@dataclass(frozen=True)
class Section:
    title: str
    generate: SectionGenerator


SECTIONS: tuple[Section, ...] = (
    Section(network.TITLE, network.generate_network),
    Section(on_prem.TITLE, on_prem.generate_on_prem),
    Section(multi_cloud.TITLE, multi_cloud.generate_multi_cloud),
    Section(security.TITLE, security.generate_security),
    Section(workloads.TITLE, workloads.generate_workloads),
)

__all__ = ["Section", "SectionGenerator", "SECTIONS"]
