"""Resource and output declarations produced by the section generators."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from bifrost.terraform.hcl import Expression, Reference, iter_expressions


@dataclass(frozen=True)
class ResourceDeclaration:
    """One generated resource block.

    Attributes:
        kind: Terraform resource type, e.g. ``google_compute_network``
        name: Symbolic name issued by the identifier registry
        attributes: Ordered attribute map; values may nest references
        depends_on: Symbolic names this resource must be created after
        section: Title of the section generator that produced it
    """

    kind: str
    name: str
    attributes: Mapping[str, Any] = field(default_factory=dict)
    depends_on: tuple[str, ...] = ()
    section: str = ""

    def __post_init__(self):
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))
        object.__setattr__(self, "depends_on", tuple(self.depends_on))

    def ref(self, attribute: str = "id") -> Reference:
        """Structured reference to one of this resource's attributes."""
        return Reference(self.kind, self.name, attribute)

    @property
    def address(self) -> str:
        return f"{self.kind}.{self.name}"

    def expressions(self) -> Iterator[Expression]:
        for value in self.attributes.values():
            yield from iter_expressions(value)

    def references(self) -> Iterator[Reference]:
        for expression in self.expressions():
            if isinstance(expression, Reference):
                yield expression


@dataclass(frozen=True)
class OutputDeclaration:
    """A named output exposing a reference (or a map of references)."""

    name: str
    value: Any
    description: str = ""

    def references(self) -> Iterator[Reference]:
        for expression in iter_expressions(self.value):
            if isinstance(expression, Reference):
                yield expression
