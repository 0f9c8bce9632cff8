"""Error taxonomy for Bifrost.

Every failure raised while generating a template is a ``BifrostError``
carrying enough context (field path, offending value, suggestion) for the
caller to render a user-facing message. Generation errors are deterministic
logic errors and are never retried; only the pricing lookup has a transient
failure mode, and that one is absorbed by the cost estimator.
"""

from enum import Enum
from typing import Any, Optional
import structlog

log = structlog.get_logger()


class ErrorCategory(Enum):
    """Categories of errors for handling decisions."""

    CONFIGURATION = "configuration"  # Missing field, bad enum, bad CIDR
    TOPOLOGY = "topology"            # Region or reference does not resolve
    NAMING = "naming"                # Two resources share a symbolic name
    TRANSIENT = "transient"          # Pricing service unreachable


class BifrostError(Exception):
    """Base class for all Bifrost errors.

    Attributes:
        message: Human-readable description of the failure
        field_path: Dotted path into the configuration, when known
        value: The offending value, when known
        suggestion: Actionable hint for fixing the input
    """

    category = ErrorCategory.CONFIGURATION

    def __init__(
        self,
        message: str,
        field_path: Optional[str] = None,
        value: Any = None,
        suggestion: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.field_path = field_path
        self.value = value
        self.suggestion = suggestion

    @property
    def retryable(self) -> bool:
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message]
        if self.field_path:
            parts.append(f"at {self.field_path}")
        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")
        return " | ".join(parts)


class ConfigurationError(BifrostError):
    """A required field is missing or a value is not recognised."""


class UnsupportedWorkloadKind(BifrostError):
    """A workload kind is not one of compute, orchestrated or serverless."""

    def __init__(self, kind: Any, field_path: Optional[str] = None):
        super().__init__(
            f"Unsupported workload kind: {kind!r}",
            field_path=field_path,
            value=kind,
            suggestion="Use one of: compute, orchestrated, serverless",
        )
        self.kind = kind


class UnresolvedRegionError(BifrostError):
    """A workload or feature references a region absent from the network."""

    category = ErrorCategory.TOPOLOGY

    def __init__(self, region: str, owner: str, field_path: Optional[str] = None):
        super().__init__(
            f"Region {region!r} used by {owner!r} is not declared in the network",
            field_path=field_path,
            value=region,
            suggestion="Add the region to network.secondaryRegions or use the primary region",
        )
        self.region = region
        self.owner = owner


class NameCollisionError(BifrostError):
    """Two logical resources resolve to the same symbolic name."""

    category = ErrorCategory.NAMING

    def __init__(self, name: str, field_path: Optional[str] = None, detail: str = ""):
        message = f"Symbolic name {name!r} is already in use"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(
            message,
            field_path=field_path,
            value=name,
            suggestion="Give workloads, providers and firewall rules distinct names",
        )
        self.name = name


class DanglingReferenceError(BifrostError):
    """A generated reference points at nothing declared before it."""

    category = ErrorCategory.TOPOLOGY

    def __init__(self, reference: str, owner: str):
        super().__init__(
            f"{owner} references undeclared {reference}",
            value=reference,
        )
        self.reference = reference
        self.owner = owner


class PricingUnavailableError(BifrostError):
    """The live pricing service could not produce an estimate."""

    category = ErrorCategory.TRANSIENT


def describe_error(error: Exception) -> str:
    """Render any exception raised by the generator as a one-line message.

    Args:
        error: The exception to describe

    Returns:
        A message suitable for showing to the person who wrote the configuration
    """
    if isinstance(error, BifrostError):
        label = error.category.value.capitalize()
        return f"{label} error: {error}"

    log.debug("unclassified_error", error_type=type(error).__name__, error=str(error))
    return f"Unexpected error: {error}"
