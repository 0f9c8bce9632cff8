"""Configuration model consumed by the template generator.

The configuration is an immutable tree with five sections: identity,
network, connectivity, security and workloads. Keys are accepted in the
camelCase form used by the dashboard (``primaryRegion``) as well as the
snake_case field names. Per-section invariants (naming-safe names, CIDR
syntax, scaling bounds) are enforced here; cross-section invariants such as
workload regions are checked by the assembler before generation starts.
"""

import ipaddress
import re
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
import structlog

from bifrost.core.errors import (
    BifrostError,
    ConfigurationError,
    UnsupportedWorkloadKind,
)

log = structlog.get_logger()

APPLICATION_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9-]*$")
NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*$")

DEFAULT_PROJECT_ID = "my-gcp-project"

IDENTITY_KEYS = ("projectId", "project_id", "applicationName", "application_name", "architecture")


def _naming_safe(value: str, what: str, pattern: re.Pattern = NAME_PATTERN) -> str:
    if not pattern.match(value):
        raise ValueError(
            f"{what} {value!r} must contain only lowercase letters, digits and hyphens"
        )
    return value


def _cidr(value: str) -> str:
    try:
        ipaddress.ip_network(value, strict=False)
    except ValueError as e:
        raise ValueError(f"invalid CIDR range {value!r}: {e}") from e
    return value


class Architecture(str, Enum):
    CONSOLIDATED = "consolidated"
    SEGMENTED = "segmented"


class ConnectionType(str, Enum):
    VPN = "vpn"
    DEDICATED = "dedicated"
    PARTNER = "partner"


class Redundancy(str, Enum):
    HIGH = "high"
    LOW = "low"


class Direction(str, Enum):
    INGRESS = "INGRESS"
    EGRESS = "EGRESS"


class WorkloadKind(str, Enum):
    COMPUTE = "compute"
    ORCHESTRATED = "orchestrated"
    SERVERLESS = "serverless"


# Spellings used by the dashboard wizards
CONNECTION_TYPE_ALIASES = {
    "cloud-vpn": "vpn",
    "dedicated-interconnect": "dedicated",
    "partner-interconnect": "partner",
}

WORKLOAD_KIND_ALIASES = {
    "compute-engine": "compute",
    "gce": "compute",
    "gke": "orchestrated",
    "kubernetes": "orchestrated",
    "cloud-run": "serverless",
}


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Identity(_Model):
    """Project identity; the application name prefixes every generated name."""

    project_id: str = Field(default=DEFAULT_PROJECT_ID, min_length=1)
    application_name: str = Field(min_length=1, max_length=40)
    architecture: Architecture = Architecture.CONSOLIDATED

    @field_validator("application_name")
    @classmethod
    def application_name_is_naming_safe(cls, v):
        return _naming_safe(v, "applicationName", APPLICATION_NAME_PATTERN)


class NetworkSettings(_Model):
    """Regions, CIDR ranges and subnet feature flags."""

    primary_region: str
    secondary_regions: tuple[str, ...] = ()
    vpc_cidr: str = "10.0.0.0/16"
    primary_subnet_cidr: Optional[str] = None
    subnet_cidrs: dict[str, str] = Field(default_factory=dict)
    private_access: bool = Field(
        default=True,
        validation_alias=AliasChoices("privateAccess", "enablePrivateGoogleAccess", "private_access"),
    )
    flow_logs: bool = Field(
        default=False,
        validation_alias=AliasChoices("flowLogs", "enableFlowLogs", "flow_logs"),
    )

    @field_validator("primary_region")
    @classmethod
    def primary_region_is_naming_safe(cls, v):
        return _naming_safe(v, "region")

    @field_validator("secondary_regions")
    @classmethod
    def secondary_regions_are_naming_safe(cls, v):
        for region in v:
            _naming_safe(region, "region")
        if len(set(v)) != len(v):
            raise ValueError("secondaryRegions must not contain duplicates")
        return v

    @field_validator("vpc_cidr", "primary_subnet_cidr")
    @classmethod
    def cidr_is_well_formed(cls, v):
        return v if v is None else _cidr(v)

    @field_validator("subnet_cidrs")
    @classmethod
    def subnet_cidrs_are_well_formed(cls, v):
        for cidr in v.values():
            _cidr(cidr)
        return v

    @model_validator(mode="after")
    def every_region_has_a_subnet(self):
        if self.primary_region in self.secondary_regions:
            raise ValueError(
                f"primary region {self.primary_region!r} must not be listed in secondaryRegions"
            )
        for region in self.regions:
            if self.subnet_cidr(region) is None:
                raise ValueError(f"no subnet CIDR configured for region {region!r}")
        return self

    @property
    def regions(self) -> tuple[str, ...]:
        """Primary region first, then secondary regions in declared order."""
        return (self.primary_region, *self.secondary_regions)

    def subnet_cidr(self, region: str) -> Optional[str]:
        if region == self.primary_region and self.primary_subnet_cidr:
            return self.primary_subnet_cidr
        return self.subnet_cidrs.get(region)


class OnPremConnectivity(_Model):
    enabled: bool = False
    connection_type: ConnectionType = Field(
        default=ConnectionType.VPN,
        validation_alias=AliasChoices("type", "connectionType", "connection_type"),
    )
    redundancy: Redundancy = Redundancy.LOW
    encryption: bool = Field(
        default=False,
        validation_alias=AliasChoices("encryption", "macSecEnabled", "enableMacsec"),
    )

    @field_validator("connection_type", mode="before")
    @classmethod
    def normalise_connection_type(cls, v):
        if isinstance(v, str):
            v = v.lower()
            return CONNECTION_TYPE_ALIASES.get(v, v)
        return v

    @field_validator("redundancy", mode="before")
    @classmethod
    def normalise_redundancy(cls, v):
        return v.lower() if isinstance(v, str) else v

    @property
    def is_attachment(self) -> bool:
        return self.connection_type in (ConnectionType.DEDICATED, ConnectionType.PARTNER)


class MultiCloudProvider(_Model):
    name: str
    regions: tuple[str, ...] = ()
    redundancy: Redundancy = Redundancy.LOW
    enabled: bool = True

    @field_validator("name", mode="before")
    @classmethod
    def provider_name_is_naming_safe(cls, v):
        if isinstance(v, str):
            return _naming_safe(v.lower(), "provider name")
        return v


class MultiCloudConnectivity(_Model):
    enabled: bool = False
    providers: tuple[MultiCloudProvider, ...] = ()

    @property
    def active_providers(self) -> tuple[MultiCloudProvider, ...]:
        """Providers that produce hub and spoke resources."""
        if not self.enabled:
            return ()
        return tuple(p for p in self.providers if p.enabled)


class SiteToSiteConnectivity(_Model):
    enabled: bool = False
    data_transfer: bool = Field(
        default=False,
        validation_alias=AliasChoices("dataTransfer", "enableDataTransfer", "data_transfer"),
    )


class Connectivity(_Model):
    on_prem: OnPremConnectivity = Field(
        default_factory=OnPremConnectivity,
        validation_alias=AliasChoices("onPrem", "onPremConnectivity", "on_prem"),
    )
    multi_cloud: MultiCloudConnectivity = Field(
        default_factory=MultiCloudConnectivity,
        validation_alias=AliasChoices("multiCloud", "multiCloudConnectivity", "multi_cloud"),
    )
    site_to_site: SiteToSiteConnectivity = Field(
        default_factory=SiteToSiteConnectivity,
        validation_alias=AliasChoices("siteToSite", "siteToSiteConnectivity", "site_to_site"),
    )


class AllowedTraffic(_Model):
    protocol: str = Field(min_length=1)
    ports: tuple[str, ...] = ()

    @field_validator("ports", mode="before")
    @classmethod
    def ports_as_strings(cls, v):
        if isinstance(v, (list, tuple)):
            return tuple(str(port) for port in v)
        return v


class FirewallRule(_Model):
    name: str
    direction: Direction = Direction.INGRESS
    priority: int = Field(default=1000, ge=0, le=65535)
    source_ranges: tuple[str, ...] = ()
    target_tags: tuple[str, ...] = ()
    allowed: tuple[AllowedTraffic, ...] = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def rule_name_is_naming_safe(cls, v):
        return _naming_safe(v, "firewall rule name")

    @field_validator("direction", mode="before")
    @classmethod
    def normalise_direction(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator("source_ranges")
    @classmethod
    def ranges_are_well_formed(cls, v):
        for cidr in v:
            _cidr(cidr)
        return v


class SecuritySettings(_Model):
    armor: bool = Field(default=False, validation_alias=AliasChoices("armor", "enableCloudArmor"))
    nat: bool = Field(
        default=False,
        validation_alias=AliasChoices("nat", "enableCloudNat", "enableCloudNAT"),
    )
    private_service_connect: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "privateServiceConnect", "enablePrivateServiceConnect", "private_service_connect"
        ),
    )
    firewall_rules: tuple[FirewallRule, ...] = ()


class Scaling(_Model):
    min_instances: int = Field(
        default=1, ge=0, validation_alias=AliasChoices("min", "minInstances", "min_instances")
    )
    max_instances: int = Field(
        default=3, ge=1, validation_alias=AliasChoices("max", "maxInstances", "max_instances")
    )

    @model_validator(mode="after")
    def bounds_are_ordered(self):
        if self.max_instances < self.min_instances:
            raise ValueError(
                f"scaling max ({self.max_instances}) is below min ({self.min_instances})"
            )
        return self


class Workload(_Model):
    name: str
    kind: WorkloadKind = Field(validation_alias=AliasChoices("kind", "type"))
    region: str
    scaling: Scaling = Field(default_factory=Scaling)
    machine_type: Optional[str] = None
    disk_size_gb: Optional[int] = Field(
        default=None, gt=0, validation_alias=AliasChoices("diskSizeGb", "diskSize", "disk_size_gb")
    )

    @field_validator("name")
    @classmethod
    def workload_name_is_naming_safe(cls, v):
        return _naming_safe(v, "workload name")

    @field_validator("kind", mode="before")
    @classmethod
    def normalise_kind(cls, v):
        if isinstance(v, str):
            v = v.lower()
            return WORKLOAD_KIND_ALIASES.get(v, v)
        return v


class Configuration(_Model):
    """The validated input describing a desired network topology."""

    identity: Identity
    network: NetworkSettings
    connectivity: Connectivity = Field(default_factory=Connectivity)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    workloads: tuple[Workload, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def lift_identity(cls, data):
        """Accept applicationName/projectId at the top level."""
        if isinstance(data, Mapping) and "identity" not in data:
            identity = {key: data[key] for key in IDENTITY_KEYS if key in data}
            if identity:
                data = {k: v for k, v in data.items() if k not in IDENTITY_KEYS}
                data["identity"] = identity
        return data

    @property
    def application_name(self) -> str:
        return self.identity.application_name


def parse_configuration(data: Any) -> Configuration:
    """Validate a raw mapping into a Configuration.

    Args:
        data: Mapping as produced by the dashboard or a YAML/JSON file

    Returns:
        Immutable Configuration

    Raises:
        UnsupportedWorkloadKind: A workload kind is not recognised
        ConfigurationError: Any other missing or invalid field
    """
    if isinstance(data, Configuration):
        return data

    try:
        config = Configuration.model_validate(data)
    except ValidationError as e:
        raise translate_validation_error(e) from e

    log.debug(
        "configuration_parsed",
        application=config.application_name,
        regions=len(config.network.regions),
        workloads=len(config.workloads),
    )
    return config


def translate_validation_error(error: ValidationError) -> BifrostError:
    """Map the first pydantic error onto the Bifrost error taxonomy."""
    details = error.errors()
    if not details:
        return ConfigurationError(str(error))

    first = details[0]
    loc = first.get("loc", ())
    field_path = ".".join(str(part) for part in loc) or None
    value = None if first.get("type") == "missing" else first.get("input")

    if (
        len(loc) >= 3
        and loc[0] == "workloads"
        and loc[-1] in ("kind", "type")
        and first.get("type") == "enum"
    ):
        return UnsupportedWorkloadKind(value, field_path=field_path)

    return ConfigurationError(
        f"Invalid configuration: {first.get('msg', 'invalid value')}",
        field_path=field_path,
        value=value,
    )
