"""Workload section: compute groups, GKE clusters and Cloud Run services."""

import ipaddress
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from bifrost.core.errors import (
    ConfigurationError,
    UnresolvedRegionError,
    UnsupportedWorkloadKind,
)
from bifrost.models.configuration import Configuration, Workload, WorkloadKind
from bifrost.terraform.declarations import ResourceDeclaration
from bifrost.terraform.hcl import Block, Interpolation, Reference, VarRef
from bifrost.terraform.registry import IdentifierRegistry
from bifrost.terraform.sections.common import (
    AUTOSCALER,
    CLUSTER,
    HEALTH_CHECK,
    INSTANCE_GROUP_MANAGER,
    INSTANCE_TEMPLATE,
    NODE_POOL,
    RUN_IAM_MEMBER,
    RUN_SERVICE,
    display_name,
    network_ref,
    region_value,
    subnet_ref,
)

log = structlog.get_logger()

TITLE = "Workloads"

DEFAULT_MACHINE_TYPE = "e2-medium"
DEFAULT_INSTANCE_DISK_GB = 20
DEFAULT_NODE_DISK_GB = 50
SOURCE_IMAGE = "debian-cloud/debian-11"
SERVERLESS_IMAGE = "gcr.io/cloudrun/hello"
SERVERLESS_PORT = 8080

# Pod and service ranges are drawn from these /16 blocks in order, skipping
# any that overlap the network.
CLUSTER_RANGE_CANDIDATES = (
    *(f"10.{n}.0.0/16" for n in range(1, 32)),
    *(f"172.{n}.0.0/16" for n in range(20, 32)),
    *(f"100.{n}.0.0/16" for n in range(64, 80)),
)
# Control-plane /28 blocks come from the first pool with room left.
CONTROL_PLANE_POOLS = ("172.16.0.0/24", "192.168.255.0/24", "10.255.255.0/24")
CONTROL_PLANE_PREFIX = 28


def generate_workloads(
    config: Configuration, registry: IdentifierRegistry
) -> list[ResourceDeclaration]:
    """Emit the resources for every workload, in workload order."""
    declarations = []
    known_regions = set(config.network.regions)

    for position, workload in enumerate(config.workloads):
        if workload.region not in known_regions:
            raise UnresolvedRegionError(
                workload.region, workload.name, field_path=f"workloads.{position}.region"
            )
        builder = WORKLOAD_BUILDERS.get(workload.kind)
        if builder is None:
            raise UnsupportedWorkloadKind(workload.kind, field_path=f"workloads.{position}.kind")
        declarations.extend(builder(config, registry, workload))

    log.debug(
        "section_generated",
        section=TITLE,
        workloads=len(config.workloads),
        declarations=len(declarations),
    )
    return declarations


def endpoint_reference(registry: IdentifierRegistry, workload: Workload) -> Reference:
    """The attribute that exposes a workload's endpoint."""
    if workload.kind == WorkloadKind.SERVERLESS:
        return Reference(RUN_SERVICE, registry.reserve("run-service", index=workload.name), "status[0].url")
    if workload.kind == WorkloadKind.ORCHESTRATED:
        return Reference(CLUSTER, registry.reserve("cluster", index=workload.name), "endpoint")
    if workload.kind == WorkloadKind.COMPUTE:
        return Reference(
            INSTANCE_GROUP_MANAGER,
            registry.reserve("instance-group", index=workload.name),
            "instance_group",
        )
    raise UnsupportedWorkloadKind(workload.kind)


@dataclass(frozen=True)
class ClusterRanges:
    """Address ranges owned by one GKE cluster."""

    pods: str
    services: str
    control_plane: str


def cluster_ranges(config: Configuration) -> dict[str, ClusterRanges]:
    """Allocate pod, service and control-plane ranges per GKE cluster.

    Clusters are served in sorted name order. Every range is disjoint from
    the VPC, every subnet and every range handed out before it.

    Raises:
        ConfigurationError: The candidates run out before every cluster has its ranges
    """
    settings = config.network
    taken = [ipaddress.ip_network(settings.vpc_cidr, strict=False)]
    for region in settings.regions:
        taken.append(ipaddress.ip_network(settings.subnet_cidr(region), strict=False))

    names = sorted(w.name for w in config.workloads if w.kind == WorkloadKind.ORCHESTRATED)
    secondary = _allocate(
        (ipaddress.ip_network(c) for c in CLUSTER_RANGE_CANDIDATES), taken, 2 * len(names)
    )
    if secondary is None:
        raise ConfigurationError(
            "No free pod/service ranges left for GKE clusters",
            field_path="network.vpcCidr",
            value=settings.vpc_cidr,
            suggestion="Use a smaller VPC range or fewer GKE workloads",
        )

    control_planes = _allocate(
        (
            block
            for pool in CONTROL_PLANE_POOLS
            for block in ipaddress.ip_network(pool).subnets(new_prefix=CONTROL_PLANE_PREFIX)
        ),
        taken,
        len(names),
    )
    if control_planes is None:
        raise ConfigurationError(
            "No free control-plane ranges left for GKE clusters",
            field_path="network.vpcCidr",
            value=settings.vpc_cidr,
            suggestion=f"Keep one of {', '.join(CONTROL_PLANE_POOLS)} outside the network",
        )

    return {
        name: ClusterRanges(
            pods=str(secondary[2 * i]),
            services=str(secondary[2 * i + 1]),
            control_plane=str(control_planes[i]),
        )
        for i, name in enumerate(names)
    }


def _allocate(candidates, taken: list, count: int) -> Optional[list]:
    """Take the first ``count`` candidates clear of ``taken``; extends ``taken``."""
    chosen = []
    for candidate in candidates:
        if len(chosen) == count:
            break
        if not any(candidate.overlaps(network) for network in taken):
            chosen.append(candidate)
            taken.append(candidate)
    return chosen if len(chosen) == count else None


def _compute(
    config: Configuration, registry: IdentifierRegistry, workload: Workload
) -> list[ResourceDeclaration]:
    region = region_value(config, workload.region)
    scaling = workload.scaling

    template_name = registry.reserve("instance-template", index=workload.name)
    template = ResourceDeclaration(
        INSTANCE_TEMPLATE,
        template_name,
        {
            "name_prefix": Interpolation(f"${{var.application_name}}-{workload.name}-"),
            "machine_type": workload.machine_type or DEFAULT_MACHINE_TYPE,
            "region": region,
            "tags": [Interpolation(f"${{var.application_name}}-{workload.name}")],
            "metadata_startup_script": VarRef("startup_script"),
            "disk": Block({
                "source_image": SOURCE_IMAGE,
                "auto_delete": True,
                "boot": True,
                "disk_size_gb": workload.disk_size_gb or DEFAULT_INSTANCE_DISK_GB,
            }),
            "network_interface": Block({
                "subnetwork": subnet_ref(registry, workload.region, "id"),
            }),
            "lifecycle": Block({"create_before_destroy": True}),
        },
        section=TITLE,
    )

    check_name = registry.reserve("health-check", index=workload.name)
    health_check = ResourceDeclaration(
        HEALTH_CHECK,
        check_name,
        {
            "name": display_name(registry, check_name),
            "timeout_sec": 5,
            "check_interval_sec": 10,
            "http_health_check": Block({"port": 80, "request_path": "/health"}),
        },
        section=TITLE,
    )

    group_name = registry.reserve("instance-group", index=workload.name)
    group = ResourceDeclaration(
        INSTANCE_GROUP_MANAGER,
        group_name,
        {
            "name": display_name(registry, group_name),
            "region": region,
            "base_instance_name": Interpolation(f"${{var.application_name}}-{workload.name}"),
            "target_size": scaling.min_instances,
            "version": Block({"instance_template": template.ref("id")}),
            "auto_healing_policies": Block({
                "health_check": health_check.ref("id"),
                "initial_delay_sec": 300,
            }),
        },
        section=TITLE,
    )

    autoscaler_name = registry.reserve("autoscaler", index=workload.name)
    autoscaler = ResourceDeclaration(
        AUTOSCALER,
        autoscaler_name,
        {
            "name": display_name(registry, autoscaler_name),
            "region": region,
            "target": group.ref("id"),
            "autoscaling_policy": Block({
                "max_replicas": scaling.max_instances,
                "min_replicas": scaling.min_instances,
                "cooldown_period": 60,
                "cpu_utilization": Block({"target": 0.7}),
            }),
        },
        section=TITLE,
    )

    return [template, health_check, group, autoscaler]


def _orchestrated(
    config: Configuration, registry: IdentifierRegistry, workload: Workload
) -> list[ResourceDeclaration]:
    region = region_value(config, workload.region)
    scaling = workload.scaling
    ranges = cluster_ranges(config)[workload.name]

    cluster_name = registry.reserve("cluster", index=workload.name)
    cluster = ResourceDeclaration(
        CLUSTER,
        cluster_name,
        {
            "name": display_name(registry, cluster_name),
            "location": region,
            "remove_default_node_pool": True,
            "initial_node_count": 1,
            "network": network_ref(registry, "name"),
            "subnetwork": subnet_ref(registry, workload.region, "name"),
            "private_cluster_config": Block({
                "enable_private_nodes": True,
                "enable_private_endpoint": False,
                "master_ipv4_cidr_block": ranges.control_plane,
            }),
            "ip_allocation_policy": Block({
                "cluster_ipv4_cidr_block": ranges.pods,
                "services_ipv4_cidr_block": ranges.services,
            }),
            "workload_identity_config": Block({
                "workload_pool": Interpolation("${var.project_id}.svc.id.goog"),
            }),
        },
        section=TITLE,
    )

    pool_name = registry.reserve("node-pool", index=workload.name)
    pool = ResourceDeclaration(
        NODE_POOL,
        pool_name,
        {
            "name": display_name(registry, pool_name),
            "location": region,
            "cluster": cluster.ref("name"),
            "node_count": scaling.min_instances,
            "autoscaling": Block({
                "min_node_count": scaling.min_instances,
                "max_node_count": scaling.max_instances,
            }),
            "node_config": Block({
                "preemptible": False,
                "machine_type": workload.machine_type or DEFAULT_MACHINE_TYPE,
                "disk_size_gb": workload.disk_size_gb or DEFAULT_NODE_DISK_GB,
                "oauth_scopes": ["https://www.googleapis.com/auth/cloud-platform"],
                "workload_metadata_config": Block({"mode": "GKE_METADATA"}),
            }),
        },
        section=TITLE,
    )

    return [cluster, pool]


def _serverless(
    config: Configuration, registry: IdentifierRegistry, workload: Workload
) -> list[ResourceDeclaration]:
    scaling = workload.scaling

    service_name = registry.reserve("run-service", index=workload.name)
    service = ResourceDeclaration(
        RUN_SERVICE,
        service_name,
        {
            "name": display_name(registry, service_name),
            "location": region_value(config, workload.region),
            "template": Block({
                "spec": Block({
                    "containers": Block({
                        "image": SERVERLESS_IMAGE,
                        "ports": Block({"container_port": SERVERLESS_PORT}),
                        "resources": Block({
                            "limits": {"cpu": "1000m", "memory": "512Mi"},
                        }),
                    }),
                }),
                "metadata": Block({
                    "annotations": {
                        "autoscaling.knative.dev/maxScale": str(scaling.max_instances),
                        "autoscaling.knative.dev/minScale": str(scaling.min_instances),
                    },
                }),
            }),
            "traffic": Block({"percent": 100, "latest_revision": True}),
        },
        section=TITLE,
    )

    invoker_name = registry.reserve("run-invoker", index=workload.name)
    invoker = ResourceDeclaration(
        RUN_IAM_MEMBER,
        invoker_name,
        {
            "service": service.ref("name"),
            "location": service.ref("location"),
            "role": "roles/run.invoker",
            "member": "allUsers",
        },
        section=TITLE,
    )

    return [service, invoker]


WORKLOAD_BUILDERS: dict[WorkloadKind, Callable] = {
    WorkloadKind.COMPUTE: _compute,
    WorkloadKind.ORCHESTRATED: _orchestrated,
    WorkloadKind.SERVERLESS: _serverless,
}
