"""Monthly cost estimation for a configuration.

The local table is always available. When a pricing endpoint is configured
the estimator asks it first and falls back to the table on any failure;
a cost estimate is advisory and never blocks generation.
"""

from dataclasses import dataclass, fields
from typing import Optional

import httpx
import structlog

from bifrost.core.errors import PricingUnavailableError
from bifrost.models.configuration import Configuration, ConnectionType, Redundancy, WorkloadKind

log = structlog.get_logger()

# Monthly USD
INFRASTRUCTURE_COST = 100
CONNECTION_COSTS = {
    ConnectionType.VPN: 100,
    ConnectionType.DEDICATED: 1000,
    ConnectionType.PARTNER: 500,
}
HIGH_REDUNDANCY_FACTOR = 2
PROVIDER_COST = 150
DATA_TRANSFER_COST = 200
WORKLOAD_COSTS = {
    WorkloadKind.COMPUTE: 50,
    WorkloadKind.ORCHESTRATED: 75,
    WorkloadKind.SERVERLESS: 25,
}

LOCAL_SOURCE = "local"
REMOTE_SOURCE = "remote"


@dataclass(frozen=True)
class CostBreakdown:
    """Estimated monthly cost by category."""

    infrastructure: float = 0
    on_prem: float = 0
    multi_cloud: float = 0
    data_transfer: float = 0
    workloads: float = 0
    source: str = LOCAL_SOURCE

    @classmethod
    def categories(cls) -> list[str]:
        return [f.name for f in fields(cls) if f.name != "source"]

    @property
    def total(self) -> float:
        return sum(getattr(self, name) for name in self.categories())

    def as_dict(self) -> dict[str, float]:
        result = {name: getattr(self, name) for name in self.categories()}
        result["total"] = self.total
        return result


def estimate_cost(config: Configuration) -> CostBreakdown:
    """Estimate monthly cost from the local price table."""
    on_prem = config.connectivity.on_prem
    on_prem_cost = 0
    if on_prem.enabled:
        on_prem_cost = CONNECTION_COSTS[on_prem.connection_type]
        if on_prem.redundancy == Redundancy.HIGH:
            on_prem_cost *= HIGH_REDUNDANCY_FACTOR

    site_to_site = config.connectivity.site_to_site
    data_transfer = DATA_TRANSFER_COST if site_to_site.enabled and site_to_site.data_transfer else 0

    return CostBreakdown(
        infrastructure=INFRASTRUCTURE_COST,
        on_prem=on_prem_cost,
        multi_cloud=PROVIDER_COST * len(config.connectivity.multi_cloud.active_providers),
        data_transfer=data_transfer,
        workloads=sum(WORKLOAD_COSTS[w.kind] for w in config.workloads),
    )


class CostEstimator:
    """Cost estimator with an optional remote pricing endpoint.

    The endpoint receives the configuration as JSON and answers with a
    mapping holding a number for every cost category.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self._client = client

    def estimate(self, config: Configuration) -> CostBreakdown:
        """Estimate cost, preferring the endpoint when one is configured."""
        if not self.endpoint:
            return estimate_cost(config)

        try:
            return self._fetch(config)
        except PricingUnavailableError as e:
            log.warning("pricing_fallback", endpoint=self.endpoint, error=str(e))
            return estimate_cost(config)

    def _fetch(self, config: Configuration) -> CostBreakdown:
        payload = {"configuration": config.model_dump(mode="json", by_alias=True)}
        client = self._client or httpx.Client(timeout=self.timeout)
        try:
            response = client.post(self.endpoint, json=payload)
            response.raise_for_status()
            data = response.json()
            values = {name: float(data[name]) for name in CostBreakdown.categories()}
        except httpx.TimeoutException as e:
            raise PricingUnavailableError(f"Pricing request timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise PricingUnavailableError(
                f"Pricing endpoint returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise PricingUnavailableError(f"Pricing request failed: {e}") from e
        except (ValueError, KeyError, TypeError) as e:
            raise PricingUnavailableError(f"Malformed pricing response: {e}") from e
        finally:
            if self._client is None:
                client.close()

        log.info("pricing_fetched", endpoint=self.endpoint)
        return CostBreakdown(source=REMOTE_SOURCE, **values)
