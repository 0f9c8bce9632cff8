"""Tests for cost estimation."""

import json

import httpx
import pytest

from bifrost.models.configuration import parse_configuration
from bifrost.pricing import CostBreakdown, CostEstimator, estimate_cost

ENDPOINT = "https://pricing.example.com/estimate"

REMOTE_PRICES = {
    "infrastructure": 120.5,
    "on_prem": 90,
    "multi_cloud": 0,
    "data_transfer": 0,
    "workloads": 40,
}


def client_for(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestEstimateCost:
    """Test the local price table."""

    def test_minimal(self, minimal_data):
        breakdown = estimate_cost(parse_configuration(minimal_data))
        assert breakdown.as_dict() == {
            "infrastructure": 100,
            "on_prem": 0,
            "multi_cloud": 0,
            "data_transfer": 0,
            "workloads": 0,
            "total": 100,
        }
        assert breakdown.source == "local"

    def test_shop(self, shop_config):
        breakdown = estimate_cost(shop_config)
        assert breakdown.on_prem == 100
        assert breakdown.workloads == 50
        assert breakdown.total == 250

    def test_full(self, full_config):
        breakdown = estimate_cost(full_config)
        assert breakdown.on_prem == 2000  # dedicated, high redundancy
        assert breakdown.multi_cloud == 300
        assert breakdown.data_transfer == 200
        assert breakdown.workloads == 75 + 25 + 50
        assert breakdown.total == 100 + 2000 + 300 + 200 + 150

    def test_partner_low_redundancy(self, full_data):
        full_data["connectivity"]["onPrem"].update({"type": "partner", "redundancy": "low"})
        assert estimate_cost(parse_configuration(full_data)).on_prem == 500

    def test_disabled_provider_is_free(self, full_data):
        full_data["connectivity"]["multiCloud"]["providers"][0]["enabled"] = False
        assert estimate_cost(parse_configuration(full_data)).multi_cloud == 150

    def test_categories(self):
        assert CostBreakdown.categories() == [
            "infrastructure",
            "on_prem",
            "multi_cloud",
            "data_transfer",
            "workloads",
        ]


class TestCostEstimator:
    """Test the remote endpoint and its fallback."""

    def test_no_endpoint_uses_local_table(self, shop_config):
        assert CostEstimator().estimate(shop_config) == estimate_cost(shop_config)

    def test_remote_prices(self, shop_config):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=REMOTE_PRICES)

        estimator = CostEstimator(endpoint=ENDPOINT, client=client_for(handler))
        breakdown = estimator.estimate(shop_config)

        assert breakdown.source == "remote"
        assert breakdown.infrastructure == 120.5
        assert breakdown.total == 250.5
        assert len(requests) == 1
        assert requests[0].method == "POST"
        body = json.loads(requests[0].content)
        assert body["configuration"]["identity"]["applicationName"] == "shop"

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(503),
            httpx.Response(200, text="not json"),
            httpx.Response(200, json={"infrastructure": 1}),
            httpx.Response(200, json=[1, 2, 3]),
            httpx.Response(200, json={**REMOTE_PRICES, "workloads": "lots"}),
        ],
    )
    def test_bad_responses_fall_back(self, shop_config, response):
        estimator = CostEstimator(endpoint=ENDPOINT, client=client_for(lambda request: response))
        assert estimator.estimate(shop_config) == estimate_cost(shop_config)

    def test_transport_error_falls_back(self, shop_config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        estimator = CostEstimator(endpoint=ENDPOINT, client=client_for(handler))
        assert estimator.estimate(shop_config).source == "local"

    def test_timeout_falls_back(self, shop_config):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        estimator = CostEstimator(endpoint=ENDPOINT, timeout=0.1, client=client_for(handler))
        assert estimator.estimate(shop_config).total == 250

    def test_fallback_is_logged(self, shop_config, mocker):
        log = mocker.patch("bifrost.pricing.log")
        estimator = CostEstimator(
            endpoint=ENDPOINT, client=client_for(lambda request: httpx.Response(500))
        )
        estimator.estimate(shop_config)
        log.warning.assert_called_once()
        assert log.warning.call_args.args[0] == "pricing_fallback"
