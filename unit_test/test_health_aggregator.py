# -*- coding: utf-8 -*-
"""
网格健康聚合单元测试
"""

import json
import unittest
from datetime import datetime, timezone

from src.modes.kiali.utils.health_aggregator import (
    compute_availability,
    compute_health_summary,
    compute_namespace_status,
    rank_unhealthy_entities,
)
from src.modes.kiali.utils.health_models import (
    ClustersNamespaceHealth,
    EntityType,
    HealthStatus,
    UnhealthyEntity,
)


def envelope(key, namespaces) -> ClustersNamespaceHealth:
    return ClustersNamespaceHealth.model_validate({key: namespaces})


def empty() -> ClustersNamespaceHealth:
    return ClustersNamespaceHealth()


def healthy_app():
    return {
        "workloadStatuses": [
            {
                "name": "v1",
                "desiredReplicas": 1,
                "currentReplicas": 1,
                "availableReplicas": 1,
                "syncedProxies": 1,
            }
        ],
        "requests": {"inbound": {"http": {"200": 100}}, "outbound": {}},
    }


def failing_app(errors=20):
    app = healthy_app()
    app["requests"]["inbound"] = {"http": {"200": 100 - errors, "500": errors}}
    return app


class TestNamespaceStatus(unittest.TestCase):
    """命名空间状态推导测试"""

    def test_unknown_when_empty(self):
        self.assertEqual(compute_namespace_status(0, 0, 0.0), HealthStatus.UNKNOWN)

    def test_majority_unhealthy(self):
        self.assertEqual(compute_namespace_status(10, 6, 0.0), HealthStatus.UNHEALTHY)
        self.assertEqual(compute_namespace_status(10, 5, 0.0), HealthStatus.DEGRADED)

    def test_error_rate_thresholds(self):
        self.assertEqual(compute_namespace_status(10, 0, 0.005), HealthStatus.HEALTHY)
        self.assertEqual(compute_namespace_status(10, 0, 0.01), HealthStatus.DEGRADED)
        self.assertEqual(compute_namespace_status(10, 0, 0.05), HealthStatus.DEGRADED)
        self.assertEqual(compute_namespace_status(10, 0, 0.06), HealthStatus.UNHEALTHY)


class TestAvailability(unittest.TestCase):
    """可用性计算测试"""

    def test_degraded_counts_half(self):
        self.assertEqual(compute_availability(10, 4, 2), 50.0)

    def test_empty_is_fully_available(self):
        self.assertEqual(compute_availability(0, 0, 0), 100.0)


class TestRankUnhealthy(unittest.TestCase):
    """不健康实体排序测试"""

    def _entity(self, name, rate):
        return UnhealthyEntity(
            type=EntityType.APP,
            namespace="ns",
            name=name,
            status=HealthStatus.UNHEALTHY,
            error_rate=rate,
        )

    def test_sorted_and_truncated(self):
        entities = [self._entity(f"app-{i}", i / 100) for i in range(12)]
        ranked = rank_unhealthy_entities(entities)
        self.assertEqual(len(ranked), 10)
        rates = [e.error_rate for e in ranked]
        self.assertEqual(rates, sorted(rates, reverse=True))
        self.assertEqual(ranked[0].name, "app-11")

    def test_ties_keep_discovery_order(self):
        entities = [self._entity("a", 0.5), self._entity("b", 0.5), self._entity("c", 0.9)]
        self.assertEqual([e.name for e in rank_unhealthy_entities(entities)], ["c", "a", "b"])


class TestComputeHealthSummary(unittest.TestCase):
    """网格健康汇总测试"""

    def test_bookinfo_productpage_unhealthy(self):
        summary = compute_health_summary(
            envelope("namespaceAppHealth", {"bookinfo": {"productpage": failing_app()}}),
            envelope("namespaceServiceHealth", {}),
            envelope("namespaceWorkloadHealth", {}),
            "10m",
        )

        self.assertEqual(summary.overall_status, HealthStatus.UNHEALTHY)
        ns = summary.namespace_summary["bookinfo"]
        self.assertEqual(ns.status, HealthStatus.UNHEALTHY)
        self.assertEqual(ns.apps.total, 1)
        self.assertEqual(ns.apps.unhealthy, 1)
        self.assertAlmostEqual(ns.error_rate, 0.2)
        self.assertEqual(ns.availability, 0.0)

        self.assertEqual(len(summary.top_unhealthy), 1)
        entity = summary.top_unhealthy[0]
        self.assertEqual(entity.type, EntityType.APP)
        self.assertEqual(entity.name, "productpage")
        self.assertIn("error rate: 20.00%", entity.issue)
        self.assertAlmostEqual(entity.error_rate, 0.2)

    def test_namespace_only_in_service_payload(self):
        summary = compute_health_summary(
            envelope("namespaceAppHealth", {"bookinfo": {"reviews": healthy_app()}}),
            envelope(
                "namespaceServiceHealth",
                {"istio-system": {"istiod": {"requests": {"inbound": {"grpc": {"0": 5}}}}}},
            ),
            empty(),
            "10m",
        )

        self.assertEqual(summary.namespace_count, 2)
        self.assertEqual(list(summary.namespace_summary), ["bookinfo", "istio-system"])
        istio = summary.namespace_summary["istio-system"]
        self.assertEqual(istio.apps.total, 0)
        self.assertEqual(istio.services.total, 1)
        self.assertEqual(istio.services.healthy, 1)
        self.assertEqual(istio.status, HealthStatus.HEALTHY)

    def test_unknown_excluded_from_total(self):
        summary = compute_health_summary(
            empty(),
            envelope("namespaceServiceHealth", {"default": {"idle": {"requests": {}}}}),
            empty(),
            "10m",
        )

        services = summary.namespace_summary["default"].services
        self.assertEqual(services.total, 0)
        self.assertEqual(services.unknown, 1)
        self.assertEqual(summary.namespace_summary["default"].status, HealthStatus.UNKNOWN)
        self.assertEqual(summary.namespace_summary["default"].availability, 100.0)
        self.assertEqual(summary.overall_status, HealthStatus.UNKNOWN)

    def test_null_entity_payloads_are_unknown(self):
        summary = compute_health_summary(
            envelope("namespaceAppHealth", {"bookinfo": {"reviews": None}}),
            envelope("namespaceServiceHealth", {"bookinfo": {"reviews": None}}),
            envelope("namespaceWorkloadHealth", {"bookinfo": {"reviews-v1": None}}),
            "10m",
        )

        ns = summary.namespace_summary["bookinfo"]
        self.assertEqual(ns.apps.unknown, 1)
        self.assertEqual(ns.services.unknown, 1)
        self.assertEqual(ns.workloads.unknown, 1)
        self.assertEqual(ns.status, HealthStatus.UNKNOWN)
        self.assertEqual(summary.top_unhealthy, [])

    def test_null_workload_status_fields_use_defaults(self):
        app = healthy_app()
        app["workloadStatuses"][0].update(
            {"name": None, "currentReplicas": None, "syncedProxies": None}
        )
        app["workloadStatuses"].append(None)
        summary = compute_health_summary(
            envelope("namespaceAppHealth", {"bookinfo": {"reviews": app}}),
            empty(),
            envelope(
                "namespaceWorkloadHealth",
                {
                    "bookinfo": {
                        "reviews-v1": {
                            "workloadStatus": {
                                "desiredReplicas": None,
                                "availableReplicas": None,
                                "syncedProxies": None,
                            },
                            "requests": {"inbound": {"http": {"200": 5, "500": None}}},
                        }
                    }
                },
            ),
            "10m",
        )

        parsed = envelope("namespaceAppHealth", {"bookinfo": {"reviews": app}})
        statuses = parsed.app_health["bookinfo"]["reviews"].workload_statuses
        self.assertEqual(statuses[0].name, "")
        self.assertEqual(statuses[0].synced_proxies, -1)
        self.assertEqual(statuses[1].desired_replicas, 0)

        ns = summary.namespace_summary["bookinfo"]
        # null状态按0副本处理
        self.assertEqual(ns.apps.not_ready, 1)
        self.assertEqual(ns.workloads.not_ready, 1)

    def test_counts_partition_and_mesh_rollup(self):
        scaled_down = healthy_app()
        scaled_down["workloadStatuses"][0].update(
            {"desiredReplicas": 0, "availableReplicas": 0}
        )
        degraded = healthy_app()
        degraded["workloadStatuses"][0].update({"desiredReplicas": 2})

        summary = compute_health_summary(
            envelope(
                "namespaceAppHealth",
                {
                    "ns-a": {"ok": healthy_app(), "down": scaled_down},
                    "ns-b": {"slow": degraded, "bad": failing_app(50)},
                },
            ),
            empty(),
            envelope(
                "namespaceWorkloadHealth",
                {"ns-b": {"bad-v1": {"workloadStatus": None, "requests": {}}}},
            ),
            "5m",
        )

        apps = summary.entity_counts.apps
        self.assertEqual(
            (apps.total, apps.healthy, apps.degraded, apps.unhealthy, apps.not_ready),
            (4, 1, 1, 1, 1),
        )
        self.assertEqual(summary.entity_counts.workloads.unknown, 1)
        self.assertEqual(summary.entity_counts.workloads.total, 0)
        self.assertAlmostEqual(summary.total_error_rate, 0.5)
        self.assertEqual(summary.availability, (1 + 0.5) / 4 * 100)
        self.assertEqual(summary.overall_status, HealthStatus.UNHEALTHY)
        self.assertEqual(summary.rate_interval, "5m")

        ns_b = summary.namespace_summary["ns-b"]
        self.assertEqual(ns_b.status, HealthStatus.UNHEALTHY)
        self.assertEqual(summary.namespace_summary["ns-a"].status, HealthStatus.HEALTHY)

    def test_error_rate_is_summed(self):
        summary = compute_health_summary(
            envelope(
                "namespaceAppHealth",
                {"ns": {"a": failing_app(60), "b": failing_app(70)}},
            ),
            empty(),
            empty(),
            "10m",
        )
        self.assertAlmostEqual(summary.namespace_summary["ns"].error_rate, 1.3)
        self.assertEqual([e.name for e in summary.top_unhealthy], ["b", "a"])

    def test_no_data(self):
        summary = compute_health_summary(empty(), empty(), empty(), "10m")
        self.assertEqual(summary.overall_status, HealthStatus.UNKNOWN)
        self.assertEqual(summary.availability, 100.0)
        self.assertEqual(summary.namespace_count, 0)
        self.assertEqual(summary.top_unhealthy, [])

    def test_top_unhealthy_capped(self):
        apps = {f"app-{i}": failing_app(10 + i) for i in range(15)}
        summary = compute_health_summary(
            envelope("namespaceAppHealth", {"ns": apps}), empty(), empty(), "10m"
        )
        self.assertEqual(summary.namespace_summary["ns"].apps.unhealthy, 15)
        self.assertEqual(len(summary.top_unhealthy), 10)
        self.assertEqual(summary.top_unhealthy[0].name, "app-14")

    def test_json_serialization(self):
        summary = compute_health_summary(
            envelope("namespaceAppHealth", {"bookinfo": {"productpage": failing_app()}}),
            empty(),
            empty(),
            "10m",
            now=datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc),
        )
        text = summary.to_json()
        self.assertIn('\n  "overallStatus": "UNHEALTHY"', text)

        data = json.loads(text)
        self.assertEqual(data["timestamp"], "2024-05-01T12:30:00Z")
        self.assertEqual(data["rateInterval"], "10m")
        self.assertEqual(data["namespaceCount"], 1)
        self.assertIn("notReady", data["namespaceSummary"]["bookinfo"]["apps"])
        self.assertEqual(data["entityCounts"]["apps"]["unhealthy"], 1)
        self.assertEqual(data["topUnhealthy"][0]["type"], "app")
        self.assertAlmostEqual(data["topUnhealthy"][0]["errorRate"], 0.2)


if __name__ == "__main__":
    unittest.main()
