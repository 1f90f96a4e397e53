"""
Mesh Health Aggregator

Rolls classified entities up into namespace and mesh-wide summaries and ranks
the worst offenders. Everything here is pure; fetching lives in
health_summary_api.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from src.modes.kiali.utils.health_analyzer import HealthAnalyzer
from src.modes.kiali.utils.health_models import (
    ClustersNamespaceHealth,
    EntityHealthCounts,
    EntityType,
    HealthCounts,
    HealthStatus,
    MeshHealthSummary,
    NamespaceSummary,
    UnhealthyEntity,
)
from src.modes.kiali.utils.request_health import calculate_error_rate

logger = logging.getLogger(__name__)

TOP_UNHEALTHY_LIMIT = 10

# Namespace thresholds on the summed error rate
HEALTHY_ERROR_RATE = 0.01
UNHEALTHY_ERROR_RATE = 0.05


def compute_namespace_status(
    total: int, unhealthy: int, error_rate: float
) -> HealthStatus:
    """Status of a group of entities from its counts and summed error rate"""
    if total == 0:
        return HealthStatus.UNKNOWN
    if unhealthy == 0 and error_rate < HEALTHY_ERROR_RATE:
        return HealthStatus.HEALTHY
    if unhealthy > total // 2 or error_rate > UNHEALTHY_ERROR_RATE:
        return HealthStatus.UNHEALTHY
    return HealthStatus.DEGRADED


def compute_availability(total: int, healthy: int, degraded: int) -> float:
    """Percentage where degraded entities count half; 100 for an empty group"""
    if total == 0:
        return 100.0
    return (healthy + degraded * 0.5) / total * 100.0


def rank_unhealthy_entities(
    entities: Iterable[UnhealthyEntity], limit: int = TOP_UNHEALTHY_LIMIT
) -> List[UnhealthyEntity]:
    """Highest error rate first; equal rates keep discovery order"""
    return sorted(entities, key=lambda e: e.error_rate, reverse=True)[:limit]


def _to_health_counts(counter: Counter) -> HealthCounts:
    healthy = counter[HealthStatus.HEALTHY]
    degraded = counter[HealthStatus.DEGRADED]
    unhealthy = counter[HealthStatus.UNHEALTHY]
    not_ready = counter[HealthStatus.NOT_READY]
    return HealthCounts(
        total=healthy + degraded + unhealthy + not_ready,
        healthy=healthy,
        degraded=degraded,
        unhealthy=unhealthy,
        not_ready=not_ready,
        unknown=counter[HealthStatus.UNKNOWN],
    )


def _sum_counts(counts: Iterable[HealthCounts]) -> Dict[str, int]:
    sums = Counter()
    for c in counts:
        sums["total"] += c.total
        sums["healthy"] += c.healthy
        sums["degraded"] += c.degraded
        sums["unhealthy"] += c.unhealthy
    return sums


def _collect_namespaces(*maps: Dict[str, dict]) -> List[str]:
    """Union of namespace keys in first-seen order"""
    seen: Dict[str, None] = {}
    for m in maps:
        for ns in m:
            seen.setdefault(ns, None)
    return list(seen)


def compute_health_summary(
    app_health: ClustersNamespaceHealth,
    svc_health: ClustersNamespaceHealth,
    wl_health: ClustersNamespaceHealth,
    rate_interval: str,
    analyzer: Optional[HealthAnalyzer] = None,
    now: Optional[datetime] = None,
) -> MeshHealthSummary:
    """
    Aggregate the three per-type payloads into a mesh health summary.

    Args:
        app_health: Response of the type=app fetch
        svc_health: Response of the type=service fetch
        wl_health: Response of the type=workload fetch
        rate_interval: Rate interval echoed into the summary
        analyzer: Entity classifier
        now: Timestamp override

    Returns:
        MeshHealthSummary
    """
    analyzer = analyzer or HealthAnalyzer()
    now = now or datetime.now(timezone.utc)

    sources = {
        EntityType.APP: app_health.app_health,
        EntityType.SERVICE: svc_health.service_health,
        EntityType.WORKLOAD: wl_health.workload_health,
    }
    namespaces = _collect_namespaces(*sources.values())

    mesh_counters = {entity_type: Counter() for entity_type in EntityType}
    namespace_summary: Dict[str, NamespaceSummary] = {}
    unhealthy: List[UnhealthyEntity] = []

    for ns in namespaces:
        ns_counters = {entity_type: Counter() for entity_type in EntityType}
        ns_error_rate = 0.0

        for entity_type, source in sources.items():
            for name, payload in source.get(ns, {}).items():
                status, issue = analyzer.evaluate(entity_type, payload)
                error_rate = calculate_error_rate(payload.requests)

                ns_counters[entity_type][status] += 1
                mesh_counters[entity_type][status] += 1
                ns_error_rate += error_rate

                if status == HealthStatus.UNHEALTHY:
                    unhealthy.append(
                        UnhealthyEntity(
                            type=entity_type,
                            namespace=ns,
                            name=name,
                            status=status,
                            issue=issue,
                            error_rate=error_rate,
                        )
                    )

        counts = {t: _to_health_counts(c) for t, c in ns_counters.items()}
        sums = _sum_counts(counts.values())
        namespace_summary[ns] = NamespaceSummary(
            status=compute_namespace_status(
                sums["total"], sums["unhealthy"], ns_error_rate
            ),
            availability=compute_availability(
                sums["total"], sums["healthy"], sums["degraded"]
            ),
            error_rate=ns_error_rate,
            apps=counts[EntityType.APP],
            services=counts[EntityType.SERVICE],
            workloads=counts[EntityType.WORKLOAD],
        )

    entity_counts = EntityHealthCounts(
        apps=_to_health_counts(mesh_counters[EntityType.APP]),
        services=_to_health_counts(mesh_counters[EntityType.SERVICE]),
        workloads=_to_health_counts(mesh_counters[EntityType.WORKLOAD]),
    )
    mesh_sums = _sum_counts(
        [entity_counts.apps, entity_counts.services, entity_counts.workloads]
    )
    # 命名空间错误率之和, 非平均值
    total_error_rate = sum(s.error_rate for s in namespace_summary.values())

    summary = MeshHealthSummary(
        overall_status=compute_namespace_status(
            mesh_sums["total"], mesh_sums["unhealthy"], total_error_rate
        ),
        availability=compute_availability(
            mesh_sums["total"], mesh_sums["healthy"], mesh_sums["degraded"]
        ),
        total_error_rate=total_error_rate,
        namespace_count=len(namespaces),
        entity_counts=entity_counts,
        namespace_summary=namespace_summary,
        top_unhealthy=rank_unhealthy_entities(unhealthy),
        timestamp=now.strftime("%Y-%m-%dT%H:%M:%SZ"),
        rate_interval=rate_interval,
    )

    logger.debug(
        "[网格健康聚合]聚合完成 - 命名空间数=%d, 实体总数=%d, 不健康实体数=%d",
        summary.namespace_count,
        mesh_sums["total"],
        mesh_sums["unhealthy"],
    )
    return summary
