"""
Kiali Health Models

Pydantic models for the upstream Kiali health payloads and for the
aggregated mesh health summary produced from them.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class HealthStatus(str, Enum):
    """Health status enumeration"""

    HEALTHY = "HEALTHY"
    DEGRADED = "DEGRADED"
    UNHEALTHY = "UNHEALTHY"
    NOT_READY = "NOT_READY"
    UNKNOWN = "UNKNOWN"


class EntityType(str, Enum):
    """Entity types health is fetched for"""

    APP = "app"
    SERVICE = "service"
    WORKLOAD = "workload"


class KialiModel(BaseModel):
    """Base for camelCase Kiali payloads"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


def _none_to_empty(value: Any, empty: Any) -> Any:
    return empty if value is None else value


# --- upstream payloads ---


class RequestHealth(KialiModel):
    """Request counters: direction -> protocol -> code -> count"""

    inbound: Dict[str, Dict[str, float]] = Field(default_factory=dict)
    outbound: Dict[str, Dict[str, float]] = Field(default_factory=dict)
    health_annotations: Dict[str, str] = Field(
        default_factory=dict, alias="healthAnnotations"
    )

    @field_validator("inbound", "outbound", mode="before")
    @classmethod
    def _null_maps(cls, value):
        if isinstance(value, dict):
            return {
                protocol: (
                    {code: _none_to_empty(count, 0) for code, count in codes.items()}
                    if isinstance(codes, dict)
                    else _none_to_empty(codes, {})
                )
                for protocol, codes in value.items()
            }
        return _none_to_empty(value, {})

    @field_validator("health_annotations", mode="before")
    @classmethod
    def _null_annotations(cls, value):
        if isinstance(value, dict):
            return {k: _none_to_empty(v, "") for k, v in value.items()}
        return _none_to_empty(value, {})


class WorkloadStatus(KialiModel):
    """Workload replica status; syncedProxies < 0 means not applicable"""

    name: str = ""
    desired_replicas: int = Field(0, alias="desiredReplicas")
    current_replicas: int = Field(0, alias="currentReplicas")
    available_replicas: int = Field(0, alias="availableReplicas")
    synced_proxies: int = Field(-1, alias="syncedProxies")

    @field_validator(
        "name",
        "desired_replicas",
        "current_replicas",
        "available_replicas",
        "synced_proxies",
        mode="before",
    )
    @classmethod
    def _null_to_default(cls, value, info: ValidationInfo):
        return _none_to_empty(value, cls.model_fields[info.field_name].default)


class AppHealth(KialiModel):
    workload_statuses: List[WorkloadStatus] = Field(
        default_factory=list, alias="workloadStatuses"
    )
    requests: RequestHealth = Field(default_factory=RequestHealth)

    @field_validator("workload_statuses", mode="before")
    @classmethod
    def _null_list(cls, value):
        if isinstance(value, list):
            return [_none_to_empty(ws, {}) for ws in value]
        return _none_to_empty(value, [])

    @field_validator("requests", mode="before")
    @classmethod
    def _null_requests(cls, value):
        return _none_to_empty(value, {})


class ServiceHealth(KialiModel):
    requests: RequestHealth = Field(default_factory=RequestHealth)

    @field_validator("requests", mode="before")
    @classmethod
    def _null_requests(cls, value):
        return _none_to_empty(value, {})


class WorkloadHealth(KialiModel):
    workload_status: Optional[WorkloadStatus] = Field(None, alias="workloadStatus")
    requests: RequestHealth = Field(default_factory=RequestHealth)

    @field_validator("requests", mode="before")
    @classmethod
    def _null_requests(cls, value):
        return _none_to_empty(value, {})


class ClustersNamespaceHealth(KialiModel):
    """Response envelope of /api/clusters/health; one map is set per type"""

    app_health: Dict[str, Dict[str, AppHealth]] = Field(
        default_factory=dict, alias="namespaceAppHealth"
    )
    service_health: Dict[str, Dict[str, ServiceHealth]] = Field(
        default_factory=dict, alias="namespaceServiceHealth"
    )
    workload_health: Dict[str, Dict[str, WorkloadHealth]] = Field(
        default_factory=dict, alias="namespaceWorkloadHealth"
    )

    @field_validator("app_health", "service_health", "workload_health", mode="before")
    @classmethod
    def _null_namespaces(cls, value):
        # null命名空间或null实体均视为空
        if isinstance(value, dict):
            return {
                ns: (
                    {name: _none_to_empty(p, {}) for name, p in entities.items()}
                    if isinstance(entities, dict)
                    else _none_to_empty(entities, {})
                )
                for ns, entities in value.items()
            }
        return _none_to_empty(value, {})


# --- summary output ---


class SummaryModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class HealthCounts(SummaryModel):
    """Healthy/degraded/unhealthy/notReady partition total; unknown is separate"""

    total: int = 0
    healthy: int = 0
    degraded: int = 0
    unhealthy: int = 0
    not_ready: int = Field(0, alias="notReady")
    unknown: int = 0


class EntityHealthCounts(SummaryModel):
    apps: HealthCounts = Field(default_factory=HealthCounts)
    services: HealthCounts = Field(default_factory=HealthCounts)
    workloads: HealthCounts = Field(default_factory=HealthCounts)


class NamespaceSummary(SummaryModel):
    status: HealthStatus
    availability: float
    error_rate: float = Field(alias="errorRate")
    apps: HealthCounts = Field(default_factory=HealthCounts)
    services: HealthCounts = Field(default_factory=HealthCounts)
    workloads: HealthCounts = Field(default_factory=HealthCounts)


class UnhealthyEntity(SummaryModel):
    type: EntityType
    namespace: str
    name: str
    status: HealthStatus
    issue: str = ""
    error_rate: float = Field(0.0, alias="errorRate")


class MeshHealthSummary(SummaryModel):
    """Aggregated mesh health; built once per call"""

    overall_status: HealthStatus = Field(alias="overallStatus")
    availability: float
    total_error_rate: float = Field(alias="totalErrorRate")
    namespace_count: int = Field(alias="namespaceCount")
    entity_counts: EntityHealthCounts = Field(alias="entityCounts")
    namespace_summary: Dict[str, NamespaceSummary] = Field(
        default_factory=dict, alias="namespaceSummary"
    )
    top_unhealthy: List[UnhealthyEntity] = Field(
        default_factory=list, alias="topUnhealthy"
    )
    timestamp: str
    rate_interval: str = Field(alias="rateInterval")

    def to_json(self) -> str:
        """Pretty-printed JSON with Kiali-style camelCase keys"""
        return self.model_dump_json(by_alias=True, indent=2)
