"""
Kiali Health Analyzer

This module classifies individual apps, services and workloads into a health
status, combining replica availability, proxy sync state and request error
tolerances. The worst signal wins.
"""

from typing import Iterable, Tuple

from src.modes.kiali.utils.health_models import (
    AppHealth,
    EntityType,
    HealthStatus,
    RequestHealth,
    ServiceHealth,
    WorkloadHealth,
    WorkloadStatus,
)
from src.modes.kiali.utils.request_health import (
    evaluate_request_health,
    has_any_requests,
    merge_health_status,
)

Evaluation = Tuple[HealthStatus, str]


class HealthAnalyzer:
    """
    Health analyzer for Kiali entities.
    Every evaluate_* method is pure and returns (status, issue).
    """

    SCALED_TO_ZERO_ISSUE = "scaled to 0 replicas"
    NO_WORKLOADS_ISSUE = "no workloads found"

    def evaluate_app_health(self, app: AppHealth) -> Evaluation:
        """
        Analyze an app: all of its workload statuses plus its request health.

        Args:
            app: App health payload from Kiali

        Returns:
            (status, issue)
        """
        if not app.workload_statuses:
            return HealthStatus.UNKNOWN, self.NO_WORKLOADS_ISSUE

        if self._all_scaled_to_zero(app.workload_statuses):
            return HealthStatus.NOT_READY, self.SCALED_TO_ZERO_ISSUE

        workload_status = HealthStatus.HEALTHY
        issue = ""
        for ws in app.workload_statuses:
            status, ws_issue = self._evaluate_workload_status(ws, issue)
            workload_status = merge_health_status(workload_status, status)
            issue = ws_issue

        return self._merge_with_requests(workload_status, issue, app.requests)

    def evaluate_service_health(self, svc: ServiceHealth) -> Evaluation:
        """Analyze a service; services have no replicas so only traffic counts"""
        # 无流量数据时无法评估
        if not has_any_requests(svc.requests):
            return HealthStatus.UNKNOWN, ""

        status, error_ratio = evaluate_request_health(svc.requests)
        return status, self._error_rate_issue(error_ratio)

    def evaluate_workload_health(self, wl: WorkloadHealth) -> Evaluation:
        """
        Analyze a workload: its single workload status plus its request health.

        A workload with neither a status nor traffic cannot be evaluated.
        """
        ws = wl.workload_status
        if ws is None:
            if not has_any_requests(wl.requests):
                return HealthStatus.UNKNOWN, ""
            return self._merge_with_requests(HealthStatus.HEALTHY, "", wl.requests)

        if self._all_scaled_to_zero([ws]):
            return HealthStatus.NOT_READY, self.SCALED_TO_ZERO_ISSUE

        workload_status, issue = self._evaluate_workload_status(ws, "")
        return self._merge_with_requests(workload_status, issue, wl.requests)

    @staticmethod
    def _all_scaled_to_zero(statuses: Iterable[WorkloadStatus]) -> bool:
        # 用户主动缩容到0不是错误
        return all(ws.desired_replicas == 0 for ws in statuses)

    def _evaluate_workload_status(
        self, ws: WorkloadStatus, issue: str
    ) -> Tuple[HealthStatus, str]:
        """
        Replica and proxy checks for one workload status.

        Args:
            ws: Workload status
            issue: Issue recorded so far; replica issues replace it, proxy
                issues only fill it when empty

        Returns:
            (status, issue)
        """
        if ws.desired_replicas == 0:
            return HealthStatus.NOT_READY, self.SCALED_TO_ZERO_ISSUE

        status = HealthStatus.HEALTHY
        if ws.available_replicas < ws.desired_replicas:
            issue = f"{ws.available_replicas}/{ws.desired_replicas} replicas available"
            if ws.available_replicas == 0:
                status = HealthStatus.UNHEALTHY
            else:
                status = HealthStatus.DEGRADED

        if 0 <= ws.synced_proxies < ws.available_replicas:
            if not issue:
                issue = f"{ws.synced_proxies}/{ws.available_replicas} proxies synced"
            status = merge_health_status(status, HealthStatus.DEGRADED)

        return status, issue

    def _merge_with_requests(
        self, workload_status: HealthStatus, issue: str, requests: RequestHealth
    ) -> Evaluation:
        request_status, error_ratio = evaluate_request_health(requests)
        if not issue:
            issue = self._error_rate_issue(error_ratio)
        return merge_health_status(workload_status, request_status), issue

    @staticmethod
    def _error_rate_issue(error_ratio: float) -> str:
        if error_ratio > 0:
            return f"error rate: {error_ratio * 100:.2f}%"
        return ""

    def evaluate(self, entity_type: EntityType, payload) -> Evaluation:
        """Dispatch on entity type; raises ValueError for unknown types"""
        evaluators = {
            EntityType.APP: self.evaluate_app_health,
            EntityType.SERVICE: self.evaluate_service_health,
            EntityType.WORKLOAD: self.evaluate_workload_health,
        }
        return evaluators[EntityType(entity_type)](payload)
