"""
Request Health Evaluation

Maps inbound/outbound traffic-by-status-code counters to a worst-case error
ratio and a coarse health status, using Kiali's default tolerances.
"""

import re
from typing import Dict, Iterator, NamedTuple, Optional, Tuple

from src.modes.kiali.utils.health_models import HealthStatus, RequestHealth

# Higher wins when merging
STATUS_PRIORITY = {
    HealthStatus.UNHEALTHY: 4,
    HealthStatus.DEGRADED: 3,
    HealthStatus.NOT_READY: 2,
    HealthStatus.HEALTHY: 1,
    HealthStatus.UNKNOWN: 0,
}


class ToleranceRule(NamedTuple):
    """Degraded/failure thresholds (percent) for error codes of one protocol"""

    protocol: str
    code_pattern: "re.Pattern[str]"
    degraded: float
    failure: float

    def matches(self, protocol: str, code: str) -> bool:
        return protocol == self.protocol and bool(self.code_pattern.fullmatch(code))


# First match wins. "-" is an aborted or fault-injected request.
TOLERANCES: Tuple[ToleranceRule, ...] = (
    ToleranceRule("http", re.compile(r"-"), 0.0, 10.0),
    ToleranceRule("http", re.compile(r"5\d\d"), 0.0, 10.0),
    ToleranceRule("http", re.compile(r"4\d\d"), 10.0, 20.0),
    ToleranceRule("grpc", re.compile(r"(?!0$).+"), 0.0, 10.0),
)


def find_tolerance(protocol: str, code: str) -> Optional[ToleranceRule]:
    for rule in TOLERANCES:
        if rule.matches(protocol, code):
            return rule
    return None


def is_error_code(protocol: str, code: str) -> bool:
    """Whether a response code counts as an error for the protocol"""
    return find_tolerance(protocol, code) is not None


def get_status_for_code_ratio(protocol: str, code: str, percentage: float) -> HealthStatus:
    """Classify one error code's share of its protocol traffic"""
    rule = find_tolerance(protocol, code)
    if rule is None or percentage <= 0:
        return HealthStatus.HEALTHY
    if percentage >= rule.failure:
        return HealthStatus.UNHEALTHY
    if percentage >= rule.degraded:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


def merge_health_status(s1: HealthStatus, s2: HealthStatus) -> HealthStatus:
    """Return the worse of two statuses"""
    if STATUS_PRIORITY[s1] > STATUS_PRIORITY[s2]:
        return s1
    return s2


def _directions(requests: RequestHealth) -> Iterator[Dict[str, Dict[str, float]]]:
    yield requests.inbound
    yield requests.outbound


def has_any_requests(requests: RequestHealth) -> bool:
    """True if any inbound or outbound counter is non-zero"""
    return any(
        count > 0
        for direction in _directions(requests)
        for codes in direction.values()
        for count in codes.values()
    )


def calculate_error_rate(requests: RequestHealth) -> float:
    """Error-coded requests over all requests, both directions combined"""
    total_requests = 0.0
    error_requests = 0.0
    for direction in _directions(requests):
        for protocol, codes in direction.items():
            for code, count in codes.items():
                total_requests += count
                if is_error_code(protocol, code):
                    error_requests += count

    if total_requests == 0:
        return 0.0
    return error_requests / total_requests


def evaluate_request_health(requests: RequestHealth) -> Tuple[HealthStatus, float]:
    """
    Evaluate request counters against the tolerance table.

    Each direction and protocol is evaluated independently; protocols with no
    traffic are skipped.

    Returns:
        (status, worst_ratio) where worst_ratio is the highest share of any
        single error code within its protocol.
    """
    status = HealthStatus.HEALTHY
    worst_ratio = 0.0

    for direction in _directions(requests):
        for protocol, codes in direction.items():
            protocol_total = sum(codes.values())
            if protocol_total == 0:
                continue

            for code, count in codes.items():
                if count <= 0 or not is_error_code(protocol, code):
                    continue

                worst_ratio = max(worst_ratio, count / protocol_total)
                percentage = count * 100.0 / protocol_total
                status = merge_health_status(
                    status, get_status_for_code_ratio(protocol, code, percentage)
                )

    return status, worst_ratio
