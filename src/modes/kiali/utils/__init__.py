"""
Kiali Health Utilities

- health_models: Kiali payload and summary models
- request_health: Tolerance-based request error evaluation
- HealthAnalyzer: Per-entity health classification
- health_aggregator: Namespace and mesh rollups, unhealthy ranking
"""

from .health_analyzer import HealthAnalyzer
from .health_aggregator import compute_health_summary, rank_unhealthy_entities
from .request_health import evaluate_request_health, merge_health_status

__all__ = [
    "HealthAnalyzer",
    "compute_health_summary",
    "rank_unhealthy_entities",
    "evaluate_request_health",
    "merge_health_status",
]
