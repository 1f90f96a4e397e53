"""
Kiali Mesh Health Module

This module provides mesh health visibility through Kiali: per-entity health
classification for apps, services and workloads, and namespace and mesh-wide
health rollups.
"""

__version__ = "0.1.0"
__author__ = "MeshPilot Team"

from .utils.health_analyzer import HealthAnalyzer
from .utils.health_aggregator import compute_health_summary

__all__ = [
    "HealthAnalyzer",
    "compute_health_summary",
]
