# -*- coding: utf-8 -*-
"""
Kiali Mesh Health Summary API

This module fetches app, service and workload health from Kiali concurrently
and aggregates it into a mesh-wide health summary. It also exposes the raw
per-type health endpoint.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Header, HTTPException
from pydantic import BaseModel, Field, ValidationError

from src.core.async_utils import ConcurrentResourceFetcher
from src.core.error_handler import (
    HealthFetchError,
    HealthParseError,
    create_error_handler,
    with_timeout,
)
from src.core.kiali_client import KialiClient
from src.modes.kiali.utils.health_aggregator import compute_health_summary
from src.modes.kiali.utils.health_models import (
    ClustersNamespaceHealth,
    EntityType,
    MeshHealthSummary,
)

logger = logging.getLogger(__name__)

DEFAULT_RATE_INTERVAL = "10m"
SUMMARY_TIMEOUT_SECONDS = 60
SLOW_SUMMARY_SECONDS = 5.0


class HealthRequest(BaseModel):
    """Health request model"""

    cluster_name: Optional[str] = Field(None, description="Kiali实例名称 (Server模式必需)")
    namespaces: Optional[str] = Field(
        None, description="逗号分隔的命名空间，为空则查询所有命名空间"
    )
    type: Optional[str] = Field(None, description="健康类型: app, service 或 workload")
    rate_interval: Optional[str] = Field(None, description="错误率统计区间，如 10m")
    query_time: Optional[str] = Field(None, description="Prometheus查询的Unix时间戳")


class MeshHealthSummaryRequest(BaseModel):
    """Mesh health summary request model"""

    cluster_name: Optional[str] = Field(None, description="Kiali实例名称 (Server模式必需)")
    namespaces: Optional[str] = Field(
        None, description="逗号分隔的命名空间，为空则汇总所有命名空间"
    )
    rate_interval: Optional[str] = Field(None, description="错误率统计区间，如 10m")
    query_time: Optional[str] = Field(None, description="Prometheus查询的Unix时间戳")


class HealthResponse(BaseModel):
    """Health response model"""

    code: int = Field(..., description="响应码")
    message: Optional[str] = Field(None, description="响应消息")
    data: Optional[Any] = Field(None, description="健康数据")


def _query_params(rate_interval: Optional[str], query_time: Optional[str]) -> Dict[str, str]:
    params = {}
    if rate_interval:
        params["rateInterval"] = rate_interval
    if query_time:
        params["queryTime"] = query_time
    return params


def _parse_health(entity_type: EntityType, body: str) -> ClustersNamespaceHealth:
    try:
        return ClustersNamespaceHealth.model_validate_json(body)
    except ValidationError as e:
        raise HealthParseError(entity_type.value, e) from e


@with_timeout(timeout_seconds=SUMMARY_TIMEOUT_SECONDS)
async def build_mesh_health_summary(
    kiali_client: KialiClient,
    namespaces: Optional[str] = None,
    query_params: Optional[Dict[str, str]] = None,
    auth_header: Optional[str] = None,
    cluster_name: str = "current",
) -> MeshHealthSummary:
    """
    Fetch app, service and workload health concurrently and aggregate them

    Args:
        kiali_client: Kiali client
        namespaces: Comma-separated namespaces (None for all)
        query_params: Caller overrides forwarded to every fetch (rateInterval, queryTime)
        auth_header: Authorization header forwarded to Kiali
        cluster_name: Kiali instance name, used for logging

    Returns:
        MeshHealthSummary

    Raises:
        HealthFetchError: Any of the three fetches failed
        HealthParseError: Any payload did not match the expected shape
    """
    start_time = datetime.now()
    params = dict(query_params or {})
    rate_interval = params.get("rateInterval") or DEFAULT_RATE_INTERVAL
    params["rateInterval"] = rate_interval

    logger.info(
        "[网格健康摘要][%s]开始获取健康摘要 - 请求参数: namespaces=%s, params=%s",
        cluster_name,
        namespaces,
        params,
    )

    fetcher = ConcurrentResourceFetcher()
    results = await fetcher.fetch_multiple_resources(
        [
            {
                "name": entity_type.value,
                "func": kiali_client.health,
                "kwargs": {
                    "namespaces": namespaces,
                    "query_params": {**params, "type": entity_type.value},
                    "auth_header": auth_header,
                },
            }
            for entity_type in EntityType
        ]
    )

    # 按 app, service, workload 顺序报告第一个失败
    for entity_type in EntityType:
        result = results[entity_type.value]
        if isinstance(result, BaseException):
            logger.error(
                "[网格健康摘要][%s]获取%s健康数据失败 - 错误类型=%s, 错误信息=%s",
                cluster_name,
                entity_type.value,
                type(result).__name__,
                str(result),
            )
            raise HealthFetchError(entity_type.value, result) from result

    parsed = {
        entity_type: _parse_health(entity_type, results[entity_type.value])
        for entity_type in EntityType
    }

    summary = compute_health_summary(
        parsed[EntityType.APP],
        parsed[EntityType.SERVICE],
        parsed[EntityType.WORKLOAD],
        rate_interval,
    )

    processing_time = (datetime.now() - start_time).total_seconds()
    logger.info(
        "[网格健康摘要][%s]成功获取健康摘要 - 响应摘要: 整体状态=%s, 可用性=%.1f, 命名空间数=%d, 处理时间=%.2fs",
        cluster_name,
        summary.overall_status.value,
        summary.availability,
        summary.namespace_count,
        processing_time,
    )
    if processing_time > SLOW_SUMMARY_SECONDS:
        logger.warning(
            "[网格健康摘要][%s]健康摘要查询耗时较长 - 处理时间=%.2fs, 建议缩小命名空间范围",
            cluster_name,
            processing_time,
        )

    return summary


async def get_mesh_health_summary(
    kiali_client: KialiClient,
    namespaces: Optional[str] = None,
    query_params: Optional[Dict[str, str]] = None,
    auth_header: Optional[str] = None,
    cluster_name: str = "current",
) -> str:
    """Mesh health summary as pretty-printed JSON"""
    summary = await build_mesh_health_summary(
        kiali_client, namespaces, query_params, auth_header, cluster_name
    )
    return summary.to_json()


async def get_health(
    kiali_client: KialiClient,
    namespaces: Optional[str] = None,
    query_params: Optional[Dict[str, str]] = None,
    auth_header: Optional[str] = None,
) -> str:
    """
    Raw health for one entity type, straight from Kiali

    Raises:
        ValueError: type is not one of app, service, workload
    """
    params = dict(query_params or {})
    health_type = params.get("type")
    if health_type:
        try:
            EntityType(health_type)
        except ValueError:
            raise ValueError(
                "invalid type parameter: must be one of 'app', 'service', or 'workload'"
            ) from None
    return await kiali_client.health(namespaces, params, auth_header)


def _create_health_router(
    resolve_client, mode_logger: logging.Logger, tag: str
) -> APIRouter:
    """Shared routes; resolve_client(cluster_name) returns (client, label)"""
    router = APIRouter(prefix="/kiali/health", tags=[tag])
    error_handler = create_error_handler(mode_logger)

    @router.post("", response_model=HealthResponse)
    async def health(
        request: HealthRequest, authorization: Optional[str] = Header(None)
    ):
        """Get health for apps, services or workloads"""
        kiali_client, cluster_name = await resolve_client(request.cluster_name)
        params = _query_params(request.rate_interval, request.query_time)
        if request.type:
            params["type"] = request.type
        try:
            content = await get_health(
                kiali_client, request.namespaces, params, authorization
            )
        except ValueError as e:
            raise error_handler.handle_validation_error(
                str(e), cluster_name=cluster_name, resource_type="health"
            )
        except Exception as e:
            raise error_handler.handle_kiali_exception(
                e,
                cluster_name=cluster_name,
                resource_type="health",
                operation="get",
                namespace=request.namespaces,
            )
        return {"code": 200, "data": content}

    @router.post("/summary", response_model=HealthResponse)
    async def mesh_health_summary(
        request: MeshHealthSummaryRequest, authorization: Optional[str] = Header(None)
    ):
        """Get aggregated mesh health summary"""
        kiali_client, cluster_name = await resolve_client(request.cluster_name)
        try:
            summary = await build_mesh_health_summary(
                kiali_client,
                request.namespaces,
                _query_params(request.rate_interval, request.query_time),
                authorization,
                cluster_name,
            )
        except Exception as e:
            raise error_handler.handle_kiali_exception(
                e,
                cluster_name=cluster_name,
                resource_type="mesh_health_summary",
                operation="summary",
                namespace=request.namespaces,
            )
        return {"code": 200, "data": summary.model_dump(by_alias=True, mode="json")}

    return router


def create_server_health_summary_router(server_mode_instance) -> APIRouter:
    """Create Server mode health router"""
    error_handler = create_error_handler(server_mode_instance.logger)

    async def resolve_client(cluster_name: Optional[str]):
        if not cluster_name:
            raise error_handler.handle_validation_error(
                "Server模式下cluster_name参数必需", resource_type="health"
            )
        kiali_client = await server_mode_instance._get_kiali_client(cluster_name)
        if not kiali_client:
            raise HTTPException(status_code=404, detail="Kiali实例不存在")
        return kiali_client, cluster_name

    return _create_health_router(
        resolve_client, server_mode_instance.logger, "Kiali Health - Server"
    )


def create_instant_health_summary_router(instant_mode_instance) -> APIRouter:
    """Create Instant mode health router"""

    async def resolve_client(cluster_name: Optional[str]):
        return instant_mode_instance.kiali_client, "current"

    return _create_health_router(
        resolve_client, instant_mode_instance.logger, "Kiali Health - Instant"
    )
