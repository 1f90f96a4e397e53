# -*- coding: utf-8 -*-
"""
统一错误处理模块
为Kiali健康API提供一致的错误响应格式
"""

import asyncio
import logging
from enum import Enum
from functools import wraps
from typing import Optional

import httpx
from fastapi import HTTPException
from pydantic import BaseModel


class ErrorType(str, Enum):
    """错误类型枚举"""

    CONNECTION_ERROR = "connection_error"
    AUTH_ERROR = "auth_error"
    NOT_FOUND = "not_found"
    PROCESSING_ERROR = "processing_error"
    TIMEOUT_ERROR = "timeout_error"
    VALIDATION_ERROR = "validation_error"


class KialiAPIError(Exception):
    """Kiali returned a non-2xx response or refused the call."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class HealthFetchError(Exception):
    """Fetching health for one entity type failed."""

    def __init__(self, entity_type: str, cause: BaseException):
        super().__init__(f"failed to fetch {entity_type} health: {cause}")
        self.entity_type = entity_type
        self.cause = cause


class HealthParseError(Exception):
    """A health payload did not match the expected shape."""

    def __init__(self, entity_type: str, cause: BaseException):
        super().__init__(f"failed to parse {entity_type} health: {cause}")
        self.entity_type = entity_type
        self.cause = cause


class ErrorDetails(BaseModel):
    """错误详情模型"""

    cluster_name: Optional[str] = None
    resource_type: Optional[str] = None
    operation: Optional[str] = None
    namespace: Optional[str] = None


class ErrorResponse(BaseModel):
    """统一错误响应模型"""

    code: int
    message: str
    error_type: ErrorType
    details: ErrorDetails


class ResourceErrorHandler:
    """Kiali API错误处理器"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _log_prefix(
        self, resource_type: Optional[str], cluster_name: Optional[str]
    ) -> str:
        prefix = f"[{resource_type or '健康'}查询]"
        if cluster_name:
            prefix += f"[{cluster_name}]"
        return prefix

    def handle_kiali_exception(
        self,
        e: BaseException,
        cluster_name: Optional[str] = None,
        resource_type: Optional[str] = None,
        operation: Optional[str] = None,
        namespace: Optional[str] = None,
    ) -> HTTPException:
        """处理Kiali调用及健康聚合异常"""

        details = ErrorDetails(
            cluster_name=cluster_name,
            resource_type=resource_type,
            operation=operation,
            namespace=namespace,
        )
        log_prefix = self._log_prefix(resource_type, cluster_name)

        # 拉取失败时按底层原因分类
        upstream = e.cause if isinstance(e, HealthFetchError) else e

        if isinstance(upstream, KialiAPIError):
            if upstream.status_code == 401:
                error_type = ErrorType.AUTH_ERROR
                status_code = 401
            elif upstream.status_code == 403:
                error_type = ErrorType.AUTH_ERROR
                status_code = 403
            elif upstream.status_code == 404:
                error_type = ErrorType.NOT_FOUND
                status_code = 404
            else:
                error_type = ErrorType.CONNECTION_ERROR
                status_code = 502
            self.logger.error(
                "%sKiali API错误 (状态码: %s): %s",
                log_prefix,
                upstream.status_code,
                str(e),
            )

        elif isinstance(upstream, asyncio.TimeoutError) or isinstance(
            upstream, httpx.TimeoutException
        ):
            error_type = ErrorType.TIMEOUT_ERROR
            status_code = 408
            self.logger.error("%s操作超时: %s", log_prefix, str(e))

        elif isinstance(upstream, (ConnectionError, httpx.TransportError)):
            error_type = ErrorType.CONNECTION_ERROR
            status_code = 502
            self.logger.error("%s连接错误: %s", log_prefix, str(e))

        elif isinstance(e, HealthParseError):
            error_type = ErrorType.PROCESSING_ERROR
            status_code = 502
            self.logger.error("%s响应解析失败: %s", log_prefix, str(e))

        else:
            error_type = ErrorType.PROCESSING_ERROR
            status_code = 500 if not isinstance(e, HealthFetchError) else 502
            self.logger.error("%s处理错误: %s", log_prefix, str(e))

        error_response = ErrorResponse(
            code=status_code,
            message=str(e) or "操作超时",
            error_type=error_type,
            details=details,
        )

        return HTTPException(status_code=status_code, detail=error_response.model_dump())

    def handle_validation_error(
        self,
        message: str,
        cluster_name: Optional[str] = None,
        resource_type: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> HTTPException:
        """处理验证错误"""

        details = ErrorDetails(
            cluster_name=cluster_name, resource_type=resource_type, operation=operation
        )
        self.logger.warning(
            "%s验证错误: %s", self._log_prefix(resource_type, cluster_name), message
        )

        error_response = ErrorResponse(
            code=400,
            message=message,
            error_type=ErrorType.VALIDATION_ERROR,
            details=details,
        )

        return HTTPException(status_code=400, detail=error_response.model_dump())


def with_timeout(timeout_seconds: float = 30):
    """超时装饰器"""

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await asyncio.wait_for(
                    func(*args, **kwargs), timeout=timeout_seconds
                )
            except asyncio.TimeoutError:
                raise asyncio.TimeoutError(f"操作超时 ({timeout_seconds}秒)")

        return wrapper

    return decorator


def create_error_handler(logger: logging.Logger) -> ResourceErrorHandler:
    """创建错误处理器实例"""
    return ResourceErrorHandler(logger)
