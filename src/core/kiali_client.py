# -*- coding: utf-8 -*-
"""
Kiali HTTP客户端
负责构建请求URL、附加认证头并返回原始响应体
"""

import logging
from typing import Dict, Optional

import httpx

from src.core.config import KialiConfig
from src.core.error_handler import KialiAPIError


class KialiClient:
    """Thin async client for the Kiali REST API."""

    HEALTH_PATH = "/api/clusters/health"

    def __init__(
        self,
        base_url: Optional[str],
        token: Optional[str] = None,
        insecure: bool = False,
        require_oauth: bool = False,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        初始化Kiali客户端

        Args:
            base_url: Kiali服务地址
            token: 默认Bearer令牌
            insecure: 是否跳过TLS校验
            require_oauth: 无令牌时是否拒绝调用
            timeout: 单次请求超时时间（秒）
            transport: 自定义传输层（测试使用）
        """
        self.base_url = (base_url or "").strip()
        self.token = token
        self.require_oauth = require_oauth
        self.logger = logging.getLogger("meshpilot.KialiClient")
        self._client = httpx.AsyncClient(
            verify=not insecure, timeout=timeout, transport=transport
        )

    @classmethod
    def from_config(
        cls, kiali_config: KialiConfig, token: Optional[str] = None
    ) -> "KialiClient":
        """根据配置创建客户端"""
        return cls(
            kiali_config.url,
            token=token or kiali_config.token,
            insecure=kiali_config.insecure,
            require_oauth=kiali_config.require_oauth,
            timeout=kiali_config.timeout,
        )

    def _validate_and_get_base_url(self) -> str:
        if not self.base_url:
            raise KialiAPIError("kiali server URL not configured")
        return self.base_url.rstrip("/")

    def _auth_header(self, auth_header: Optional[str]) -> Optional[str]:
        if auth_header:
            return auth_header
        if self.token:
            if self.token.lower().startswith("bearer "):
                return self.token
            return f"Bearer {self.token}"
        if self.require_oauth:
            raise KialiAPIError("authorization token required for Kiali call")
        return None

    async def _execute_request(
        self,
        path: str,
        params: Dict[str, str],
        auth_header: Optional[str] = None,
    ) -> str:
        """执行GET请求，非2xx响应转换为KialiAPIError"""
        endpoint = self._validate_and_get_base_url() + path
        headers = {}
        authorization = self._auth_header(auth_header)
        if authorization:
            headers["Authorization"] = authorization

        self.logger.info("kiali API call: %s params=%s", endpoint, params)
        response = await self._client.get(endpoint, params=params, headers=headers)

        if not response.is_success:
            body = response.text.strip()
            if body:
                raise KialiAPIError(
                    f"kiali API error: {body}", status_code=response.status_code
                )
            raise KialiAPIError(
                f"kiali API error: status {response.status_code}",
                status_code=response.status_code,
            )
        return response.text

    async def health(
        self,
        namespaces: Optional[str] = None,
        query_params: Optional[Dict[str, str]] = None,
        auth_header: Optional[str] = None,
    ) -> str:
        """
        获取应用/服务/工作负载健康状态

        Args:
            namespaces: 逗号分隔的命名空间列表，为空则查询所有命名空间
            query_params: 额外查询参数 (type, rateInterval, queryTime)
            auth_header: 完整的Authorization头，优先于默认令牌

        Returns:
            str: Kiali原始JSON响应
        """
        params: Dict[str, str] = {}
        if namespaces:
            params["namespaces"] = namespaces
        for key, value in (query_params or {}).items():
            if value:
                params[key] = value
        return await self._execute_request(self.HEALTH_PATH, params, auth_header)

    async def close(self):
        """关闭底层连接"""
        await self._client.aclose()
