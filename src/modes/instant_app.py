# -*- coding: utf-8 -*-
"""
即时App模式
使用配置中的单个Kiali实例，适合作为Pod部署在网格集群中
"""

import uvicorn
from fastapi import FastAPI
from fastapi.openapi.docs import get_swagger_ui_html

from src.core.config import Settings
from src.core.k8s_utils import resolve_service_account_auth
from src.core.kiali_client import KialiClient
from .base_mode import BaseMode
from .kiali.router import create_kiali_router


class InstantAppMode(BaseMode):
    """即时App模式实现"""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.app = None
        self.kiali_client = None

    async def _init_kiali_client(self):
        """初始化Kiali客户端"""
        if not self.settings.kiali.url:
            self.logger.warning("未配置KIALI_URL, 健康查询将返回错误")

        token = self.settings.kiali.token
        if not token:
            # 未配置令牌时使用ServiceAccount令牌
            token = resolve_service_account_auth(self.settings.k8s)

        self.kiali_client = KialiClient.from_config(self.settings.kiali, token=token)
        self.logger.info("Kiali客户端初始化成功: %s", self.settings.kiali.url)

    def _create_app(self) -> FastAPI:
        """创建FastAPI应用"""
        app = FastAPI(
            title=self.settings.app_name,
            version=self.settings.version,
            description="MeshPilot - 即时App模式",
            docs_url=None,
        )

        @app.get("/")
        async def root():
            return {
                "code": 200,
                "data": {
                    "message": "MeshPilot - 即时App模式",
                    "version": self.settings.version,
                    "mode": "instant",
                },
            }

        @app.get("/docs", include_in_schema=False)
        async def custom_swagger_ui_html():
            return get_swagger_ui_html(
                openapi_url=app.openapi_url, title="MeshPilot APIs"
            )

        @app.get("/health")
        async def health():
            """健康检查"""
            return {"code": 200, "data": {"status": "healthy", "mode": "instant"}}

        app.include_router(create_kiali_router(self, "instant"))

        return app

    async def start(self, host: str = "0.0.0.0", port: int = 8000):
        """启动即时App模式"""
        self.logger.info("正在启动即时App模式...")

        await self._init_kiali_client()
        self.app = self._create_app()

        server_config = uvicorn.Config(
            self.app, host=host, port=port, log_level=self.settings.log_level.lower()
        )
        server = uvicorn.Server(server_config)

        self.logger.info("即时App模式启动成功，监听 %s:%d", host, port)
        try:
            await server.serve()
        finally:
            await self.stop()

    async def stop(self):
        """停止服务"""
        self.logger.info("正在停止即时App模式...")
        if self.kiali_client:
            await self.kiali_client.close()
            self.kiali_client = None
