# -*- coding: utf-8 -*-
"""
Server模式
支持多Kiali实例管理，使用轻量化数据库存储实例配置
"""

import sqlite3
from typing import Dict, List, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.openapi.docs import get_swagger_ui_html

from src.core.config import Settings
from src.core.kiali_client import KialiClient
from .base_mode import BaseMode
from .kiali.router import create_kiali_router


class ServerMode(BaseMode):
    """Server模式实现"""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.app = None
        self.db_path = settings.database.path
        self.kiali_clients: Dict[str, KialiClient] = {}
        self._init_database()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_database(self):
        """初始化数据库"""
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kiali_instances (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT UNIQUE NOT NULL,
                        url TEXT NOT NULL,
                        token TEXT,
                        insecure INTEGER DEFAULT 0,
                        description TEXT,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """
                )
            self.logger.info("数据库初始化成功: %s", self.db_path)
        except sqlite3.Error as e:
            self.logger.error("数据库初始化失败: %s", e)
            raise

    async def _save_instance_config(self, instance_config):
        """保存Kiali实例配置到数据库"""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO kiali_instances
                (name, url, token, insecure, description, updated_at)
                VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
            """,
                (
                    instance_config.name,
                    instance_config.url,
                    instance_config.token,
                    int(instance_config.insecure),
                    instance_config.description,
                ),
            )

        # 配置变更后丢弃旧客户端
        await self._close_client(instance_config.name)
        self.logger.info("Kiali实例 %s 保存成功", instance_config.name)

    async def _remove_instance_config(self, instance_name: str) -> bool:
        """删除Kiali实例配置"""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM kiali_instances WHERE name = ?", (instance_name,)
            )
            removed = cursor.rowcount > 0

        await self._close_client(instance_name)
        if removed:
            self.logger.info("Kiali实例 %s 已删除", instance_name)
        return removed

    def _get_instance_configs(self) -> List[Dict]:
        """获取所有Kiali实例配置"""
        try:
            with self._connect() as conn:
                conn.row_factory = sqlite3.Row
                rows = conn.execute(
                    "SELECT * FROM kiali_instances ORDER BY created_at DESC"
                ).fetchall()
            return [dict(row) for row in rows]
        except sqlite3.Error as e:
            self.logger.error("获取Kiali实例配置失败: %s", e)
            return []

    def _get_instance_config(self, instance_name: str) -> Optional[Dict]:
        """获取指定Kiali实例配置"""
        try:
            with self._connect() as conn:
                conn.row_factory = sqlite3.Row
                row = conn.execute(
                    "SELECT * FROM kiali_instances WHERE name = ?", (instance_name,)
                ).fetchone()
            return dict(row) if row else None
        except sqlite3.Error as e:
            self.logger.error("获取Kiali实例配置失败: %s", e)
            return None

    async def _get_kiali_client(self, instance_name: str) -> Optional[KialiClient]:
        """获取或创建指定Kiali实例的客户端"""
        if instance_name in self.kiali_clients:
            return self.kiali_clients[instance_name]

        instance_config = self._get_instance_config(instance_name)
        if not instance_config:
            return None

        kiali_client = KialiClient(
            instance_config["url"],
            token=instance_config["token"],
            insecure=bool(instance_config["insecure"]),
            require_oauth=self.settings.kiali.require_oauth,
            timeout=self.settings.kiali.timeout,
        )
        self.kiali_clients[instance_name] = kiali_client
        self.logger.info("Kiali实例 %s 的客户端创建成功", instance_name)
        return kiali_client

    async def _close_client(self, instance_name: str):
        kiali_client = self.kiali_clients.pop(instance_name, None)
        if kiali_client:
            await kiali_client.close()

    def _create_app(self) -> FastAPI:
        """创建FastAPI应用"""
        app = FastAPI(
            title=self.settings.app_name,
            version=self.settings.version,
            description="MeshPilot - Server模式",
            docs_url=None,
        )

        @app.get("/")
        async def root():
            return {
                "code": 200,
                "data": {
                    "message": "MeshPilot - Server模式",
                    "version": self.settings.version,
                    "mode": "server",
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
            return {"code": 200, "data": {"status": "healthy", "mode": "server"}}

        app.include_router(create_kiali_router(self, "server"))

        return app

    async def start(self, host: str = "0.0.0.0", port: int = 8000):
        """启动Server模式"""
        self.logger.info("正在启动Server模式...")

        self.app = self._create_app()

        config = uvicorn.Config(
            self.app, host=host, port=port, log_level=self.settings.log_level.lower()
        )
        server = uvicorn.Server(config)

        self.logger.info("Server模式启动成功，监听 %s:%d", host, port)
        try:
            await server.serve()
        finally:
            await self.stop()

    async def stop(self):
        """停止服务"""
        self.logger.info("正在停止Server模式...")
        for instance_name in list(self.kiali_clients):
            try:
                await self._close_client(instance_name)
            except Exception as e:
                self.logger.error("关闭Kiali客户端失败: %s", e)
