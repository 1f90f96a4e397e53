# -*- coding: utf-8 -*-
"""
基础模式类
定义通用的启动模式接口
"""

import logging
from abc import ABC, abstractmethod

from src.core.config import Settings


class BaseMode(ABC):
    """基础模式抽象类, 子类负责创建Kiali客户端和FastAPI应用"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.logger = logging.getLogger(f"meshpilot.{self.__class__.__name__}")

    @abstractmethod
    def _create_app(self):
        """创建FastAPI应用"""

    @abstractmethod
    async def start(self, host: str = "0.0.0.0", port: int = 8000):
        """启动服务"""

    @abstractmethod
    async def stop(self):
        """停止服务并释放Kiali连接"""
