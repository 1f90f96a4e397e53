# -*- coding: utf-8 -*-
"""
配置管理模块
支持从环境变量、配置文件等多种方式加载配置
"""

import logging
import os
import yaml
from typing import Optional, Dict, Any
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class DatabaseConfig:
    """数据库配置 (Server模式保存Kiali实例)"""

    path: str = "meshpilot.db"


@dataclass
class KialiConfig:
    """Kiali配置"""

    url: Optional[str] = None
    token: Optional[str] = None
    insecure: bool = False  # 是否跳过TLS校验
    require_oauth: bool = False
    timeout: float = 30.0


@dataclass
class K8sConfig:
    """Kubernetes配置, 仅用于解析ServiceAccount令牌"""

    in_cluster: bool = True  # 是否在集群内运行
    kubeconfig_path: Optional[str] = None


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    """全局配置类"""

    # 基础配置
    app_name: str = "MeshPilot"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # 子配置
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    kiali: KialiConfig = field(default_factory=KialiConfig)
    k8s: K8sConfig = field(default_factory=K8sConfig)

    def __init__(self, config_file: Optional[str] = None):
        """初始化配置"""
        self.app_name = "MeshPilot"
        self.version = "0.1.0"
        self.database = DatabaseConfig()
        self.kiali = KialiConfig()
        self.k8s = K8sConfig()

        # 从环境变量加载
        self._load_from_env()

        # 从配置文件加载
        if config_file:
            self._load_from_file(config_file)

    def _load_from_env(self):
        """从环境变量加载配置"""
        self.debug = _env_bool("DEBUG", "false")
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

        if db_path := os.getenv("DATABASE_PATH"):
            self.database.path = db_path

        # Kiali配置
        if url := os.getenv("KIALI_URL"):
            self.kiali.url = url
        if token := os.getenv("KIALI_TOKEN"):
            self.kiali.token = token
        self.kiali.insecure = _env_bool("KIALI_INSECURE", "false")
        self.kiali.require_oauth = _env_bool("KIALI_REQUIRE_OAUTH", "false")
        if timeout := os.getenv("KIALI_TIMEOUT"):
            try:
                self.kiali.timeout = float(timeout)
            except ValueError:
                logger.warning("KIALI_TIMEOUT无效, 使用默认值: %s", timeout)

        # K8s配置
        self.k8s.in_cluster = _env_bool("K8S_IN_CLUSTER", "true")
        if kubeconfig := os.getenv("KUBECONFIG"):
            self.k8s.kubeconfig_path = kubeconfig

    def _load_from_file(self, config_file: str):
        """从配置文件加载配置"""
        config_path = Path(config_file)
        if not config_path.exists():
            logger.warning("配置文件不存在: %s", config_file)
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error("加载配置文件失败: %s", e)
            return

        self._update_from_dict(config_data)

    def _update_from_dict(self, config_data: Dict[str, Any]):
        """从字典更新配置"""
        if not config_data:
            return

        for key in ["app_name", "version", "debug", "log_level"]:
            if key in config_data:
                setattr(self, key, config_data[key])

        sections = {
            "database": (self.database, ["path"]),
            "kiali": (
                self.kiali,
                ["url", "token", "insecure", "require_oauth", "timeout"],
            ),
            "k8s": (self.k8s, ["in_cluster", "kubeconfig_path"]),
        }
        for section, (target, keys) in sections.items():
            section_data = config_data.get(section) or {}
            for key in keys:
                if key in section_data:
                    setattr(target, key, section_data[key])
