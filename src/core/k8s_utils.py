# -*- coding: utf-8 -*-
"""
K8s工具模块
从集群内ServiceAccount或kubeconfig解析访问Kiali使用的Bearer令牌
"""

import logging
from typing import Optional

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from src.core.config import K8sConfig

logger = logging.getLogger(__name__)


def _normalize_bearer(value: Optional[str]) -> Optional[str]:
    """kubernetes客户端可能写入 'bearer xxx'，统一为 'Bearer xxx'"""
    if not value:
        return None
    scheme, _, token = value.partition(" ")
    if not token:
        return f"Bearer {scheme}"
    if scheme.lower() == "bearer":
        return f"Bearer {token}"
    return value


def resolve_service_account_auth(k8s_config: K8sConfig) -> Optional[str]:
    """
    解析Authorization头

    优先使用集群内配置，失败后回退到本地kubeconfig（开发环境）。

    Args:
        k8s_config: Kubernetes配置

    Returns:
        Optional[str]: "Bearer <token>" 或 None（kubeconfig使用证书认证时）
    """
    configuration = client.Configuration()

    if k8s_config.in_cluster:
        try:
            config.load_incluster_config(client_configuration=configuration)
            logger.info("成功加载集群内ServiceAccount令牌")
            return _normalize_bearer(configuration.api_key.get("authorization"))
        except ConfigException as e:
            logger.warning("加载集群内配置失败, 尝试本地kubeconfig: %s", e)

    try:
        config.load_kube_config(
            config_file=k8s_config.kubeconfig_path,
            client_configuration=configuration,
        )
    except (ConfigException, OSError) as e:
        logger.warning("加载kubeconfig失败, Kiali调用将不携带令牌: %s", e)
        return None

    auth = _normalize_bearer(configuration.api_key.get("authorization"))
    if auth:
        logger.info("使用本地kubeconfig令牌访问Kiali")
    else:
        logger.info("kubeconfig未包含令牌, Kiali调用将不携带令牌")
    return auth
