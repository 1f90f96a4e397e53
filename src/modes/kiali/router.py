# -*- coding: utf-8 -*-
"""
Kiali统一API路由注册器
提供统一的Kiali API路由注册功能，支持Server和Instant模式
"""

import logging
from typing import List

from fastapi import APIRouter

from .health_summary_api import (
    create_server_health_summary_router,
    create_instant_health_summary_router,
)
from .instance_api import create_server_instance_router

logger = logging.getLogger(__name__)


def create_kiali_router(mode_instance, mode_type: str) -> APIRouter:
    """
    创建统一的Kiali API路由器

    Args:
        mode_instance: 模式实例 (ServerMode 或 InstantAppMode)
        mode_type: 模式类型 ("server" 或 "instant")

    Returns:
        APIRouter: 配置好的Kiali API路由器

    Raises:
        ValueError: 当mode_type不支持时
    """
    mode = mode_type.lower()
    routers: List[APIRouter]
    if mode == "server":
        routers = [
            create_server_instance_router(mode_instance),
            create_server_health_summary_router(mode_instance),
        ]
    elif mode == "instant":
        routers = [create_instant_health_summary_router(mode_instance)]
    else:
        raise ValueError(f"不支持的模式类型: {mode_type}")

    main_router = APIRouter()
    for router in routers:
        main_router.include_router(router)

    logger.info(
        "[Kiali路由器][%s]成功创建Kiali API路由器 - 响应摘要: 子路由器数量=%d",
        mode_type,
        len(routers),
    )
    return main_router
