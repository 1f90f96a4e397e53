# -*- coding: utf-8 -*-
"""
Kiali实例管理相关API (Server模式)
"""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel


class KialiInstanceConfig(BaseModel):
    """Kiali实例配置模型"""

    name: str
    url: str
    token: Optional[str] = None
    insecure: bool = False
    description: Optional[str] = None


class KialiInstanceRequest(BaseModel):
    """Kiali实例请求模型"""

    cluster_name: str


def create_server_instance_router(server_mode_instance) -> APIRouter:
    """创建Server模式的Kiali实例管理API路由"""
    router = APIRouter(prefix="/kiali/instance", tags=["Kiali Instance - Server"])

    @router.post("/add")
    async def add_instance(instance_config: KialiInstanceConfig):
        """添加Kiali实例配置"""
        try:
            await server_mode_instance._save_instance_config(instance_config)
            return {"code": 200, "message": f"Kiali实例 {instance_config.name} 添加成功"}
        except Exception as e:
            server_mode_instance.logger.error("添加Kiali实例失败: %s", e)
            return {"code": 500, "message": f"添加Kiali实例失败: {str(e)}"}

    @router.get("/list")
    async def list_instances():
        """获取所有Kiali实例列表"""
        instances = server_mode_instance._get_instance_configs()
        # 隐藏敏感信息
        for instance in instances:
            instance.pop("token", None)
        return {"code": 200, "data": {"instances": instances, "count": len(instances)}}

    @router.post("/remove")
    async def remove_instance(request: KialiInstanceRequest):
        """删除Kiali实例配置"""
        removed = await server_mode_instance._remove_instance_config(
            request.cluster_name
        )
        if not removed:
            return {"code": 404, "message": "Kiali实例不存在"}
        return {"code": 200, "message": f"Kiali实例 {request.cluster_name} 已删除"}

    return router
