# -*- coding: utf-8 -*-
"""
异步并发工具
提供并发拉取与屏障汇合功能
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List


class ConcurrentResourceFetcher:
    """并发资源获取器"""

    def __init__(self):
        self.logger = logging.getLogger("meshpilot.ConcurrentResourceFetcher")

    async def fetch_multiple_resources(
        self, fetch_configs: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        并发获取多个资源，等待全部完成后返回

        Each task writes only its own slot; failures are returned in place of
        the result so the caller decides how to treat them.

        Args:
            fetch_configs: 获取配置列表，每个配置包含:
                - name: 资源名称
                - func: 协程函数
                - args: 函数参数
                - kwargs: 函数关键字参数

        Returns:
            Dict[str, Any]: 资源名称到结果（或异常）的映射
        """
        if not fetch_configs:
            return {}

        start_time = time.time()
        self.logger.debug("开始并发获取 %d 个资源", len(fetch_configs))

        tasks = []
        for i, config in enumerate(fetch_configs):
            task = asyncio.create_task(
                self._fetch_single_resource(config),
                name=config.get("name", f"resource_{i}"),
            )
            tasks.append(task)

        # 屏障: 等待所有任务完成; 调用方取消时gather会取消全部子任务
        results = await asyncio.gather(*tasks, return_exceptions=True)

        resource_results = {}
        for i, (config, result) in enumerate(zip(fetch_configs, results)):
            resource_name = config.get("name", f"resource_{i}")
            if isinstance(result, BaseException):
                self.logger.warning(
                    "获取资源 %s 失败: %s - %s",
                    resource_name,
                    type(result).__name__,
                    str(result),
                )
            resource_results[resource_name] = result

        self.logger.debug(
            "并发获取完成，获取 %d 个资源，耗时 %.2f 秒",
            len(fetch_configs),
            time.time() - start_time,
        )
        return resource_results

    async def _fetch_single_resource(self, config: Dict[str, Any]) -> Any:
        """获取单个资源"""
        func: Callable[..., Awaitable[Any]] = config.get("func")
        if not func:
            raise ValueError("获取函数不能为空")
        return await func(*config.get("args", []), **config.get("kwargs", {}))
