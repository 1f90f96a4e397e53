# -*- coding: utf-8 -*-
"""
日志配置模块
"""

import logging
import sys
from typing import Optional


def setup_logger(level: str = "INFO", name: Optional[str] = None) -> logging.Logger:
    """设置日志配置"""
    logger = logging.getLogger(name or "meshpilot")

    # 避免重复添加handler
    if logger.handlers:
        return logger

    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # src.* 模块使用 __name__ 作为logger名称, 共享同一个handler
    src_logger = logging.getLogger("src")
    src_logger.setLevel(log_level)
    if not src_logger.handlers:
        src_logger.addHandler(console_handler)

    return logger
