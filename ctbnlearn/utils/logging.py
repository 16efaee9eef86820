#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
日志工具
所有模块的日志记录器挂在包级记录器 ctbnlearn 下，处理器只配置在包级记录器上
"""
import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

PACKAGE_LOGGER = "ctbnlearn"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE = f"{PACKAGE_LOGGER}.log"


def _parse_level(level) -> int:
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    value = getattr(logging, str(level).upper(), None)
    if not isinstance(value, int):
        raise ValueError(f"未知的日志级别: {level!r}")
    return value


def configure_logging(level="INFO", log_dir: Optional[str] = "logs") -> logging.Logger:
    """
    配置包级日志记录器

    重复调用时替换之前的处理器，已创建的模块记录器随之生效

    Args:
        level: 日志级别（名称或数值）
        log_dir: 日志目录（None表示只输出到控制台）

    Returns:
        包级日志记录器
    """
    level = _parse_level(level)
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(
            os.path.join(log_dir, LOG_FILE),
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def configure_logging_from_config(config: Dict[str, Any]) -> logging.Logger:
    """
    按配置字典的 logging 段配置日志

    Args:
        config: load_config 读取的完整配置

    Returns:
        包级日志记录器
    """
    section = config.get('logging') or {}
    return configure_logging(
        level=section.get('level', 'INFO'),
        log_dir=section.get('log_dir', 'logs')
    )


def setup_logger(name: str) -> logging.Logger:
    """
    获取模块日志记录器

    包级记录器尚未配置时使用默认配置

    Args:
        name: 模块名

    Returns:
        名为 ctbnlearn.<name> 的日志记录器
    """
    if not logging.getLogger(PACKAGE_LOGGER).handlers:
        configure_logging()
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
