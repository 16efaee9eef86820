#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
配置工具
学习过程的不可变配置对象及YAML加载
"""
import math
import yaml
from dataclasses import dataclass, fields
from enum import Enum
from typing import Dict, Any


class ConfigurationError(ValueError):
    """配置取值非法"""


class CandidateOrdering(str, Enum):
    """候选父节点的排序策略"""
    INSERTION_ORDER = 'insertion_order'
    PROXY_SCORE = 'proxy_score'


class IndependenceTestKind(str, Enum):
    """结构搜索使用的独立性检验"""
    LIKELIHOOD_RATIO = 'likelihood_ratio'
    CTPC = 'ctpc'


@dataclass(frozen=True)
class LearningConfig:
    """
    结构学习与参数估计的配置

    创建时立即校验，之后不可修改，可在多个并发学习任务间安全共享

    Attributes:
        max_parents: 每个节点父节点集合的最大基数
        significance_level: 独立性检验的显著性水平 ∈ (0, 1)
        smoothing_alpha: 伪计数 α（估计器与检验共用）
        smoothing_tau: 伪时间 τ（估计器与检验共用）
        candidate_ordering: 候选父节点排序策略
        validation_passes: 验证轮数上限（0表示不做验证）
        independence_test: 独立性检验类型
        n_jobs: 并行搜索的工作线程数
        enforce_acyclic: 提交边时是否保证无环
        show_progress: 是否显示进度条
    """
    max_parents: int = 3
    significance_level: float = 0.05
    smoothing_alpha: float = 1.0
    smoothing_tau: float = 1.0
    candidate_ordering: CandidateOrdering = CandidateOrdering.PROXY_SCORE
    validation_passes: int = 2
    independence_test: IndependenceTestKind = IndependenceTestKind.LIKELIHOOD_RATIO
    n_jobs: int = 1
    enforce_acyclic: bool = True
    show_progress: bool = False

    def __post_init__(self):
        """校验配置取值，并把字符串转换为枚举"""
        # frozen dataclass 只能通过 object.__setattr__ 规范化字段
        try:
            object.__setattr__(
                self, 'candidate_ordering', CandidateOrdering(self.candidate_ordering)
            )
        except ValueError:
            raise ConfigurationError(
                f"未知的候选排序策略: {self.candidate_ordering}"
            ) from None
        try:
            object.__setattr__(
                self, 'independence_test', IndependenceTestKind(self.independence_test)
            )
        except ValueError:
            raise ConfigurationError(
                f"未知的独立性检验类型: {self.independence_test}"
            ) from None

        _check_int('max_parents', self.max_parents, minimum=0)
        _check_int('validation_passes', self.validation_passes, minimum=0)
        _check_int('n_jobs', self.n_jobs, minimum=1)

        if not _is_real(self.significance_level) or not 0.0 < self.significance_level < 1.0:
            raise ConfigurationError(
                f"significance_level 必须在 (0, 1) 区间内: {self.significance_level}"
            )
        for name in ('smoothing_alpha', 'smoothing_tau'):
            value = getattr(self, name)
            if not _is_real(value) or value < 0 or not math.isfinite(value):
                raise ConfigurationError(f"{name} 必须是非负有限实数: {value}")

        for name in ('enforce_acyclic', 'show_progress'):
            if not isinstance(getattr(self, name), bool):
                raise ConfigurationError(f"{name} 必须是布尔值")

    @classmethod
    def from_dict(cls, options: Dict[str, Any]) -> 'LearningConfig':
        """
        从字典构造配置

        Args:
            options: 配置项字典（通常来自YAML的 learning 段）

        Returns:
            LearningConfig对象
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ConfigurationError(f"未知的配置项: {', '.join(unknown)}")
        return cls(**options)

    def to_dict(self) -> Dict[str, Any]:
        """导出为普通字典"""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = value.value if isinstance(value, Enum) else value
        return result


def _is_real(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_int(name: str, value, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ConfigurationError(f"{name} 必须是 ≥ {minimum} 的整数: {value}")


def load_config(config_path: str = "config.yaml") -> Dict[str, Any]:
    """
    加载配置文件

    Args:
        config_path: 配置文件路径

    Returns:
        配置字典
    """
    with open(config_path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f)
    return config or {}


def load_learning_config(config_path: str = "config.yaml") -> LearningConfig:
    """
    加载配置文件中的 learning 段

    Args:
        config_path: 配置文件路径

    Returns:
        LearningConfig对象
    """
    config = load_config(config_path)
    return LearningConfig.from_dict(config.get('learning') or {})
