#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
条件强度矩阵（CIM）估计
从充分统计量中估计转移速率
"""
import numpy as np
from typing import Dict, Optional

from ctbnlearn.ctbn.statistics import SufficientStatistics, SufficientStatisticsCalculator
from ctbnlearn.utils.logging import setup_logger

logger = setup_logger("cim_estimator")

# 行和为零的容差
ROW_SUM_TOLERANCE = 1e-8


def smoothed_rates(
    transitions: np.ndarray,
    residence_times: np.ndarray,
    alpha: float,
    tau: float
) -> np.ndarray:
    """
    计算非对角转移速率

    有停留时间的行 (T_i > 0) 使用最大似然估计 q_ij = M_ij / T_i；
    未观测的行 (T_i = 0) 使用平滑 q_ij = (M_ij + α) / (T_i + τ) = α / τ，
    τ = 0 时该行全部置0。

    Args:
        transitions: 转移次数，形状 (..., k, k)
        residence_times: 停留时间，形状 (..., k)
        alpha: 伪计数
        tau: 伪时间

    Returns:
        对角线为0的速率数组，形状与 transitions 相同
    """
    M = np.asarray(transitions, dtype=float)
    T = np.asarray(residence_times, dtype=float)
    k = M.shape[-1]

    observed = (T > 0)[..., np.newaxis]
    rates = np.divide(M, T[..., np.newaxis], out=np.zeros_like(M),
                      where=np.broadcast_to(observed, M.shape))

    if tau > 0:
        prior = np.broadcast_to((M + alpha) / (T + tau)[..., np.newaxis], M.shape)
        rates = np.where(observed, rates, prior)
    rates[..., np.arange(k), np.arange(k)] = 0.0
    return rates


def rates_to_cim(rates: np.ndarray) -> np.ndarray:
    """非对角速率补上对角线 q_ii = -Σ_{j≠i} q_ij"""
    cims = rates.copy()
    k = cims.shape[-1]
    cims[..., np.arange(k), np.arange(k)] = 0.0
    cims[..., np.arange(k), np.arange(k)] = -cims.sum(axis=-1)
    return cims


def validate_cim(
    cims: np.ndarray,
    cardinality: int,
    n_configurations: Optional[int] = None,
    atol: float = ROW_SUM_TOLERANCE
) -> None:
    """
    校验CIM

    Args:
        cims: 形状 (配置数, k, k) 的数组
        cardinality: 节点状态数 k
        n_configurations: 期望的配置数
        atol: 行和容差
    """
    if cims.ndim != 3 or cims.shape[1:] != (cardinality, cardinality):
        raise ValueError(f"CIM形状 {cims.shape} 与状态数 {cardinality} 不兼容")
    if n_configurations is not None and cims.shape[0] != n_configurations:
        raise ValueError(f"CIM包含 {cims.shape[0]} 个配置，期望 {n_configurations} 个")
    if not np.all(np.isfinite(cims)):
        raise ValueError("CIM包含非有限值")

    off_diagonal = ~np.eye(cardinality, dtype=bool)
    if np.any(cims[:, off_diagonal] < 0):
        raise ValueError("CIM的非对角元素必须非负")

    row_sums = cims.sum(axis=2)
    scale = np.maximum(1.0, np.abs(cims).max(axis=2))
    if np.any(np.abs(row_sums) > atol * scale):
        raise ValueError("CIM每一行的和必须为0")


class ParameterEstimator:
    """
    CIM估计器

    观测到的行使用最大似然估计 M / T，
    只有停留时间为0的行使用加性平滑 (M + α) / (T + τ)；
    α与τ同时被独立性检验使用
    """

    def __init__(self, alpha: float = 1.0, tau: float = 1.0):
        """
        初始化估计器

        Args:
            alpha: 伪计数 α ≥ 0
            tau: 伪时间 τ ≥ 0
        """
        if alpha < 0 or tau < 0:
            raise ValueError(f"平滑参数必须非负: alpha={alpha}, tau={tau}")
        self.alpha = float(alpha)
        self.tau = float(tau)

    @classmethod
    def from_config(cls, config) -> 'ParameterEstimator':
        return cls(config.smoothing_alpha, config.smoothing_tau)

    def estimate(self, stats: SufficientStatistics) -> np.ndarray:
        """
        估计每个父节点配置下的CIM

        Args:
            stats: 充分统计量

        Returns:
            形状 (配置数, k, k) 的CIM数组
        """
        cims = rates_to_cim(
            smoothed_rates(stats.transitions, stats.residence_times, self.alpha, self.tau)
        )

        unobserved = int(np.count_nonzero(stats.residence_times == 0))
        if unobserved:
            logger.debug(f"节点 {stats.node}: {unobserved} 个 (配置, 状态) 没有观测数据")

        validate_cim(cims, stats.cardinality, stats.n_configurations)
        return cims

    def estimate_network_parameters(self, network, store, calculator=None) -> Dict[str, np.ndarray]:
        """
        按网络当前的父节点集合估计所有节点的CIM并写回网络

        Args:
            network: CTBNetwork对象
            store: 轨迹集合
            calculator: 充分统计量计算器（None表示新建）

        Returns:
            变量名到CIM数组的字典
        """
        calculator = calculator or SufficientStatisticsCalculator(store)
        result = {}
        for node in network.node_indices:
            stats = calculator.compute(node, network.get_parents(node))
            cims = self.estimate(stats)
            network.set_cims(node, cims)
            result[network.get_variable(node).name] = cims
        logger.info(f"参数估计完成，共 {len(result)} 个节点")
        return result
