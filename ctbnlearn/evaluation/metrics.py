#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
评估指标
学习得到的结构与真实结构的比较，以及CIM估计误差
"""
import numpy as np
from typing import Dict, Iterable, Tuple
from sklearn.metrics import precision_score, recall_score, f1_score

from ctbnlearn.ctbn.structure import CTBNetwork
from ctbnlearn.utils.logging import setup_logger

logger = setup_logger("metrics")


def adjacency_matrix(network: CTBNetwork) -> np.ndarray:
    """网络的邻接矩阵 A[父, 子]"""
    n = network.n_nodes
    adj = np.zeros((n, n), dtype=int)
    for parent, child in network.edges:
        adj[parent, child] = 1
    return adj


def compare_structures(
    network: CTBNetwork,
    true_edges: Iterable[Tuple[str, str]]
) -> Dict[str, float]:
    """
    比较学习结构与真实结构

    Args:
        network: 学习得到的网络
        true_edges: 真实边 (父节点名, 子节点名)

    Returns:
        指标字典（precision, recall, f1, shd 及边计数）
    """
    n = network.n_nodes
    learned = adjacency_matrix(network)
    truth = np.zeros((n, n), dtype=int)
    for parent, child in true_edges:
        truth[network.node_index(parent), network.node_index(child)] = 1

    off_diagonal = ~np.eye(n, dtype=bool)
    y_true = truth[off_diagonal]
    y_pred = learned[off_diagonal]

    metrics = {}
    metrics['precision'] = precision_score(y_true, y_pred, zero_division=0)
    metrics['recall'] = recall_score(y_true, y_pred, zero_division=0)
    metrics['f1'] = f1_score(y_true, y_pred, zero_division=0)

    # 结构汉明距离：每个无序节点对上关系不同计1（反向边也计1）
    shd = 0
    for i in range(n):
        for j in range(i + 1, n):
            if (learned[i, j], learned[j, i]) != (truth[i, j], truth[j, i]):
                shd += 1
    metrics['shd'] = shd

    metrics['true_positive'] = int(np.sum((y_true == 1) & (y_pred == 1)))
    metrics['false_positive'] = int(np.sum((y_true == 0) & (y_pred == 1)))
    metrics['false_negative'] = int(np.sum((y_true == 1) & (y_pred == 0)))

    logger.info(f"结构评估 - Precision: {metrics['precision']:.4f}, "
                f"Recall: {metrics['recall']:.4f}, SHD: {shd}")
    return metrics


def cim_relative_error(estimated: np.ndarray, true: np.ndarray) -> float:
    """
    非对角速率的最大相对误差

    只统计真实速率为正的元素

    Args:
        estimated: 估计的CIM，形状 (配置数, k, k)
        true: 真实CIM，形状相同

    Returns:
        最大相对误差
    """
    estimated = np.asarray(estimated, dtype=float)
    true = np.asarray(true, dtype=float)
    if estimated.shape != true.shape:
        raise ValueError(f"CIM形状不一致: {estimated.shape} vs {true.shape}")

    k = true.shape[-1]
    mask = np.broadcast_to(~np.eye(k, dtype=bool), true.shape) & (true > 0)
    if not np.any(mask):
        return 0.0
    return float(np.max(np.abs(estimated[mask] - true[mask]) / true[mask]))
