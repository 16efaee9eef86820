#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
充分统计量计算
按父节点配置统计转移次数与停留时间
"""
import threading
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np

from ctbnlearn.ctbn.trajectory import TrajectoryStore
from ctbnlearn.utils.logging import setup_logger

logger = setup_logger("ctbn_statistics")


@dataclass(frozen=True)
class SufficientStatistics:
    """
    节点在某个父节点集合下的充分统计量

    Attributes:
        node: 节点编号
        parents: 父节点编号（升序）
        parent_cardinalities: 各父节点状态数
        transitions: M[c, i, j] 配置c下 i->j 的转移次数，形状 (配置数, k, k)
        residence_times: T[c, i] 配置c下停留在状态i的总时间，形状 (配置数, k)
    """
    node: int
    parents: Tuple[int, ...]
    parent_cardinalities: Tuple[int, ...]
    transitions: np.ndarray
    residence_times: np.ndarray

    @property
    def n_configurations(self) -> int:
        return self.transitions.shape[0]

    @property
    def cardinality(self) -> int:
        return self.transitions.shape[1]

    @property
    def exits(self) -> np.ndarray:
        """每个 (配置, 状态) 的离开次数"""
        return self.transitions.sum(axis=2)

    def strides(self) -> Tuple[int, ...]:
        """各父节点在配置编号中的步长"""
        strides = []
        stride = 1
        for card in self.parent_cardinalities:
            strides.append(stride)
            stride *= card
        return tuple(strides)


def parent_strides(cardinalities: Sequence[int], parents: Sequence[int]) -> np.ndarray:
    """
    全部变量上的步长向量（非父节点为0），用于一次点积得到配置编号

    Args:
        cardinalities: 全部变量的状态数
        parents: 父节点编号（升序）

    Returns:
        长度为变量数的步长数组
    """
    strides = np.zeros(len(cardinalities), dtype=np.int64)
    stride = 1
    for p in parents:
        strides[p] = stride
        stride *= cardinalities[p]
    return strides


def compute_sufficient_statistics(
    store: TrajectoryStore,
    node: int,
    parents: Sequence[int] = ()
) -> SufficientStatistics:
    """
    扫描全部轨迹计算充分统计量

    每个事件区间 [t_r, t_{r+1}) 的时长计入当时的 (配置, 状态)；
    若节点在 t_{r+1} 发生转移，则计入转移前配置下的转移次数。
    父节点变化只会把后续停留时间计入新配置。

    Args:
        store: 轨迹集合
        node: 节点编号
        parents: 候选父节点编号

    Returns:
        SufficientStatistics对象
    """
    parents = tuple(sorted(int(p) for p in parents))
    cardinalities = store.cardinalities
    if not 0 <= node < len(cardinalities):
        raise ValueError(f"节点编号超出范围: {node}")
    if node in parents:
        raise ValueError(f"节点 {node} 不能作为自己的父节点")
    if any(not 0 <= p < len(cardinalities) for p in parents):
        raise ValueError(f"父节点编号超出范围: {parents}")

    k = cardinalities[node]
    parent_cards = tuple(cardinalities[p] for p in parents)
    n_configs = int(np.prod(parent_cards, dtype=np.int64))
    strides = parent_strides(cardinalities, parents)

    M = np.zeros((n_configs, k, k), dtype=np.int64)
    T = np.zeros((n_configs, k), dtype=float)

    for trajectory in store:
        states = trajectory.states
        config = states @ strides
        x = states[:, node]

        np.add.at(T, (config, x), trajectory.durations)

        # 转移发生在第 r+1 个事件，使用第 r 个事件时的配置
        moved = np.nonzero(x[1:] != x[:-1])[0]
        if len(moved):
            np.add.at(M, (config[moved], x[moved], x[moved + 1]), 1)

    return SufficientStatistics(
        node=node,
        parents=parents,
        parent_cardinalities=parent_cards,
        transitions=M,
        residence_times=T
    )


class StatisticsCache:
    """
    充分统计量缓存

    键为 (节点编号, 升序父节点元组)，读写都在锁内完成
    """

    def __init__(self):
        self._entries: Dict[Tuple[int, Tuple[int, ...]], SufficientStatistics] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(node: int, parents: Sequence[int]) -> Tuple[int, Tuple[int, ...]]:
        return int(node), tuple(sorted(int(p) for p in parents))

    def get(self, node: int, parents: Sequence[int]):
        key = self.make_key(node, parents)
        with self._lock:
            stats = self._entries.get(key)
            if stats is None:
                self.misses += 1
            else:
                self.hits += 1
            return stats

    def put(self, stats: SufficientStatistics) -> None:
        key = self.make_key(stats.node, stats.parents)
        with self._lock:
            self._entries[key] = stats

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __contains__(self, key) -> bool:
        node, parents = key
        with self._lock:
            return self.make_key(node, parents) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SufficientStatisticsCalculator:
    """
    带缓存的充分统计量计算器

    结构搜索中同一 (节点, 父节点集合) 会被反复检验，缓存避免重复扫描轨迹
    """

    def __init__(self, store: TrajectoryStore, cache: StatisticsCache = None):
        """
        初始化计算器

        Args:
            store: 轨迹集合
            cache: 统计量缓存（None表示新建）
        """
        self.store = store
        self.cache = cache if cache is not None else StatisticsCache()

    def compute(self, node: int, parents: Sequence[int] = ()) -> SufficientStatistics:
        """
        获取充分统计量，命中缓存时直接返回

        Args:
            node: 节点编号
            parents: 父节点编号

        Returns:
            SufficientStatistics对象
        """
        stats = self.cache.get(node, parents)
        if stats is None:
            stats = compute_sufficient_statistics(self.store, node, parents)
            stats.transitions.setflags(write=False)
            stats.residence_times.setflags(write=False)
            self.cache.put(stats)
            logger.debug(f"计算充分统计量: 节点 {node}, 父节点 {stats.parents}")
        return stats
