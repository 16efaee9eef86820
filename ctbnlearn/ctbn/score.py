#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
基于评分的结构学习
贝叶斯对数似然 / BIC 评分与爬山搜索
"""
import math
from typing import Optional, Sequence

import numpy as np
from scipy.special import gammaln

from ctbnlearn.ctbn.learner import BaseStructureLearner, NodeSearchReport
from ctbnlearn.ctbn.statistics import SufficientStatistics, SufficientStatisticsCalculator
from ctbnlearn.utils.config import LearningConfig
from ctbnlearn.utils.logging import setup_logger

logger = setup_logger("ctbn_score")


class LogLikelihoodScore:
    """
    贝叶斯对数边际似然评分

    离开速率使用Gamma先验、转移去向使用Dirichlet先验，
    超参数 α、τ 按父节点配置数均分
    """

    def __init__(self, alpha: float = 1.0, tau: float = 1.0):
        """
        Args:
            alpha: 伪计数 α > 0
            tau: 伪时间 τ > 0
        """
        if alpha <= 0 or tau <= 0:
            raise ValueError(f"评分的先验参数必须为正: alpha={alpha}, tau={tau}")
        self.alpha = float(alpha)
        self.tau = float(tau)

    def score_statistics(self, stats: SufficientStatistics) -> float:
        """
        由充分统计量计算评分

        Args:
            stats: 充分统计量

        Returns:
            对数边际似然
        """
        M = stats.transitions.astype(float)
        T = stats.residence_times
        alpha = self.alpha / stats.n_configurations
        tau = self.tau / stats.n_configurations

        exits = M.sum(axis=2)
        log_ll_q = (
            gammaln(alpha + exits + 1.0)
            + (alpha + 1.0) * math.log(tau)
            - gammaln(alpha + 1.0)
            - (alpha + exits + 1.0) * np.log(tau + T)
        ).sum()

        k = stats.cardinality
        off_diagonal = ~np.eye(k, dtype=bool)
        per_entry = np.where(off_diagonal, gammaln(alpha + M) - gammaln(alpha), 0.0)
        log_ll_theta = (
            gammaln(alpha) - gammaln(alpha + exits) + per_entry.sum(axis=2)
        ).sum()

        return float(log_ll_theta + log_ll_q)

    def __call__(
        self,
        calculator: SufficientStatisticsCalculator,
        node: int,
        parents: Sequence[int]
    ) -> float:
        return self.score_statistics(calculator.compute(node, parents))


class BICScore(LogLikelihoodScore):
    """
    BIC评分

    对数似然减去 ln(N)/2 × 参数个数，N 为所有轨迹的事件区间数
    """

    def __call__(self, calculator, node, parents):
        stats = calculator.compute(node, parents)
        n_parameters = stats.n_configurations * stats.cardinality * (stats.cardinality - 1)
        sample_size = sum(max(t.n_events - 1, 1) for t in calculator.store)
        penalty = math.log(sample_size) / 2.0 * n_parameters
        return self.score_statistics(stats) - penalty


class HillClimbingLearner(BaseStructureLearner):
    """
    爬山搜索结构学习器

    每轮依次尝试加入或移除每个候选父节点，评分不下降的修改都会保留
    （评分相同时也保留），直到一整轮结束后评分没有严格提升
    """

    def __init__(self, config: Optional[LearningConfig] = None, score=None):
        """
        Args:
            config: 学习配置
            score: 评分函数（None表示使用BIC）
        """
        super().__init__(config)
        if score is None:
            score = BICScore(
                max(self.config.smoothing_alpha, 1e-3),
                max(self.config.smoothing_tau, 1e-3)
            )
        self.score = score

    def _search_node(self, node, name, store, cancel_event):
        report = NodeSearchReport(node=node, name=name)
        calculator = SufficientStatisticsCalculator(store)
        max_parents = self.config.max_parents
        candidates = [y for y in range(len(store.variables)) if y != node]

        parents = set()
        current = self.score(calculator, node, ())
        report.n_tests += 1

        previous = -math.inf
        while current > previous:
            previous = current
            for y in candidates:
                if y in parents:
                    trial = parents - {y}
                elif len(parents) < max_parents:
                    trial = parents | {y}
                else:
                    continue
                self._check_cancelled(cancel_event)
                value = self.score(calculator, node, sorted(trial))
                report.n_tests += 1
                if value >= current:
                    parents = trial
                    current = value

        # 边强度：移除该父节点造成的评分损失
        for y in sorted(parents):
            reduced = self.score(calculator, node, sorted(parents - {y}))
            report.n_tests += 1
            report.edge_strength[y] = current - reduced

        report.parents = tuple(sorted(parents))
        report.rejected = [y for y in candidates if y not in parents]
        report.cache_hits = calculator.cache.hits
        report.cache_misses = calculator.cache.misses
        logger.debug(f"节点 {name}: 评分 {current:.4f}")
        return report
