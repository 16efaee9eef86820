#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
CTBN结构学习
逐节点搜索父节点集合，提交结构后估计CIM
"""
import itertools
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from tqdm import tqdm

from ctbnlearn.ctbn.estimator import ParameterEstimator
from ctbnlearn.ctbn.hypothesis_test import CTPCTest, HypothesisTestResult, build_independence_test
from ctbnlearn.ctbn.statistics import SufficientStatisticsCalculator
from ctbnlearn.ctbn.structure import CTBNetwork
from ctbnlearn.ctbn.trajectory import TrajectoryStore
from ctbnlearn.utils.config import CandidateOrdering, LearningConfig
from ctbnlearn.utils.logging import setup_logger

logger = setup_logger("ctbn_learner")


class LearningCancelledError(RuntimeError):
    """调用方通过取消标志中止了学习"""


@dataclass
class NodeSearchReport:
    """
    单个节点的搜索记录

    Attributes:
        node: 节点编号
        name: 变量名
        parents: 搜索得到的父节点（提交前）
        edge_strength: 父节点到边强度（越大越强，决定提交顺序）
        rejected: 被判为无关的候选
        untested: 达到父节点上限后未检验的候选
        test_results: 每个父节点最后一次检验的结果
        proxy_scores: 候选排序使用的代理分数
        n_tests: 检验次数
        validation_passes: 实际执行的验证轮数
        cache_hits: 统计量缓存命中次数
        cache_misses: 统计量缓存未命中次数
    """
    node: int
    name: str
    parents: Tuple[int, ...] = ()
    edge_strength: Dict[int, float] = field(default_factory=dict)
    rejected: List[int] = field(default_factory=list)
    untested: List[int] = field(default_factory=list)
    test_results: Dict[int, HypothesisTestResult] = field(default_factory=dict)
    proxy_scores: Dict[int, float] = field(default_factory=dict)
    n_tests: int = 0
    validation_passes: int = 0
    cache_hits: int = 0
    cache_misses: int = 0


class BaseStructureLearner(ABC):
    """
    结构学习器基类

    各节点的搜索互不依赖，只读共享轨迹数据，可并行执行；
    全部搜索结束后统一提交边并估计CIM
    """

    def __init__(self, config: Optional[LearningConfig] = None):
        """
        初始化学习器

        Args:
            config: 学习配置（None表示使用默认配置）
        """
        self.config = config if config is not None else LearningConfig()
        self.estimator = ParameterEstimator.from_config(self.config)
        self.reports_: Dict[str, NodeSearchReport] = {}
        self.skipped_edges_: List[Tuple[str, str]] = []

    def fit(
        self,
        network: CTBNetwork,
        store: TrajectoryStore,
        cancel_event: Optional[threading.Event] = None
    ) -> CTBNetwork:
        """
        学习网络结构与参数

        网络中已有的边会被学习结果替换

        Args:
            network: 只包含变量定义的网络骨架
            store: 轨迹集合
            cancel_event: 取消标志，每次候选检验前检查

        Returns:
            学习完成的网络（即传入的对象）
        """
        self._check_inputs(network, store)
        logger.info(f"开始结构学习: {network.n_nodes} 个节点, "
                    f"{len(store)} 条轨迹, 配置 {self.config.to_dict()}")

        reports = self._run_searches(network, store, cancel_event)
        self.reports_ = {r.name: r for r in reports}

        self._commit(network, reports)
        self.estimator.estimate_network_parameters(network, store)

        logger.info(f"结构学习完成，共 {network.graph.number_of_edges()} 条边")
        return network

    def _check_inputs(self, network: CTBNetwork, store: TrajectoryStore) -> None:
        """学习开始前校验网络与数据一致"""
        if not isinstance(network, CTBNetwork):
            raise ValueError(f"不是CTBNetwork对象: {type(network)}")
        if not isinstance(store, TrajectoryStore):
            raise ValueError(f"不是TrajectoryStore对象: {type(store)}")
        if network.n_nodes == 0:
            raise ValueError("网络中没有变量")

        net_vars = [(v.name, v.cardinality) for v in network.variables]
        data_vars = [(v.name, v.cardinality) for v in store.variables]
        if net_vars != data_vars:
            raise ValueError(f"网络变量与轨迹变量不一致: {net_vars} vs {data_vars}")

    def _run_searches(
        self,
        network: CTBNetwork,
        store: TrajectoryStore,
        cancel_event: Optional[threading.Event]
    ) -> List[NodeSearchReport]:
        """逐节点搜索，结果按节点编号排列"""
        nodes = list(network.node_indices)
        names = [v.name for v in network.variables]

        def run(node: int) -> NodeSearchReport:
            report = self._search_node(node, names[node], store, cancel_event)
            logger.info(f"节点 {names[node]}: 父节点 {[names[p] for p in report.parents]} "
                        f"(检验 {report.n_tests} 次)")
            return report

        with tqdm(total=len(nodes), desc="结构搜索", disable=not self.config.show_progress) as bar:
            if self.config.n_jobs == 1:
                reports = []
                for node in nodes:
                    reports.append(run(node))
                    bar.update(1)
            else:
                with ThreadPoolExecutor(max_workers=self.config.n_jobs) as executor:
                    reports = []
                    # map 保持提交顺序，结果与线程调度无关
                    for report in executor.map(run, nodes):
                        reports.append(report)
                        bar.update(1)
        return reports

    def _commit(self, network: CTBNetwork, reports: List[NodeSearchReport]) -> None:
        """
        提交各节点的父节点集合

        按边强度从强到弱提交；要求无环时跳过会使节点成为自己祖先的边
        """
        network.clear_edges()
        self.skipped_edges_ = []

        candidates = []
        for report in reports:
            for parent in report.parents:
                candidates.append((-report.edge_strength.get(parent, 0.0), report.node, parent))
        candidates.sort()

        for _, child, parent in candidates:
            if self.config.enforce_acyclic and network.would_create_cycle(parent, child):
                edge = (network.get_variable(parent).name, network.get_variable(child).name)
                self.skipped_edges_.append(edge)
                logger.warning(f"跳过会形成环的边: {edge[0]} -> {edge[1]}")
                continue
            network.add_edge(parent, child)

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise LearningCancelledError("结构学习已被取消")

    @abstractmethod
    def _search_node(
        self,
        node: int,
        name: str,
        store: TrajectoryStore,
        cancel_event: Optional[threading.Event]
    ) -> NodeSearchReport:
        raise NotImplementedError


class StructureLearner(BaseStructureLearner):
    """
    基于约束的结构学习器

    对每个节点：
    1. 候选按插入顺序或代理分数（边际检验的 −log p）排序
    2. 依次检验 (X, P, Y)，相关则加入P，否则永久排除，直到 |P| = max_parents
    3. 验证：在最终集合下重新检验每个父节点，移除不再相关者（轮数有上限）
    """

    def __init__(self, config: Optional[LearningConfig] = None):
        super().__init__(config)
        self.independence_test = build_independence_test(self.config)

    def _search_node(self, node, name, store, cancel_event):
        report = NodeSearchReport(node=node, name=name)
        calculator = SufficientStatisticsCalculator(store)
        test = self.independence_test
        max_parents = self.config.max_parents

        candidates = [y for y in range(len(store.variables)) if y != node]

        if max_parents > 0 and self.config.candidate_ordering is CandidateOrdering.PROXY_SCORE:
            for y in candidates:
                self._check_cancelled(cancel_event)
                result = test(calculator, node, (), y)
                report.n_tests += 1
                report.proxy_scores[y] = -result.log_p_value
            # 分数相同按插入顺序
            candidates.sort(key=lambda y: (-report.proxy_scores[y], y))

        parents: List[int] = []
        for position, y in enumerate(candidates):
            if len(parents) >= max_parents:
                report.untested = candidates[position:]
                break
            self._check_cancelled(cancel_event)
            result = test(calculator, node, parents, y)
            report.n_tests += 1
            if result.dependent:
                parents.append(y)
                report.test_results[y] = result
            else:
                report.rejected.append(y)

        while report.validation_passes < self.config.validation_passes and parents:
            report.validation_passes += 1
            changed = False
            for y in list(parents):
                self._check_cancelled(cancel_event)
                others = [p for p in parents if p != y]
                result = test(calculator, node, others, y)
                report.n_tests += 1
                if result.dependent:
                    report.test_results[y] = result
                else:
                    parents.remove(y)
                    report.rejected.append(y)
                    report.test_results.pop(y, None)
                    changed = True
                    logger.debug(f"节点 {name}: 验证阶段移除父节点 {y}")
            if not changed:
                break

        report.parents = tuple(sorted(parents))
        report.edge_strength = {y: -report.test_results[y].log_p_value for y in parents}
        report.cache_hits = calculator.cache.hits
        report.cache_misses = calculator.cache.misses
        return report


class CTPCLearner(BaseStructureLearner):
    """
    CTPC（连续时间PC）结构学习器

    对每个节点：
    1. 候选父节点初始化为全部其他变量
    2. 分离集大小 s 从0开始递增：对每个候选Y，依次在剩余候选中取大小为 s 的分离集S，
       若F检验与卡方检验都接受 X 与 Y 在S下独立，则移除Y（本轮结束后生效）
    3. 分离集大小不小于候选数时停止

    Bregoli, Scutari & Stella 2021
    """

    def __init__(self, config: Optional[LearningConfig] = None):
        super().__init__(config)
        self.independence_test = CTPCTest(
            self.config.significance_level,
            self.config.smoothing_alpha,
            self.config.smoothing_tau
        )

    def _search_node(self, node, name, store, cancel_event):
        report = NodeSearchReport(node=node, name=name)
        calculator = SufficientStatisticsCalculator(store)
        test = self.independence_test

        candidates = [y for y in range(len(store.variables)) if y != node]
        separation_size = 0
        while separation_size < len(candidates):
            remaining = list(candidates)
            for y in candidates:
                others = [p for p in candidates if p != y]
                for separation_set in itertools.combinations(others, separation_size):
                    self._check_cancelled(cancel_event)
                    result = test(calculator, node, separation_set, y)
                    report.n_tests += 1
                    if not result.dependent:
                        remaining.remove(y)
                        report.rejected.append(y)
                        report.test_results.pop(y, None)
                        break
                    # 保留最弱的一次拒绝作为边强度依据
                    weakest = report.test_results.get(y)
                    if weakest is None or result.log_p_value > weakest.log_p_value:
                        report.test_results[y] = result
            candidates = remaining
            separation_size += 1

        # 超过父节点上限时保留最强的候选
        strength = {y: -report.test_results[y].log_p_value for y in candidates}
        ranked = sorted(candidates, key=lambda y: (-strength[y], y))
        parents = ranked[:self.config.max_parents]
        for y in ranked[self.config.max_parents:]:
            report.untested.append(y)
            report.test_results.pop(y)
            logger.debug(f"节点 {name}: 超过父节点上限，舍弃候选 {y}")

        report.parents = tuple(sorted(parents))
        report.edge_strength = {y: strength[y] for y in parents}
        report.cache_hits = calculator.cache.hits
        report.cache_misses = calculator.cache.misses
        return report
