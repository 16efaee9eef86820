#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试结构学习
"""
import threading
import unittest
import numpy as np

from ctbnlearn.ctbn.learner import CTPCLearner, LearningCancelledError, StructureLearner
from ctbnlearn.ctbn.structure import CTBNetwork
from ctbnlearn.ctbn.variables import make_variables
from ctbnlearn.evaluation.metrics import cim_relative_error
from ctbnlearn.utils.config import LearningConfig
from synthetic import chain_scenario, independent_scenario, mutual_scenario, two_node_scenario


class TestStructureLearner(unittest.TestCase):
    """测试基于约束的结构学习"""

    @classmethod
    def setUpClass(cls):
        """两节点场景 A -> B"""
        cls.variables, cls.true_cims, cls.store = two_node_scenario(t_end=1000.0)

    def fit(self, config=None, store=None, variables=None):
        network = CTBNetwork(variables or self.variables)
        learner = StructureLearner(config)
        learner.fit(network, store or self.store)
        return network, learner

    def test_two_node_structure(self):
        """恢复 A -> B 且速率误差在20%以内"""
        network, learner = self.fit(LearningConfig(max_parents=1, significance_level=0.05))

        self.assertEqual(network.get_parent_names('B'), ['A'])
        self.assertEqual(network.get_parent_names('A'), [])
        self.assertTrue(network.has_parameters())
        self.assertLess(cim_relative_error(network.get_cims('B'), self.true_cims[1]), 0.2)

        report = learner.reports_['B']
        self.assertEqual(report.parents, (0,))
        self.assertIn(0, report.proxy_scores)
        self.assertGreater(report.edge_strength[0], 0.0)
        self.assertGreater(report.cache_hits, 0)

    def test_recovery_with_more_data(self):
        """数据充足时速率误差在5%以内"""
        _, true_cims, store = two_node_scenario(t_end=1000.0, n_trajectories=20, seed=21)
        network, _ = self.fit(LearningConfig(significance_level=0.01), store=store)

        self.assertEqual(network.get_parent_names('B'), ['A'])
        self.assertLess(cim_relative_error(network.get_cims('B'), true_cims[1]), 0.05)
        self.assertLess(cim_relative_error(network.get_cims('A'), true_cims[0]), 0.05)

    def test_deterministic(self):
        """相同输入得到相同结构与参数"""
        first, _ = self.fit()
        second, _ = self.fit()
        self.assertEqual(first.edges, second.edges)
        for node in first.node_indices:
            np.testing.assert_array_equal(first.get_cims(node), second.get_cims(node))

    def test_parallel_matches_sequential(self):
        """并行搜索结果与顺序搜索一致"""
        variables, store = chain_scenario()
        sequential, _ = self.fit(LearningConfig(n_jobs=1), store, variables)
        parallel, learner = self.fit(LearningConfig(n_jobs=2), store, variables)

        self.assertEqual(sequential.edges, parallel.edges)
        self.assertEqual(list(learner.reports_), ['A', 'B', 'C'])
        for node in sequential.node_indices:
            np.testing.assert_array_equal(sequential.get_cims(node), parallel.get_cims(node))

    def test_validation_only_removes(self):
        """验证阶段只会移除父节点"""
        variables, store = chain_scenario()
        _, without = self.fit(LearningConfig(validation_passes=0), store, variables)
        _, with_validation = self.fit(LearningConfig(validation_passes=2), store, variables)

        for name in ('A', 'B', 'C'):
            self.assertTrue(
                set(with_validation.reports_[name].parents) <= set(without.reports_[name].parents)
            )
            self.assertEqual(without.reports_[name].validation_passes, 0)

    def test_chain_structure(self):
        """三节点链 A -> B -> C"""
        variables, store = chain_scenario()
        network, _ = self.fit(LearningConfig(significance_level=0.01), store, variables)
        self.assertIn(('A', 'B'), network.export_structure()['edges'])
        self.assertIn(('B', 'C'), network.export_structure()['edges'])
        self.assertEqual(network.get_parent_names('A'), [])

    def test_insertion_order(self):
        """插入顺序不计算代理分数"""
        network, learner = self.fit(LearningConfig(
            candidate_ordering='insertion_order', significance_level=0.01
        ))
        self.assertEqual(network.get_parent_names('B'), ['A'])
        self.assertEqual(learner.reports_['B'].proxy_scores, {})

    def test_max_parents_cap(self):
        """父节点上限"""
        variables, store = chain_scenario()
        network, learner = self.fit(LearningConfig(max_parents=0), store, variables)
        self.assertEqual(network.edges, [])
        self.assertTrue(network.has_parameters())
        self.assertEqual(learner.reports_['B'].n_tests, 0)

        network, learner = self.fit(LearningConfig(max_parents=1), store, variables)
        for name in ('A', 'B', 'C'):
            report = learner.reports_[name]
            self.assertLessEqual(len(report.parents), 1)
            if report.parents:
                self.assertEqual(len(report.untested) + len(report.rejected) + 1, 2)

    def test_acyclic_commit(self):
        """互为父节点时只提交较强的一条边"""
        variables, store = mutual_scenario()

        network, learner = self.fit(LearningConfig(), store, variables)
        self.assertTrue(network.is_acyclic())
        self.assertEqual(len(network.edges), 1)
        self.assertEqual(len(learner.skipped_edges_), 1)

        network, learner = self.fit(LearningConfig(enforce_acyclic=False), store, variables)
        self.assertFalse(network.is_acyclic())
        self.assertEqual(len(network.edges), 2)
        self.assertEqual(learner.skipped_edges_, [])
        self.assertTrue(network.has_parameters())

    def test_ctpc_option(self):
        """使用CTPC组合检验"""
        network, _ = self.fit(LearningConfig(independence_test='ctpc', significance_level=0.001))
        self.assertEqual(network.get_parent_names('B'), ['A'])

    def test_existing_edges_replaced(self):
        """网络中已有的边被学习结果替换"""
        network = CTBNetwork(self.variables)
        network.add_edge('B', 'A')
        StructureLearner(LearningConfig(significance_level=0.01)).fit(network, self.store)
        self.assertEqual(network.edges, [(0, 1)])

    def test_cancellation(self):
        """取消标志已设置时抛出异常"""
        cancel = threading.Event()
        cancel.set()
        network = CTBNetwork(self.variables)
        with self.assertRaises(LearningCancelledError):
            StructureLearner().fit(network, self.store, cancel_event=cancel)
        self.assertEqual(network.edges, [])

    def test_variable_mismatch(self):
        """网络变量与轨迹变量不一致"""
        network = CTBNetwork(make_variables([('A', 2), ('B', 3)]))
        with self.assertRaises(ValueError):
            StructureLearner().fit(network, self.store)

        with self.assertRaises(ValueError):
            StructureLearner().fit(CTBNetwork(), self.store)


class TestLearnerProperties(unittest.TestCase):
    """测试学习结果的整体性质"""

    def test_cap_monotonicity(self):
        """关闭验证时，上限为k的父节点集合包含于上限为k+1的集合"""
        for seed in (3, 4, 5):
            variables, store = chain_scenario(seed=seed)
            previous = None
            for cap in range(3):
                learner = StructureLearner(LearningConfig(max_parents=cap, validation_passes=0))
                learner.fit(CTBNetwork(variables), store)
                current = {name: set(r.parents) for name, r in learner.reports_.items()}
                if previous is not None:
                    for name in current:
                        with self.subTest(seed=seed, cap=cap, node=name):
                            self.assertTrue(previous[name] <= current[name])
                previous = current

    def test_null_case(self):
        """独立变量的父节点集合以不低于 1 - α 的比例为空"""
        n_nodes = 0
        n_empty = 0
        for seed in range(30):
            store = independent_scenario(n_variables=2, t_end=200.0, seed=seed)
            learner = StructureLearner(LearningConfig(significance_level=0.05))
            learner.fit(CTBNetwork(store.variables), store)
            for report in learner.reports_.values():
                n_nodes += 1
                n_empty += int(not report.parents)
        self.assertGreaterEqual(n_empty, n_nodes - 9)


class TestCTPCLearner(unittest.TestCase):
    """测试CTPC结构学习"""

    @classmethod
    def setUpClass(cls):
        cls.variables, cls.true_cims, cls.store = two_node_scenario(t_end=1000.0)

    def test_two_node_structure(self):
        """恢复 A -> B"""
        network = CTBNetwork(self.variables)
        learner = CTPCLearner(LearningConfig(significance_level=0.001))
        learner.fit(network, self.store)

        self.assertEqual(network.get_parent_names('B'), ['A'])
        self.assertEqual(network.get_parent_names('A'), [])
        self.assertTrue(network.has_parameters())

        report = learner.reports_['B']
        self.assertEqual(report.validation_passes, 0)
        self.assertGreater(report.n_tests, 0)
        self.assertTrue(report.test_results[0].dependent)
        self.assertGreater(report.edge_strength[0], 0.0)

    def test_chain_structure(self):
        """分离集为B时移除C的间接父节点A"""
        variables, store = chain_scenario()
        network = CTBNetwork(variables)
        CTPCLearner(LearningConfig(significance_level=0.001)).fit(network, store)

        edges = network.export_structure()['edges']
        self.assertIn(('A', 'B'), edges)
        self.assertIn(('B', 'C'), edges)

    def test_parent_cap(self):
        """超过上限的候选只保留最强者"""
        variables, store = chain_scenario()
        learner = CTPCLearner(LearningConfig(max_parents=1, significance_level=0.001))
        network = CTBNetwork(variables)
        learner.fit(network, store)
        for name in ('A', 'B', 'C'):
            self.assertLessEqual(len(network.get_parents(name)), 1)
            report = learner.reports_[name]
            self.assertEqual(set(report.test_results), set(report.parents))

    def test_parallel_matches_sequential(self):
        """并行搜索结果与顺序搜索一致"""
        variables, store = chain_scenario()
        sequential = CTBNetwork(variables)
        parallel = CTBNetwork(variables)
        CTPCLearner(LearningConfig(n_jobs=1)).fit(sequential, store)
        CTPCLearner(LearningConfig(n_jobs=3)).fit(parallel, store)
        self.assertEqual(sequential.edges, parallel.edges)

    def test_cancellation(self):
        """取消标志"""
        cancel = threading.Event()
        cancel.set()
        with self.assertRaises(LearningCancelledError):
            CTPCLearner().fit(CTBNetwork(self.variables), self.store, cancel)


if __name__ == '__main__':
    unittest.main()
