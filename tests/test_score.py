#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试评分与爬山搜索
"""
import threading
import unittest

from ctbnlearn.ctbn.learner import LearningCancelledError
from ctbnlearn.ctbn.score import BICScore, HillClimbingLearner, LogLikelihoodScore
from ctbnlearn.ctbn.statistics import SufficientStatisticsCalculator
from ctbnlearn.ctbn.structure import CTBNetwork
from ctbnlearn.utils.config import LearningConfig
from synthetic import two_node_scenario


class TestScores(unittest.TestCase):
    """测试评分函数"""

    @classmethod
    def setUpClass(cls):
        cls.variables, _, store = two_node_scenario(t_end=1000.0)
        cls.calculator = SufficientStatisticsCalculator(store)

    def test_true_parent_scores_higher(self):
        """真实父节点集合的评分更高"""
        for score in (LogLikelihoodScore(), BICScore()):
            self.assertGreater(score(self.calculator, 1, [0]), score(self.calculator, 1, []))

    def test_bic_penalizes_parameters(self):
        """BIC评分低于对应的对数似然评分"""
        log_likelihood = LogLikelihoodScore()(self.calculator, 1, [0])
        bic = BICScore()(self.calculator, 1, [0])
        self.assertLess(bic, log_likelihood)

    def test_invalid_prior(self):
        """先验参数必须为正"""
        with self.assertRaises(ValueError):
            LogLikelihoodScore(alpha=0.0)
        with self.assertRaises(ValueError):
            BICScore(tau=-1.0)


class TestHillClimbingLearner(unittest.TestCase):
    """测试爬山搜索"""

    def setUp(self):
        self.variables, self.true_cims, self.store = two_node_scenario(t_end=1000.0)

    def test_recovers_edge(self):
        """BIC爬山恢复 A -> B"""
        network = CTBNetwork(self.variables)
        learner = HillClimbingLearner()
        learner.fit(network, self.store)

        self.assertEqual(network.edges, [(0, 1)])
        self.assertTrue(network.has_parameters())
        self.assertGreater(learner.reports_['B'].edge_strength[0], 0.0)
        self.assertIsInstance(learner.score, BICScore)

    def test_max_parents_zero(self):
        """父节点上限为0时不加入任何边"""
        network = CTBNetwork(self.variables)
        HillClimbingLearner(LearningConfig(max_parents=0)).fit(network, self.store)
        self.assertEqual(network.edges, [])

    def test_custom_score(self):
        """使用贝叶斯评分"""
        network = CTBNetwork(self.variables)
        learner = HillClimbingLearner(score=LogLikelihoodScore())
        learner.fit(network, self.store)
        self.assertIn((0, 1), network.edges)

    def test_ties_keep_change(self):
        """评分不变的修改被保留，且搜索在一轮后结束"""
        calls = []

        def flat_score(calculator, node, parents):
            calls.append((node, tuple(parents)))
            return 0.0

        network = CTBNetwork(self.variables)
        learner = HillClimbingLearner(LearningConfig(enforce_acyclic=False), score=flat_score)
        learner.fit(network, self.store)

        self.assertEqual(learner.reports_['A'].parents, (1,))
        self.assertEqual(learner.reports_['B'].parents, (0,))
        self.assertEqual(len(network.edges), 2)
        # 每个节点：空集 + 一轮尝试 + 一次边强度计算
        self.assertEqual(len(calls), 6)

    def test_cancellation(self):
        """取消标志"""
        cancel = threading.Event()
        cancel.set()
        with self.assertRaises(LearningCancelledError):
            HillClimbingLearner().fit(CTBNetwork(self.variables), self.store, cancel)


if __name__ == '__main__':
    unittest.main()
