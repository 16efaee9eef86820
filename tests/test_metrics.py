#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试评估指标
"""
import unittest
import numpy as np

from ctbnlearn.ctbn.structure import CTBNetwork
from ctbnlearn.ctbn.variables import make_variables
from ctbnlearn.evaluation.metrics import adjacency_matrix, cim_relative_error, compare_structures


class TestStructureMetrics(unittest.TestCase):
    """测试结构比较"""

    def setUp(self):
        self.network = CTBNetwork(make_variables([('A', 2), ('B', 2), ('C', 2)]))
        self.network.add_edge('A', 'B')
        self.network.add_edge('B', 'C')

    def test_adjacency(self):
        """邻接矩阵"""
        adj = adjacency_matrix(self.network)
        self.assertEqual(adj[0, 1], 1)
        self.assertEqual(adj[1, 2], 1)
        self.assertEqual(adj.sum(), 2)

    def test_perfect_match(self):
        """完全一致"""
        metrics = compare_structures(self.network, [('A', 'B'), ('B', 'C')])
        self.assertEqual(metrics['precision'], 1.0)
        self.assertEqual(metrics['recall'], 1.0)
        self.assertEqual(metrics['shd'], 0)

    def test_reversed_and_missing(self):
        """反向边与缺失边"""
        metrics = compare_structures(self.network, [('B', 'A'), ('B', 'C'), ('A', 'C')])
        self.assertEqual(metrics['true_positive'], 1)
        self.assertEqual(metrics['false_positive'], 1)
        self.assertEqual(metrics['false_negative'], 2)
        self.assertEqual(metrics['shd'], 2)
        self.assertAlmostEqual(metrics['precision'], 0.5)
        self.assertAlmostEqual(metrics['recall'], 1.0 / 3.0)


class TestCIMError(unittest.TestCase):
    """测试CIM误差"""

    def test_relative_error(self):
        """只统计真实速率为正的非对角元素"""
        true = np.array([[[-1.0, 1.0], [0.0, 0.0]]])
        estimated = np.array([[[-1.1, 1.1], [0.3, -0.3]]])
        self.assertAlmostEqual(cim_relative_error(estimated, true), 0.1)

    def test_shape_mismatch(self):
        """形状不一致"""
        with self.assertRaises(ValueError):
            cim_relative_error(np.zeros((1, 2, 2)), np.zeros((2, 2, 2)))


if __name__ == '__main__':
    unittest.main()
