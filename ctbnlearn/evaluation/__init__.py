#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
评估模块
包含结构与参数的评估指标
"""
from ctbnlearn.evaluation.metrics import adjacency_matrix, compare_structures, cim_relative_error

__all__ = [
    'adjacency_matrix',
    'compare_structures',
    'cim_relative_error'
]
