#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
连续时间贝叶斯网络模块
包含变量与网络结构定义、充分统计量、CIM估计、独立性检验与结构学习
"""
from ctbnlearn.ctbn.variables import Variable, VariableKind, make_variables
from ctbnlearn.ctbn.trajectory import Trajectory, TrajectoryStore, TrajectoryValidationError
from ctbnlearn.ctbn.structure import CTBNetwork
from ctbnlearn.ctbn.statistics import (
    SufficientStatistics,
    SufficientStatisticsCalculator,
    StatisticsCache,
    compute_sufficient_statistics
)
from ctbnlearn.ctbn.estimator import ParameterEstimator, validate_cim
from ctbnlearn.ctbn.hypothesis_test import (
    HypothesisTestResult,
    IndependenceTest,
    LikelihoodRatioTest,
    ChiSquareTest,
    FTest,
    CTPCTest,
    build_independence_test
)
from ctbnlearn.ctbn.learner import (
    BaseStructureLearner,
    StructureLearner,
    CTPCLearner,
    NodeSearchReport,
    LearningCancelledError
)
from ctbnlearn.ctbn.score import LogLikelihoodScore, BICScore, HillClimbingLearner

__all__ = [
    'Variable',
    'VariableKind',
    'make_variables',
    'Trajectory',
    'TrajectoryStore',
    'TrajectoryValidationError',
    'CTBNetwork',
    'SufficientStatistics',
    'SufficientStatisticsCalculator',
    'StatisticsCache',
    'compute_sufficient_statistics',
    'ParameterEstimator',
    'validate_cim',
    'HypothesisTestResult',
    'IndependenceTest',
    'LikelihoodRatioTest',
    'ChiSquareTest',
    'FTest',
    'CTPCTest',
    'build_independence_test',
    'BaseStructureLearner',
    'StructureLearner',
    'CTPCLearner',
    'NodeSearchReport',
    'LearningCancelledError',
    'LogLikelihoodScore',
    'BICScore',
    'HillClimbingLearner'
]
