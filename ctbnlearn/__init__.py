#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
连续时间贝叶斯网络（CTBN）参数与结构学习
"""
from ctbnlearn.ctbn import (
    Variable,
    CTBNetwork,
    Trajectory,
    TrajectoryStore,
    ParameterEstimator,
    StructureLearner,
    CTPCLearner,
    HillClimbingLearner
)
from ctbnlearn.utils.config import LearningConfig, load_learning_config

__version__ = '0.1.0'

__all__ = [
    'Variable',
    'CTBNetwork',
    'Trajectory',
    'TrajectoryStore',
    'ParameterEstimator',
    'StructureLearner',
    'CTPCLearner',
    'HillClimbingLearner',
    'LearningConfig',
    'load_learning_config'
]
