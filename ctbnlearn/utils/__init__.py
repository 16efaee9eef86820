#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
工具模块
"""
from ctbnlearn.utils.logging import configure_logging, configure_logging_from_config, setup_logger
from ctbnlearn.utils.config import (
    CandidateOrdering,
    ConfigurationError,
    IndependenceTestKind,
    LearningConfig,
    load_config,
    load_learning_config
)

__all__ = [
    'setup_logger',
    'configure_logging',
    'configure_logging_from_config',
    'CandidateOrdering',
    'ConfigurationError',
    'IndependenceTestKind',
    'LearningConfig',
    'load_config',
    'load_learning_config'
]
