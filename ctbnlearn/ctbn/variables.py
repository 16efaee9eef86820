#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
CTBN变量定义
定义随机变量及其取值空间
"""
from enum import Enum
from typing import Iterable, Tuple
from dataclasses import dataclass


class VariableKind(Enum):
    """
    变量类型

    目前只支持离散类别变量；CIM形状和充分统计量布局都依赖变量类型，
    新增类型时需在所有按类型分派的位置补充分支
    """
    CATEGORICAL = 'categorical'


@dataclass(frozen=True)
class Variable:
    """
    CTBN随机变量

    Attributes:
        name: 变量名
        states: 可能的取值（有序离散状态）
        kind: 变量类型
        description: 变量描述
    """
    name: str
    states: Tuple[str, ...]
    kind: VariableKind = VariableKind.CATEGORICAL
    description: str = ''

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValueError(f"变量名必须是非空字符串: {self.name!r}")
        if not isinstance(self.kind, VariableKind):
            raise ValueError(f"不支持的变量类型: {self.kind!r}")

        states = tuple(str(s) for s in self.states)
        if len(states) < 2:
            raise ValueError(f"变量 {self.name} 至少需要2个状态，实际为 {len(states)}")
        if len(set(states)) != len(states):
            raise ValueError(f"变量 {self.name} 的状态存在重复: {states}")
        object.__setattr__(self, 'states', states)

    @classmethod
    def from_cardinality(cls, name: str, cardinality: int, description: str = '') -> 'Variable':
        """
        按状态数创建变量，状态名为 "0" ... "n-1"

        Args:
            name: 变量名
            cardinality: 状态数
            description: 变量描述

        Returns:
            Variable对象
        """
        if isinstance(cardinality, bool) or not isinstance(cardinality, int):
            raise ValueError(f"变量 {name} 的状态数必须是整数: {cardinality!r}")
        return cls(
            name=name,
            states=tuple(str(i) for i in range(max(cardinality, 0))),
            description=description
        )

    @property
    def cardinality(self) -> int:
        """状态数（作为父节点时占用的配置空间）"""
        if self.kind is VariableKind.CATEGORICAL:
            return len(self.states)
        raise ValueError(f"不支持的变量类型: {self.kind}")

    def state_index(self, label: str) -> int:
        """
        状态名转索引

        Args:
            label: 状态名

        Returns:
            状态索引
        """
        try:
            return self.states.index(str(label))
        except ValueError:
            raise ValueError(f"变量 {self.name} 没有状态 {label!r}") from None

    def is_valid_state(self, index) -> bool:
        """判断状态索引是否在取值范围内"""
        return 0 <= index < self.cardinality


def make_variables(cardinalities: Iterable[Tuple[str, int]]) -> Tuple[Variable, ...]:
    """
    批量创建变量

    Args:
        cardinalities: (变量名, 状态数) 序列

    Returns:
        变量元组
    """
    return tuple(Variable.from_cardinality(name, k) for name, k in cardinalities)
