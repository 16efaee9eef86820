#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
CTBN网络结构定义
变量按插入顺序编号，父节点集合按节点编号保存
"""
import itertools
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import networkx as nx

from ctbnlearn.ctbn.estimator import validate_cim
from ctbnlearn.ctbn.variables import Variable
from ctbnlearn.utils.logging import setup_logger

logger = setup_logger("ctbn_structure")

NodeRef = Union[int, str]


class CTBNetwork:
    """
    连续时间贝叶斯网络

    每个节点保存自己的父节点集合，以及每个父节点配置下的条件强度矩阵（CIM）。
    父节点配置编号：父节点按编号排序，第一个父节点步长为1，
    后续父节点的步长依次乘以前一个父节点的状态数
    """

    def __init__(self, variables: Optional[Sequence[Variable]] = None):
        """
        初始化网络

        Args:
            variables: 初始变量列表
        """
        self.graph = nx.DiGraph()
        self._variables: List[Variable] = []
        self._index: Dict[str, int] = {}
        self._parents: List[Tuple[int, ...]] = []
        self._cims: List[Optional[np.ndarray]] = []

        for variable in variables or ():
            self.add_variable(variable)

    # ============ 节点 ============

    def add_variable(self, variable: Variable) -> int:
        """
        添加变量

        Args:
            variable: 变量对象

        Returns:
            节点编号
        """
        if not isinstance(variable, Variable):
            raise ValueError(f"不是Variable对象: {variable!r}")
        if variable.name in self._index:
            raise ValueError(f"变量已存在: {variable.name}")

        idx = len(self._variables)
        self._variables.append(variable)
        self._index[variable.name] = idx
        self._parents.append(())
        self._cims.append(None)
        self.graph.add_node(idx, name=variable.name)
        logger.debug(f"添加变量: {variable.name} (编号 {idx}, {variable.cardinality} 个状态)")
        return idx

    def node_index(self, node: NodeRef) -> int:
        """
        节点名或编号统一转换为编号

        Args:
            node: 节点名或编号

        Returns:
            节点编号
        """
        if isinstance(node, str):
            if node not in self._index:
                raise ValueError(f"未知节点: {node}")
            return self._index[node]
        if isinstance(node, (int, np.integer)) and not isinstance(node, bool) \
                and 0 <= node < len(self._variables):
            return int(node)
        raise ValueError(f"未知节点: {node!r}")

    def get_variable(self, node: NodeRef) -> Variable:
        return self._variables[self.node_index(node)]

    @property
    def variables(self) -> Tuple[Variable, ...]:
        return tuple(self._variables)

    @property
    def node_indices(self) -> range:
        return range(len(self._variables))

    @property
    def n_nodes(self) -> int:
        return len(self._variables)

    def cardinality(self, node: NodeRef) -> int:
        return self.get_variable(node).cardinality

    # ============ 边 ============

    def add_edge(self, parent: NodeRef, child: NodeRef) -> None:
        """
        添加有向边（父节点 -> 子节点）

        子节点已有的CIM随之失效

        Args:
            parent: 父节点
            child: 子节点
        """
        p = self.node_index(parent)
        c = self.node_index(child)
        if p == c:
            raise ValueError(f"节点不能作为自己的父节点: {self._variables[c].name}")
        if p in self._parents[c]:
            return
        self._parents[c] = tuple(sorted(self._parents[c] + (p,)))
        self._cims[c] = None
        self.graph.add_edge(p, c)
        logger.debug(f"添加边: {self._variables[p].name} -> {self._variables[c].name}")

    def remove_edge(self, parent: NodeRef, child: NodeRef) -> None:
        """删除有向边"""
        p = self.node_index(parent)
        c = self.node_index(child)
        if p not in self._parents[c]:
            raise ValueError(
                f"边不存在: {self._variables[p].name} -> {self._variables[c].name}"
            )
        self._parents[c] = tuple(x for x in self._parents[c] if x != p)
        self._cims[c] = None
        self.graph.remove_edge(p, c)

    def set_parents(self, child: NodeRef, parents: Sequence[NodeRef]) -> None:
        """
        替换节点的父节点集合

        Args:
            child: 子节点
            parents: 新的父节点集合
        """
        c = self.node_index(child)
        for p in list(self._parents[c]):
            self.remove_edge(p, c)
        for p in parents:
            self.add_edge(p, c)

    def clear_edges(self) -> None:
        """删除所有边与CIM"""
        for c in self.node_indices:
            self._parents[c] = ()
            self._cims[c] = None
        self.graph.remove_edges_from(list(self.graph.edges()))

    def get_parents(self, node: NodeRef) -> Tuple[int, ...]:
        """
        获取节点的父节点编号（升序）

        Args:
            node: 节点名或编号

        Returns:
            父节点编号元组
        """
        return self._parents[self.node_index(node)]

    def get_parent_names(self, node: NodeRef) -> List[str]:
        return [self._variables[p].name for p in self.get_parents(node)]

    def get_children(self, node: NodeRef) -> List[int]:
        return sorted(self.graph.successors(self.node_index(node)))

    @property
    def edges(self) -> List[Tuple[int, int]]:
        return sorted(self.graph.edges())

    def would_create_cycle(self, parent: NodeRef, child: NodeRef) -> bool:
        """
        判断添加边后子节点是否会成为自己的祖先

        Args:
            parent: 父节点
            child: 子节点

        Returns:
            是否成环
        """
        p = self.node_index(parent)
        c = self.node_index(child)
        return p == c or nx.has_path(self.graph, c, p)

    def is_acyclic(self) -> bool:
        """检查是否为有向无环图"""
        return nx.is_directed_acyclic_graph(self.graph)

    def get_topological_order(self) -> List[int]:
        """获取拓扑排序"""
        if not self.is_acyclic():
            raise ValueError("图中存在环，无法进行拓扑排序")
        return list(nx.lexicographical_topological_sort(self.graph))

    # ============ 父节点配置 ============

    def n_configurations(self, node: NodeRef, parents: Optional[Sequence[int]] = None) -> int:
        """
        父节点配置数量

        Args:
            node: 节点
            parents: 父节点集合（默认使用网络中的父节点）

        Returns:
            配置数量（无父节点时为1）
        """
        if parents is None:
            parents = self.get_parents(node)
        return int(np.prod([self._variables[p].cardinality for p in parents], dtype=np.int64))

    def configuration_index(self, node: NodeRef, assignment: Union[Sequence[int], Dict]) -> int:
        """
        父节点赋值转配置编号

        Args:
            node: 节点
            assignment: 全部变量的状态序列，或 {父节点名/编号: 状态} 字典

        Returns:
            配置编号
        """
        idx = 0
        stride = 1
        for p in self.get_parents(node):
            if isinstance(assignment, dict):
                name = self._variables[p].name
                state = assignment[name] if name in assignment else assignment[p]
            else:
                state = assignment[p]
            card = self._variables[p].cardinality
            if not 0 <= state < card:
                raise ValueError(f"父节点 {self._variables[p].name} 的状态 {state} 超出范围")
            idx += int(state) * stride
            stride *= card
        return idx

    def iter_configurations(self, node: NodeRef) -> Iterator[Tuple[int, Dict[str, int]]]:
        """
        按编号顺序遍历父节点配置

        Yields:
            (配置编号, {父节点名: 状态})
        """
        parents = self.get_parents(node)
        ranges = [range(self._variables[p].cardinality) for p in parents]
        # 第一个父节点变化最快
        for idx, combo in enumerate(itertools.product(*reversed(ranges))):
            states = tuple(reversed(combo))
            yield idx, {self._variables[p].name: s for p, s in zip(parents, states)}

    # ============ CIM ============

    def set_cims(self, node: NodeRef, cims: np.ndarray) -> None:
        """
        设置节点的CIM

        Args:
            node: 节点
            cims: 形状 (配置数, k, k) 的数组
        """
        n = self.node_index(node)
        cims = np.array(cims, dtype=float)
        validate_cim(cims, self._variables[n].cardinality, self.n_configurations(n))
        cims.setflags(write=False)
        self._cims[n] = cims

    def get_cims(self, node: NodeRef) -> Optional[np.ndarray]:
        """获取节点全部CIM（未估计时为None）"""
        return self._cims[self.node_index(node)]

    def get_cim(self, node: NodeRef, assignment: Union[Sequence[int], Dict]) -> np.ndarray:
        """
        获取指定父节点配置下的CIM

        Args:
            node: 节点
            assignment: 父节点赋值

        Returns:
            k×k 矩阵
        """
        cims = self.get_cims(node)
        if cims is None:
            raise ValueError(f"节点 {self.get_variable(node).name} 的CIM尚未估计")
        return cims[self.configuration_index(node, assignment)]

    def has_parameters(self) -> bool:
        """是否所有节点都已有CIM"""
        return all(c is not None for c in self._cims)

    # ============ 导出 ============

    def export_structure(self) -> Dict:
        """
        导出网络结构

        Returns:
            结构字典
        """
        names = [v.name for v in self._variables]
        acyclic = self.is_acyclic()
        return {
            'nodes': {v.name: list(v.states) for v in self._variables},
            'edges': [(names[p], names[c]) for p, c in self.edges],
            'parents': {names[c]: [names[p] for p in self._parents[c]] for c in self.node_indices},
            'is_acyclic': acyclic,
            'topological_order': [names[i] for i in self.get_topological_order()] if acyclic else None
        }

    def __repr__(self) -> str:
        return f"CTBNetwork(n_nodes={self.n_nodes}, n_edges={self.graph.number_of_edges()})"
