#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
轨迹数据
保存观测到的连续时间轨迹，在入口处完成全部合法性校验
"""
import numpy as np
import pandas as pd
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from ctbnlearn.ctbn.variables import Variable
from ctbnlearn.utils.logging import setup_logger

logger = setup_logger("ctbn_trajectory")


class TrajectoryValidationError(ValueError):
    """轨迹数据不合法"""


class Trajectory:
    """
    单条轨迹

    times[r] 时刻起系统处于 states[r]，直到下一个事件或 end_time；
    相邻事件之间最多只有一个变量改变状态
    """

    def __init__(
        self,
        times: Sequence[float],
        states: Sequence[Sequence[int]],
        end_time: Optional[float] = None
    ):
        """
        初始化轨迹

        Args:
            times: 事件时间戳，严格递增且非负
            states: 每个事件的完整状态赋值，形状 (事件数, 变量数)
            end_time: 观测窗口结束时刻（默认为最后一个时间戳）
        """
        times = np.array(times, dtype=float)
        raw_states = np.asarray(states)

        if times.ndim != 1 or len(times) == 0:
            raise TrajectoryValidationError("轨迹至少需要一个事件")
        if raw_states.ndim != 2 or raw_states.shape[0] != len(times):
            raise TrajectoryValidationError(
                f"状态矩阵形状 {raw_states.shape} 与时间戳数量 {len(times)} 不一致"
            )
        if raw_states.size and not np.issubdtype(raw_states.dtype, np.integer):
            # 浮点形式的整数（如pandas读出的1.0）允许，其他取值拒绝
            if not np.issubdtype(raw_states.dtype, np.floating) or \
                    not np.all(np.isfinite(raw_states)) or \
                    not np.all(raw_states == np.round(raw_states)):
                raise TrajectoryValidationError("状态索引必须是整数")
        if not np.all(np.isfinite(times)):
            raise TrajectoryValidationError("时间戳必须是有限实数")
        if times[0] < 0:
            raise TrajectoryValidationError(f"时间戳必须非负: {times[0]}")
        if np.any(np.diff(times) <= 0):
            raise TrajectoryValidationError("时间戳必须严格递增")

        states = raw_states.astype(np.int64)
        if np.any(states < 0):
            raise TrajectoryValidationError("状态索引必须非负")

        # 相邻事件之间同时改变多个变量不合法
        changes = np.count_nonzero(np.diff(states, axis=0), axis=1)
        if np.any(changes > 1):
            row = int(np.argmax(changes > 1)) + 1
            raise TrajectoryValidationError(
                f"第 {row} 个事件同时改变了 {int(changes[row - 1])} 个变量"
            )

        if end_time is None:
            end_time = float(times[-1])
        elif not np.isfinite(end_time) or end_time < times[-1]:
            raise TrajectoryValidationError(
                f"结束时刻 {end_time} 早于最后一个事件 {times[-1]}"
            )

        times.setflags(write=False)
        states.setflags(write=False)
        self._times = times
        self._states = states
        self._end_time = float(end_time)

    @classmethod
    def from_records(
        cls,
        records: Iterable[Tuple[float, Mapping[str, int]]],
        variables: Sequence[Variable],
        end_time: Optional[float] = None
    ) -> 'Trajectory':
        """
        从 (时间戳, {变量名: 状态索引}) 记录构造轨迹

        Args:
            records: 事件记录
            variables: 变量列表（决定列顺序）
            end_time: 观测窗口结束时刻

        Returns:
            Trajectory对象
        """
        names = [v.name for v in variables]
        known = set(names)
        times = []
        rows = []
        for timestamp, assignment in records:
            undefined = sorted(set(assignment) - known)
            if undefined:
                raise TrajectoryValidationError(f"引用了未定义的变量: {undefined}")
            missing = [n for n in names if n not in assignment]
            if missing:
                raise TrajectoryValidationError(
                    f"时刻 {timestamp} 的状态赋值缺少变量: {missing}"
                )
            times.append(timestamp)
            rows.append([assignment[n] for n in names])

        trajectory = cls(times, np.asarray(rows).reshape(len(rows), len(names)), end_time)
        trajectory.check_against(variables)
        return trajectory

    @property
    def times(self) -> np.ndarray:
        return self._times

    @property
    def states(self) -> np.ndarray:
        return self._states

    @property
    def end_time(self) -> float:
        return self._end_time

    @property
    def n_variables(self) -> int:
        return self._states.shape[1]

    @property
    def n_events(self) -> int:
        return len(self._times)

    @property
    def durations(self) -> np.ndarray:
        """每个事件之后的停留时长（最后一个事件停留到 end_time）"""
        return np.diff(np.append(self._times, self._end_time))

    def check_against(self, variables: Sequence[Variable]) -> None:
        """
        校验轨迹与变量定义一致

        Args:
            variables: 变量列表
        """
        if self.n_variables != len(variables):
            raise TrajectoryValidationError(
                f"轨迹包含 {self.n_variables} 个变量，定义了 {len(variables)} 个"
            )
        for col, var in enumerate(variables):
            column = self._states[:, col]
            if np.any(column >= var.cardinality):
                raise TrajectoryValidationError(
                    f"变量 {var.name} 的状态索引 {int(column.max())} 超出范围 "
                    f"[0, {var.cardinality - 1}]"
                )

    def __len__(self) -> int:
        return self.n_events

    def __repr__(self) -> str:
        return (f"Trajectory(n_events={self.n_events}, "
                f"window=[{self._times[0]}, {self._end_time}])")


class TrajectoryStore:
    """
    轨迹集合

    录入后只读，可被多个学习线程同时读取
    """

    def __init__(self, variables: Sequence[Variable], trajectories: Iterable[Trajectory]):
        """
        初始化轨迹集合

        Args:
            variables: 变量列表（列顺序与轨迹状态矩阵一致）
            trajectories: 轨迹序列
        """
        self._variables = tuple(variables)
        names = [v.name for v in self._variables]
        if not self._variables:
            raise TrajectoryValidationError("变量列表不能为空")
        if len(set(names)) != len(names):
            raise TrajectoryValidationError(f"变量名重复: {names}")

        self._trajectories = tuple(trajectories)
        if not self._trajectories:
            raise TrajectoryValidationError("轨迹集合不能为空")
        for trajectory in self._trajectories:
            if not isinstance(trajectory, Trajectory):
                raise TrajectoryValidationError(f"不是Trajectory对象: {type(trajectory)}")
            trajectory.check_against(self._variables)

        self._index = {name: i for i, name in enumerate(names)}
        logger.info(f"轨迹集合已录入: {len(self._trajectories)} 条轨迹, "
                    f"{self.n_events} 个事件, 总时长 {self.total_time:.2f}")

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        variables: Sequence[Variable],
        time_column: str = 'time',
        trajectory_column: Optional[str] = 'trajectory_id',
        end_times: Optional[Mapping] = None
    ) -> 'TrajectoryStore':
        """
        从长表DataFrame构造轨迹集合

        Args:
            df: 每行一个事件，包含时间列、变量列，可选轨迹编号列
            variables: 变量列表
            time_column: 时间列名
            trajectory_column: 轨迹编号列名（None或不存在时视为单条轨迹）
            end_times: 轨迹编号到结束时刻的映射

        Returns:
            TrajectoryStore对象
        """
        if len(df) == 0:
            raise TrajectoryValidationError("DataFrame为空")
        if time_column not in df.columns:
            raise TrajectoryValidationError(f"缺少时间列: {time_column}")

        names = [v.name for v in variables]
        reserved = {time_column}
        has_groups = trajectory_column is not None and trajectory_column in df.columns
        if has_groups:
            reserved.add(trajectory_column)

        undefined = sorted(set(df.columns) - reserved - set(names))
        if undefined:
            raise TrajectoryValidationError(f"引用了未定义的变量: {undefined}")
        missing = [n for n in names if n not in df.columns]
        if missing:
            raise TrajectoryValidationError(f"缺少变量列: {missing}")
        if df[names].isna().any().any() or df[time_column].isna().any():
            raise TrajectoryValidationError("数据中存在缺失值")

        end_times = end_times or {}
        if has_groups:
            groups = df.groupby(trajectory_column, sort=True)
        else:
            groups = [(None, df)]

        trajectories = []
        for key, group in groups:
            trajectories.append(Trajectory(
                group[time_column].to_numpy(dtype=float),
                group[names].to_numpy(),
                end_times.get(key)
            ))
        return cls(variables, trajectories)

    @property
    def variables(self) -> Tuple[Variable, ...]:
        return self._variables

    @property
    def variable_names(self) -> List[str]:
        return [v.name for v in self._variables]

    @property
    def cardinalities(self) -> List[int]:
        return [v.cardinality for v in self._variables]

    @property
    def trajectories(self) -> Tuple[Trajectory, ...]:
        return self._trajectories

    @property
    def n_events(self) -> int:
        return sum(t.n_events for t in self._trajectories)

    @property
    def n_transitions(self) -> int:
        """所有轨迹中实际发生的状态转移次数"""
        return sum(
            int(np.count_nonzero(np.any(np.diff(t.states, axis=0) != 0, axis=1)))
            for t in self._trajectories
        )

    @property
    def total_time(self) -> float:
        return float(sum(t.end_time - t.times[0] for t in self._trajectories))

    def index_of(self, name: str) -> int:
        """变量名转列索引"""
        try:
            return self._index[name]
        except KeyError:
            raise KeyError(f"未定义的变量: {name}") from None

    def describe(self) -> Dict:
        """导出数据摘要"""
        return {
            'n_trajectories': len(self._trajectories),
            'n_events': self.n_events,
            'n_transitions': self.n_transitions,
            'total_time': self.total_time,
            'variables': {v.name: v.cardinality for v in self._variables}
        }

    def __len__(self) -> int:
        return len(self._trajectories)

    def __iter__(self) -> Iterator[Trajectory]:
        return iter(self._trajectories)
