"""
charge_planner/path_smoother.py - 路径后处理

提供路径平滑和辅助功能：
1. Chaikin 切角平滑（首尾点固定）
2. 平滑结果的穿越检查（平滑本身不做碰撞检测）
3. 等间距重采样
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from .geometry import segment_crosses_obstacle
from .models import Snapshot
from .obstacles import ObstacleSet

logger = logging.getLogger(__name__)


def smooth_path(points: Sequence[np.ndarray], iterations: int) -> List[np.ndarray]:
    """Chaikin 切角平滑

    每轮对每个线段 (p0, p1) 取 25% / 75% 插值点替换拐角：
    第一段输出两个切点，最后一段只输出 25% 切点，起终点每轮保持不变。
    少于 3 个点或 iterations 为 0 时原样返回（副本）。

    平滑不检查障碍物，结果不保证无穿越。

    Args:
        points: 路径点序列
        iterations: 平滑轮数 (>= 0)

    Returns:
        平滑后的路径点列表
    """
    if iterations < 0:
        raise ValueError(f"iterations 不能为负: {iterations}")
    smoothed = [np.array(p, dtype=np.float64) for p in points]
    if len(smoothed) < 3:
        return smoothed

    for _ in range(iterations):
        n = len(smoothed)
        new_points = [smoothed[0]]
        for i in range(n - 1):
            p0, p1 = smoothed[i], smoothed[i + 1]
            q = p0 * 0.75 + p1 * 0.25
            if i == n - 2:
                new_points.append(q)
            else:
                new_points.append(q)
                new_points.append(p0 * 0.25 + p1 * 0.75)
        new_points.append(smoothed[-1])
        smoothed = new_points

    return smoothed


def compute_path_length(path: Sequence[np.ndarray]) -> float:
    """计算路径总长度 (L2)"""
    if len(path) < 2:
        return 0.0
    return sum(float(np.linalg.norm(np.asarray(path[i]) - np.asarray(path[i - 1])))
               for i in range(1, len(path)))


class PathSmoother:
    """路径后处理器

    Args:
        obstacle_set: 障碍物集合（可选，仅用于平滑后的穿越检查）
        iterations: 默认平滑轮数

    Example:
        >>> smoother = PathSmoother(obstacle_set, iterations=3)
        >>> smooth = smoother.smooth(result.path)
        >>> bad = smoother.find_crossings(smooth)
    """

    def __init__(
        self,
        obstacle_set: Optional[ObstacleSet] = None,
        iterations: int = 3,
    ) -> None:
        self.obstacle_set = obstacle_set
        self.iterations = iterations

    def smooth(
        self,
        points: Sequence[np.ndarray],
        iterations: Optional[int] = None,
    ) -> List[np.ndarray]:
        n_iters = self.iterations if iterations is None else iterations
        return smooth_path(points, n_iters)

    def smooth_snapshot(
        self,
        snapshot: Snapshot,
        iterations: Optional[int] = None,
    ) -> List[np.ndarray]:
        """平滑快照中的路径点"""
        return self.smooth(snapshot.positions, iterations)

    def find_crossings(
        self,
        points: Sequence[np.ndarray],
        min_samples: int = 10,
    ) -> List[int]:
        """返回穿越任一障碍物的线段起点索引

        未配置 obstacle_set 时返回空列表。
        """
        if self.obstacle_set is None:
            return []
        bad = []
        infl = self.obstacle_set.inflation
        for i in range(len(points) - 1):
            if any(segment_crosses_obstacle(points[i], points[i + 1], obs, infl,
                                            min_samples)
                   for obs in self.obstacle_set.all_obstacles()):
                bad.append(i)
        if bad:
            logger.info("平滑后路径有 %d 段穿越障碍物", len(bad))
        return bad

    def resample(
        self,
        path: Sequence[np.ndarray],
        resolution: float = 0.5,
    ) -> List[np.ndarray]:
        """等间距重采样

        在路径上以固定步长重新采样，使路径点间距均匀。

        Args:
            path: 输入路径
            resolution: 目标点间距（网格单位）

        Returns:
            重采样后的路径
        """
        if resolution <= 0:
            raise ValueError(f"resolution 必须为正数: {resolution}")
        if len(path) <= 1:
            return [np.array(p, dtype=np.float64) for p in path]

        resampled = [np.array(path[0], dtype=np.float64)]
        for i in range(1, len(path)):
            prev = np.asarray(path[i - 1], dtype=np.float64)
            seg_vec = np.asarray(path[i], dtype=np.float64) - prev
            seg_len = float(np.linalg.norm(seg_vec))
            if seg_len < 1e-10:
                continue
            n_steps = max(1, int(np.ceil(seg_len / resolution)))
            for k in range(1, n_steps + 1):
                resampled.append(prev + (k / n_steps) * seg_vec)
        return resampled
