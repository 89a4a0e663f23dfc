"""
charge_planner/metrics.py - 路径质量评价指标

提供多维度路径质量评估：
- 路径长度 / 直线距离 / 效率比值
- 平滑度（相邻线段转角）
- 安全裕度（到最近障碍物的距离，沿路径采样）
- 规划过程统计（快照数、插点数、扰动次数、耗时）
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .geometry import distance_to_obstacle
from .models import PlannerResult
from .obstacles import ObstacleSet
from .path_smoother import PathSmoother, compute_path_length

logger = logging.getLogger(__name__)


@dataclass
class PathMetrics:
    """路径质量指标汇总

    Attributes:
        path_length: 路径总长度
        direct_distance: 起终点直线距离
        length_ratio: 路径长度 / 直线距离 (>= 1.0, 越接近 1 越高效)
        smoothness: 平均转角 (rad, 越小越平滑)
        max_turn: 最大转角 (rad)
        min_clearance: 沿路径到障碍物（未膨胀）的最小距离
        avg_clearance: 平均距离
        n_waypoints: 路径点数量
        n_snapshots: History 快照数量
        n_inserted: 插入的路径点数
        n_perturbations: 扰动次数
        n_iterations: 全局迭代数
        computation_time: 规划耗时 (s)
        success: 是否成功
    """
    path_length: float = 0.0
    direct_distance: float = 0.0
    length_ratio: float = float('inf')
    smoothness: float = 0.0
    max_turn: float = 0.0
    min_clearance: float = float('inf')
    avg_clearance: float = 0.0
    n_waypoints: int = 0
    n_snapshots: int = 0
    n_inserted: int = 0
    n_perturbations: int = 0
    n_iterations: int = 0
    computation_time: float = 0.0
    success: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)

    def summary(self) -> str:
        """返回可读的指标摘要"""
        lines = [
            "=" * 50,
            "路径质量指标",
            "=" * 50,
            f"是否成功:           {self.success}",
            f"路径长度:           {self.path_length:.4f}",
            f"直线距离:           {self.direct_distance:.4f}",
            f"路径效率 (比值):    {self.length_ratio:.4f}",
            f"平滑度 (均值转角):  {self.smoothness:.4f} rad",
            f"最大转角:           {self.max_turn:.4f} rad",
            f"最小安全裕度:       {self.min_clearance:.4f}",
            f"平均安全裕度:       {self.avg_clearance:.4f}",
            f"路径点数:           {self.n_waypoints}",
            f"快照数:             {self.n_snapshots}",
            f"插入点数:           {self.n_inserted}",
            f"扰动次数:           {self.n_perturbations}",
            f"迭代次数:           {self.n_iterations}",
            f"计算时间:           {self.computation_time:.3f} s",
            "=" * 50,
        ]
        return "\n".join(lines)


def compute_smoothness(path: Sequence[np.ndarray]) -> Tuple[float, float]:
    """以相邻线段之间的转角衡量平滑度

    Returns:
        (mean_turn, max_turn) in radians
    """
    if len(path) < 3:
        return 0.0, 0.0

    angles = []
    for i in range(1, len(path) - 1):
        v1 = np.asarray(path[i]) - np.asarray(path[i - 1])
        v2 = np.asarray(path[i + 1]) - np.asarray(path[i])
        n1 = np.linalg.norm(v1)
        n2 = np.linalg.norm(v2)
        if n1 < 1e-10 or n2 < 1e-10:
            continue
        cos_angle = np.clip(np.dot(v1, v2) / (n1 * n2), -1.0, 1.0)
        angles.append(float(np.arccos(cos_angle)))

    if not angles:
        return 0.0, 0.0
    return float(np.mean(angles)), float(np.max(angles))


def compute_clearance(
    path: Sequence[np.ndarray],
    obstacle_set: ObstacleSet,
    resolution: float = 0.5,
    include_wall: bool = False,
) -> Tuple[float, float]:
    """沿路径重采样后计算到最近障碍物的距离

    Returns:
        (min_clearance, avg_clearance)；无障碍物时返回 (inf, inf)
    """
    obstacles = obstacle_set.all_obstacles() if include_wall else obstacle_set.obstacles
    if not obstacles or len(path) == 0:
        return float('inf'), float('inf')

    samples = PathSmoother().resample(path, resolution)
    dists = [min(distance_to_obstacle(p, obs) for obs in obstacles) for p in samples]
    return float(min(dists)), float(np.mean(dists))


def evaluate_result(
    result: PlannerResult,
    obstacle_set: Optional[ObstacleSet] = None,
    path: Optional[List[np.ndarray]] = None,
) -> PathMetrics:
    """评估一次规划结果

    Args:
        result: 规划结果
        obstacle_set: 障碍物集合（None 时不计算安全裕度）
        path: 待评估路径，默认取最终快照（可传入平滑后的路径）
    """
    if path is None:
        path = result.path
    metrics = PathMetrics(
        n_waypoints=len(path),
        n_snapshots=len(result.history),
        n_inserted=result.n_inserted,
        n_perturbations=result.n_perturbations,
        n_iterations=result.n_iterations,
        computation_time=result.computation_time,
        success=result.success,
    )
    if len(path) < 2:
        return metrics

    metrics.path_length = compute_path_length(path)
    metrics.direct_distance = float(np.linalg.norm(np.asarray(path[-1]) - np.asarray(path[0])))
    if metrics.direct_distance > 1e-10:
        metrics.length_ratio = metrics.path_length / metrics.direct_distance
    metrics.smoothness, metrics.max_turn = compute_smoothness(path)
    if obstacle_set is not None:
        metrics.min_clearance, metrics.avg_clearance = compute_clearance(path, obstacle_set)
    return metrics


def format_comparison_table(rows: Dict[str, PathMetrics]) -> str:
    """多个场景/配置的指标对比表（Markdown）"""
    header = "| 名称 | 成功 | 长度 | 效率 | 平均转角 | 最小裕度 | 快照 | 插点 | 耗时(s) |"
    sep = "|------|------|------|------|----------|----------|------|------|---------|"
    lines = [header, sep]
    for name, m in rows.items():
        clearance = "-" if math.isinf(m.min_clearance) else f"{m.min_clearance:.3f}"
        lines.append(
            f"| {name} | {'✓' if m.success else '✗'} | {m.path_length:.3f} | "
            f"{m.length_ratio:.3f} | {m.smoothness:.3f} | {clearance} | "
            f"{m.n_snapshots} | {m.n_inserted} | {m.computation_time:.3f} |")
    return "\n".join(lines)
