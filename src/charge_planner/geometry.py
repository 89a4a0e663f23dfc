"""
charge_planner/geometry.py - 几何基元

提供规划器使用的全部几何判定：
- 点是否在障碍物内（带膨胀半径，边界包含）
- 点到线段距离 / 点到障碍物距离
- 线段与障碍物相交：等间隔离散采样
- 边界定位：在内点与外点之间二分

采样说明：
    线段相交检测是离散近似而非精确几何求交。采样步长约为 1 个网格单位，
    比采样间隔更薄的障碍物可能被漏检，这是已知的近似，不是运行时错误。
"""

import math
from typing import List, Optional, Tuple

import numpy as np

from .models import (
    CircleObstacle,
    Obstacle,
    RectangleObstacle,
    TriangleObstacle,
    WallObstacle,
)


def point_to_segment_distance(
    point: np.ndarray, a: np.ndarray, b: np.ndarray,
) -> float:
    """点到线段的最短距离（投影参数截断到 [0, 1]）

    a == b 时退化为点到点距离。
    """
    p = np.asarray(point, dtype=np.float64)
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    ab = b - a
    len_sq = float(np.dot(ab, ab))
    if len_sq == 0.0:
        return float(np.linalg.norm(p - a))
    t = min(1.0, max(0.0, float(np.dot(p - a, ab)) / len_sq))
    return float(np.linalg.norm(p - (a + t * ab)))


def _point_in_triangle(p: np.ndarray, vertices: np.ndarray) -> bool:
    """重心坐标判定（边界包含）"""
    p0, p1, p2 = vertices
    e1 = p1 - p0
    e2 = p2 - p0
    d = p - p0
    area = e1[0] * e2[1] - e2[0] * e1[1]
    # p = p0 + s * e1 + t * e2
    s = (d[0] * e2[1] - e2[0] * d[1]) / area
    t = (e1[0] * d[1] - d[0] * e1[1]) / area
    return s >= 0 and t >= 0 and (1 - s - t) >= 0


def point_in_obstacle(
    point: np.ndarray,
    obstacle: Obstacle,
    inflation: float = 0.0,
) -> bool:
    """检查点是否在（膨胀后的）障碍物内

    Args:
        point: 查询点 (x, y)
        obstacle: 障碍物
        inflation: 膨胀半径；对 WallObstacle 表示向内收缩的安全边距

    Returns:
        True 表示在障碍物内（边界上也算在内）
    """
    x, y = float(point[0]), float(point[1])

    if isinstance(obstacle, WallObstacle):
        hi = obstacle.map_size - 1 - inflation
        return x < inflation or x > hi or y < inflation or y > hi

    if isinstance(obstacle, RectangleObstacle):
        return (obstacle.x1 - inflation <= x <= obstacle.x2 + inflation
                and obstacle.y1 - inflation <= y <= obstacle.y2 + inflation)

    if isinstance(obstacle, CircleObstacle):
        return math.hypot(x - obstacle.cx, y - obstacle.cy) <= obstacle.radius + inflation

    if isinstance(obstacle, TriangleObstacle):
        p = np.array([x, y])
        if _point_in_triangle(p, obstacle.vertices):
            return True
        if inflation > 0:
            # 边的截断距离已覆盖顶点邻域
            v = obstacle.vertices
            for i in range(3):
                if point_to_segment_distance(p, v[i], v[(i + 1) % 3]) <= inflation:
                    return True
        return False

    raise TypeError(f"不支持的障碍物类型: {type(obstacle).__name__}")


def distance_to_obstacle(point: np.ndarray, obstacle: Obstacle) -> float:
    """点到障碍物（未膨胀）的距离，点在内部时返回 0

    对 WallObstacle 返回到地图边界 [0, map_size - 1] 的最近距离。
    """
    p = np.asarray(point, dtype=np.float64)

    if isinstance(obstacle, WallObstacle):
        hi = obstacle.map_size - 1
        return max(0.0, float(min(p[0], p[1], hi - p[0], hi - p[1])))

    if isinstance(obstacle, RectangleObstacle):
        lo, hi = obstacle.bounds
        return float(np.linalg.norm(p - np.clip(p, lo, hi)))

    if isinstance(obstacle, CircleObstacle):
        return max(0.0, float(np.linalg.norm(p - obstacle.center)) - obstacle.radius)

    if isinstance(obstacle, TriangleObstacle):
        if _point_in_triangle(p, obstacle.vertices):
            return 0.0
        v = obstacle.vertices
        return min(point_to_segment_distance(p, v[i], v[(i + 1) % 3])
                   for i in range(3))

    raise TypeError(f"不支持的障碍物类型: {type(obstacle).__name__}")


def _n_steps(p1: np.ndarray, p2: np.ndarray, min_samples: int) -> int:
    return max(int(math.ceil(abs(p2[0] - p1[0]))),
               int(math.ceil(abs(p2[1] - p1[1]))),
               min_samples)


def segment_crosses_obstacle(
    p1: np.ndarray,
    p2: np.ndarray,
    obstacle: Obstacle,
    inflation: float = 0.0,
    min_samples: int = 10,
) -> bool:
    """线段是否穿过障碍物（离散采样，不含端点）

    采样数为 max(ceil|dx|, ceil|dy|, min_samples)，命中即返回。
    """
    p1 = np.asarray(p1, dtype=np.float64)
    p2 = np.asarray(p2, dtype=np.float64)
    steps = _n_steps(p1, p2, min_samples)
    for i in range(1, steps):
        if point_in_obstacle(p1 + (p2 - p1) * (i / steps), obstacle, inflation):
            return True
    return False


def first_segment_obstacle_intersection(
    p1: np.ndarray,
    p2: np.ndarray,
    obstacle: Obstacle,
    inflation: float = 0.0,
    min_samples: int = 20,
) -> Optional[np.ndarray]:
    """返回线段上第一个落在障碍物内的内部采样点

    与 segment_crosses_obstacle 相同的采样方式，但采样更密（默认至少 20 步）。

    Returns:
        第一个命中的采样点；全部在外时返回 None
    """
    p1 = np.asarray(p1, dtype=np.float64)
    p2 = np.asarray(p2, dtype=np.float64)
    steps = _n_steps(p1, p2, min_samples)
    for i in range(1, steps):
        sample = p1 + (p2 - p1) * (i / steps)
        if point_in_obstacle(sample, obstacle, inflation):
            return sample
    return None


def line_samples_in_obstacle(
    p1: np.ndarray,
    p2: np.ndarray,
    obstacle: Obstacle,
    inflation: float = 0.0,
) -> List[Tuple[np.ndarray, float]]:
    """沿线段（含端点）以每网格单位 2 个采样，返回所有在障碍物内的 (点, t)"""
    p1 = np.asarray(p1, dtype=np.float64)
    p2 = np.asarray(p2, dtype=np.float64)
    steps = max(1, int(math.ceil(max(abs(p2[0] - p1[0]), abs(p2[1] - p1[1])) * 2)))
    hits = []
    for i in range(steps + 1):
        t = i / steps
        sample = p1 + (p2 - p1) * t
        if point_in_obstacle(sample, obstacle, inflation):
            hits.append((sample, t))
    return hits


def boundary_crossing(
    inside_point: np.ndarray,
    outside_point: np.ndarray,
    obstacle: Obstacle,
    inflation: float = 0.0,
    iterations: int = 10,
) -> np.ndarray:
    """在已知内点与外点之间二分，逼近障碍物边界

    固定迭代次数，返回最终区间的中点。
    """
    inside = np.asarray(inside_point, dtype=np.float64)
    outside = np.asarray(outside_point, dtype=np.float64)
    for _ in range(iterations):
        mid = (inside + outside) / 2.0
        if point_in_obstacle(mid, obstacle, inflation):
            inside = mid
        else:
            outside = mid
    return (inside + outside) / 2.0
