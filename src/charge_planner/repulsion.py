"""
charge_planner/repulsion.py - 排斥力场

两种力：
1. 聚合排斥力：所有障碍物包围盒对一点的线性叠加，作用半径内线性衰减
2. 逃逸力：把单个活动点推出单个障碍物的方向场

逃逸方向的回退顺序：
    垂直于路径的较近净空方向 → 远离障碍物质心 → 力平衡时叠加扰动
垂直净空搜索使用整个 ObstacleSet，避免把点推进另一个原本无关的障碍物。
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import numpy as np

from .models import Obstacle, PlannerConfig, WallObstacle
from .obstacles import ObstacleSet

logger = logging.getLogger(__name__)


def _normalize(v: np.ndarray) -> np.ndarray:
    n = float(np.linalg.norm(v))
    return v / (n or 1.0)


@dataclass
class EscapeForce:
    """逃逸力计算结果

    Attributes:
        force: 力向量 (fx, fy)
        source: 方向来源 'wall' / 'left' / 'right' / 'centroid'
        clearance: 选中垂直方向的净空距离（非垂直来源时为 None）
    """
    force: np.ndarray
    source: str
    clearance: Optional[float] = None

    @property
    def magnitude(self) -> float:
        return float(np.linalg.norm(self.force))


class RepulsionField:
    """排斥力场

    Args:
        obstacle_set: 本次规划的障碍物集合
        config: 规划参数（强度、半径、搜索步长等）

    Example:
        >>> field = RepulsionField(obstacle_set, PlannerConfig())
        >>> esc = field.escape_force(p, obstacle, prev_locked, next_locked)
        >>> force, perturbed = field.break_tie(esc.force, p, obstacle, rng)
    """

    def __init__(self, obstacle_set: ObstacleSet, config: PlannerConfig) -> None:
        self.obstacle_set = obstacle_set
        self.config = config

    # ── 聚合排斥力 ──

    def aggregate_force(
        self,
        point: np.ndarray,
        obstacles: Optional[Iterable[Obstacle]] = None,
    ) -> np.ndarray:
        """所有障碍物对 point 的聚合排斥力

        以障碍物包围盒上的最近点计算距离 d，d < R 时强度为 K * (1 - d / R)，
        方向由障碍物指向点。d 为 0 时按 0.1 处理，点在包围盒内部时方向为零。
        墙体没有包围盒，不参与聚合。
        """
        p = np.asarray(point, dtype=np.float64)
        k = self.config.repulsion_strength
        r = self.config.repulsion_radius
        if obstacles is None:
            obstacles = self.obstacle_set.obstacles

        total = np.zeros(2)
        for obs in obstacles:
            if isinstance(obs, WallObstacle):
                continue
            lo, hi = obs.bounds
            diff = p - np.clip(p, lo, hi)
            dist = float(np.linalg.norm(diff)) or 0.1
            if dist < r:
                total += diff / dist * (k * (1.0 - dist / r))
        return total

    # ── 逃逸力 ──

    def _wall_force(self, p: np.ndarray) -> np.ndarray:
        """墙体逃逸：逐轴向内，幅值随越界深度增大"""
        margin = self.config.inflation_radius
        hi = self.obstacle_set.map_size - 1 - margin
        base = self.config.escape_strength_ratio * self.config.repulsion_strength
        force = np.zeros(2)
        for axis in range(2):
            if p[axis] < margin:
                force[axis] = base * (1.0 + (margin - p[axis]))
            elif p[axis] > hi:
                force[axis] = -base * (1.0 + (p[axis] - hi))
        return force

    def clearance_distance(
        self, point: np.ndarray, direction: np.ndarray,
    ) -> Optional[float]:
        """沿 direction 前进多远可脱离所有障碍物

        以 escape_search_step 为步长搜索到 escape_search_limit（不含），
        找不到时返回 None。
        """
        step = self.config.escape_search_step
        n = int(math.ceil(self.config.escape_search_limit / step))
        for k in range(1, n):
            d = k * step
            if not self.obstacle_set.blocked_anywhere(point + direction * d):
                return d
        return None

    def escape_force(
        self,
        point: np.ndarray,
        obstacle: Obstacle,
        path_prev: Optional[np.ndarray] = None,
        path_next: Optional[np.ndarray] = None,
        fallback_direction: Optional[np.ndarray] = None,
    ) -> EscapeForce:
        """把 point 推出 obstacle 的逃逸力

        Args:
            point: 活动点
            obstacle: 活动点所在的障碍物
            path_prev, path_next: 活动点前后最近的锁定点，决定局部路径方向
            fallback_direction: 缺少前后点时使用的路径方向（通常为 goal - start）

        Returns:
            EscapeForce
        """
        p = np.asarray(point, dtype=np.float64)
        k = self.config.repulsion_strength

        if isinstance(obstacle, WallObstacle):
            return EscapeForce(self._wall_force(p), 'wall')

        if path_prev is not None and path_next is not None:
            direction = np.asarray(path_next, dtype=np.float64) - np.asarray(path_prev, dtype=np.float64)
        elif fallback_direction is not None:
            direction = np.asarray(fallback_direction, dtype=np.float64)
        else:
            direction = np.array([1.0, 0.0])
        direction = _normalize(direction)

        left = np.array([-direction[1], direction[0]])
        right = np.array([direction[1], -direction[0]])
        dist_left = self.clearance_distance(p, left)
        dist_right = self.clearance_distance(p, right)

        strength = self.config.escape_strength_ratio * k
        if dist_left is not None and (dist_right is None or dist_left <= dist_right):
            return EscapeForce(left * strength, 'left', dist_left)
        if dist_right is not None:
            return EscapeForce(right * strength, 'right', dist_right)

        # 两侧均无净空：远离障碍物质心
        away = p - obstacle.center
        dist = float(np.linalg.norm(away)) or 1.0
        logger.debug("垂直方向均无净空, 回退到质心排斥 (%.2f, %.2f)", p[0], p[1])
        return EscapeForce(away / dist * (self.config.centroid_strength_ratio * k),
                           'centroid')

    # ── 力平衡打破 ──

    def break_tie(
        self,
        force: np.ndarray,
        point: np.ndarray,
        obstacle: Obstacle,
        rng: Optional[np.random.Generator] = None,
        fallback_direction: Optional[np.ndarray] = None,
    ) -> Tuple[np.ndarray, bool]:
        """力幅值低于平衡阈值时叠加固定幅值的扰动

        调用方保证 point 仍在障碍物内。

        'random' 模式使用 rng 随机角度；'deterministic' 模式取质心指向点的
        方向（退化时用 fallback_direction）逆时针旋转 90°。

        Returns:
            (最终力, 是否施加了扰动)
        """
        force = np.asarray(force, dtype=np.float64)
        if float(np.linalg.norm(force)) >= self.config.force_balance_threshold:
            return force, False

        amp = self.config.perturbation_strength
        if self.config.perturbation_mode == 'random':
            if rng is None:
                rng = np.random.default_rng()
            angle = rng.uniform(0.0, 2.0 * math.pi)
            nudge = np.array([math.cos(angle), math.sin(angle)])
        else:
            base = np.asarray(point, dtype=np.float64) - obstacle.center
            if float(np.linalg.norm(base)) < 1e-9:
                base = (np.asarray(fallback_direction, dtype=np.float64)
                        if fallback_direction is not None else np.array([1.0, 0.0]))
            base = _normalize(base)
            nudge = np.array([-base[1], base[0]])
        return force + nudge * amp, True
