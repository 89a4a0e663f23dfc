"""
charge_planner/relaxation.py - 整条路径的单步松弛

逐步演示模式：每调用一次 step，只对一个活动点施加聚合排斥力，
其余内部点只受轻微的路径张力（向相邻两点中点收拢）。
与 LazyPathPlanner 的插点-推点-锁定流程相互独立。
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence

import numpy as np

from .models import PathPoint, PlannerConfig
from .obstacles import ObstacleSet
from .repulsion import RepulsionField

logger = logging.getLogger(__name__)


@dataclass
class RelaxStepResult:
    """单步松弛结果

    Attributes:
        points: 新路径点
        intersections: 仍在障碍物内的边界点索引
        boundary_count: 新路径的边界穿越数
        active_index: 本步的活动点索引（无未解决穿越时为 None）
        active_resolved: 活动点是否已离开其障碍物
    """
    points: List[PathPoint]
    intersections: List[int]
    boundary_count: int
    active_index: Optional[int]
    active_resolved: bool


class PathRelaxer:
    """路径单步松弛器

    Args:
        obstacle_set: 障碍物集合
        config: 规划参数
        active_gain: 活动点的力增益
        tension_gain: 路径张力增益
    """

    def __init__(
        self,
        obstacle_set: ObstacleSet,
        config: Optional[PlannerConfig] = None,
        active_gain: float = 0.6,
        tension_gain: float = 0.05,
    ) -> None:
        self.obstacle_set = obstacle_set
        self.config = config or PlannerConfig()
        self.field = RepulsionField(obstacle_set, self.config)
        self.active_gain = active_gain
        self.tension_gain = tension_gain

    def step(
        self,
        points: Sequence[PathPoint],
        target_index: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> RelaxStepResult:
        """执行一步松弛

        Args:
            points: 当前路径点（至少 2 个）
            target_index: 指定活动点；None 时取第一个未解决的边界点
            rng: 力平衡扰动的随机源

        Returns:
            RelaxStepResult
        """
        if len(points) < 2:
            raise ValueError("路径至少需要起点和终点两个点")

        positions = [p.position for p in points]
        crossings = self.obstacle_set.find_boundary_crossings(positions)
        unresolved = [c for c in crossings
                      if self.obstacle_set.contains(positions[c.point_index], c.obstacle)]

        active_index = target_index
        active_obstacle = None
        if active_index is None and unresolved:
            active_index = unresolved[0].point_index
            active_obstacle = unresolved[0].obstacle
        elif active_index is not None:
            match = next((c for c in unresolved if c.point_index == active_index), None)
            if match is not None:
                active_obstacle = match.obstacle

        upper = self.config.map_size - 1
        last = len(points) - 1
        new_points: List[PathPoint] = []
        for i, point in enumerate(points):
            if i == 0 or i == last:
                new_points.append(replace(point, intersecting=False, boundary=False,
                                          perturbed=False, active=False))
                continue

            info = next((c for c in crossings if c.point_index == i), None)
            inside = info is not None and self.obstacle_set.contains(positions[i], info.obstacle)
            tension = (positions[i - 1] + positions[i + 1]) / 2.0 - positions[i]

            if point.locked:
                new_points.append(replace(point, active=False))
                continue

            if i != active_index:
                new_pos = np.clip(positions[i] + tension * self.tension_gain, 0.0, upper)
                new_points.append(point.moved_to(
                    new_pos, force=(0.0, 0.0), intersecting=inside,
                    boundary=info is not None, perturbed=False, active=False))
                continue

            force = self.field.aggregate_force(positions[i])
            perturbed = False
            if inside:
                obstacle = active_obstacle if active_obstacle is not None else info.obstacle
                force, perturbed = self.field.break_tie(force, positions[i], obstacle, rng)
            new_pos = np.clip(positions[i] + force * self.active_gain
                              + tension * self.tension_gain, 0.0, upper)
            new_points.append(point.moved_to(
                new_pos, force=(float(force[0]), float(force[1])),
                intersecting=inside, boundary=True, perturbed=perturbed, active=True))

        # 新位置上重新标记边界与相交状态
        new_crossings = self.obstacle_set.find_boundary_crossings(
            [p.position for p in new_points])
        intersections = []
        for c in new_crossings:
            p = new_points[c.point_index]
            inside = self.obstacle_set.contains(p.position, c.obstacle)
            new_points[c.point_index] = replace(p, boundary=True,
                                                intersecting=p.intersecting or inside)
            if inside:
                intersections.append(c.point_index)

        resolved = False
        if active_index is not None and active_obstacle is not None:
            resolved = not self.obstacle_set.contains(
                new_points[active_index].position, active_obstacle)
            logger.debug("松弛活动点 %d, 已离开: %s", active_index, resolved)

        return RelaxStepResult(
            points=new_points,
            intersections=intersections,
            boundary_count=len(new_crossings),
            active_index=active_index,
            active_resolved=resolved,
        )
