"""
charge_planner/lazy_planner.py - 惰性排斥路径规划主引擎

从起点到终点的直线出发，只在被阻挡处做功：

1. 初始化：直线均匀采样，记录初始快照
2. 从起点向终点扫描线段，找到第一个穿越障碍物（含墙体）的线段
3. 无穿越 → 成功结束
4. 在最早的穿越采样点处插入活动点
5. 以前后最近的锁定点确定局部路径方向
6. 用逃逸力逐步把活动点推出其所在障碍物（每个子步记录快照）
7. 推出后锁定该点，剪除所有未锁定的中间点
8. 回到第 2 步

始终先解决最靠近起点的穿越，保证沿起点→终点方向单调推进。
全局迭代上限（插点与推点子步都计入）耗尽时以 ABORTED 结束，
返回的 History 末帧报告剩余穿越，不视为错误。
"""

import itertools
import logging
import time
from dataclasses import dataclass, replace
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from .geometry import first_segment_obstacle_intersection, segment_crosses_obstacle
from .models import (
    Obstacle,
    PathPoint,
    PlannerConfig,
    PlannerResult,
    PlannerState,
    Snapshot,
)
from .obstacles import ObstacleSet, Scene
from .repulsion import RepulsionField
from .utils.seed import make_rng
from .utils.timing import Timer

logger = logging.getLogger(__name__)


@dataclass
class _RunContext:
    """单次规划的工作状态，规划结束即丢弃"""
    result: PlannerResult
    rng: np.random.Generator
    timer: Timer
    t0: float
    ids: Iterator[int]
    fallback_direction: np.ndarray
    iterations: int = 0
    abort_reason: str = ""


class LazyPathPlanner:
    """惰性排斥路径规划器

    Args:
        obstacles: Scene 或障碍物列表（墙体自动添加）
        config: 规划参数配置

    Example:
        >>> scene = Scene.default()
        >>> planner = LazyPathPlanner(scene)
        >>> result = planner.plan((2, 2), (37, 37), seed=0)
        >>> if result.success:
        ...     print(f"路径点数: {len(result.path)}")
    """

    def __init__(
        self,
        obstacles: Union[Scene, Iterable[Obstacle]],
        config: Optional[PlannerConfig] = None,
    ) -> None:
        self.config = config or PlannerConfig()
        self.config.validate()
        if isinstance(obstacles, Scene):
            obstacles = obstacles.get_obstacles()
        self.obstacle_set = ObstacleSet(
            obstacles,
            map_size=self.config.map_size,
            inflation=self.config.inflation_radius,
            bisection_iterations=self.config.bisection_iterations,
        )
        self.field = RepulsionField(self.obstacle_set, self.config)
        self.state = PlannerState.IDLE

    # ── 入口 ──

    def plan(
        self,
        start: Sequence[float],
        goal: Sequence[float],
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> PlannerResult:
        """执行一次完整规划

        Args:
            start: 起点 (x, y)
            goal: 终点 (x, y)
            seed: 扰动随机源种子（可选，用于可重复性）
            rng: 直接注入的随机数生成器，优先于 seed

        Returns:
            PlannerResult，其 history 为完整快照序列

        Raises:
            ValueError: 坐标非有限值或起终点重合
        """
        start = self._as_point(start, 'start')
        goal = self._as_point(goal, 'goal')
        if np.allclose(start, goal):
            raise ValueError(f"起点与终点重合: {start.tolist()}")

        t0 = time.perf_counter()
        ctx = _RunContext(
            result=PlannerResult(start=start.copy(), goal=goal.copy()),
            rng=make_rng(seed, rng),
            timer=Timer(),
            t0=t0,
            ids=itertools.count(),
            fallback_direction=goal - start,
        )
        self.state = PlannerState.INITIALIZING
        try:
            self._plan_impl(start, goal, ctx)
        finally:
            ctx.result.computation_time = time.perf_counter() - t0
            ctx.result.phase_times = ctx.timer.to_dict()
            ctx.result.n_iterations = ctx.iterations
            self.state = ctx.result.state
        return ctx.result

    @staticmethod
    def _as_point(p: Sequence[float], label: str) -> np.ndarray:
        arr = np.asarray(p, dtype=np.float64)
        if arr.shape != (2,):
            raise ValueError(f"{label} 必须是二维点, 得到形状 {arr.shape}")
        if not np.all(np.isfinite(arr)):
            raise ValueError(f"{label} 含非有限坐标: {arr.tolist()}")
        return arr

    # ── 主循环 ──

    def _plan_impl(self, start: np.ndarray, goal: np.ndarray, ctx: _RunContext) -> None:
        cfg = self.config
        result = ctx.result

        for label, p in (('start', start), ('goal', goal)):
            if self.obstacle_set.blocked_anywhere(p):
                result.blocked_endpoints.append(label)
                logger.warning("%s (%.2f, %.2f) 位于膨胀障碍物内, 端点保持锁定不会被移动",
                               label, p[0], p[1])

        path = self._initial_path(start, goal, ctx)
        self._record(result.history, path, "初始直线路径")
        self.state = PlannerState.ITERATING

        solved = False
        while ctx.iterations < cfg.max_iterations:
            if self._over_budget(ctx):
                break

            with ctx.timer.phase('scan'):
                hit = self._find_first_crossing(path)

            if hit is None:
                solved = True
                break

            seg_idx, sample, obstacle = hit
            active_idx = seg_idx + 1
            path.insert(active_idx, PathPoint(
                float(sample[0]), float(sample[1]),
                point_id=next(ctx.ids),
                active=True, boundary=True, intersecting=True,
            ))
            result.n_inserted += 1
            ctx.iterations += 1
            self._record(result.history, path,
                         f"在线段 {seg_idx} 插入点 ({obstacle.name}), 开始推出...",
                         (active_idx,), active_idx)
            logger.debug("插入点 #%d 于线段 %d, 位置 (%.3f, %.3f), 障碍物 '%s'",
                         result.n_inserted, seg_idx, sample[0], sample[1], obstacle.name)

            prev_ref, next_ref = self._locked_neighbors(path, active_idx)
            with ctx.timer.phase('push'):
                still_inside = self._push_out(path, active_idx, obstacle,
                                              prev_ref, next_ref, ctx)
            if still_inside:
                logger.warning("点 %d 在推点上限内未能离开障碍物 '%s', 仍将锁定",
                               active_idx, obstacle.name)

            path[active_idx] = replace(path[active_idx], locked=True,
                                       active=False, intersecting=still_inside)
            n_locked = sum(1 for p in path if p.locked)
            self._record(result.history, path,
                         f"锁定点 {active_idx} (已锁定 {n_locked - 2} 个)")

            # 只保留锁定点（含起终点）
            path = [p for p in path if p.locked]

            if cfg.verbose:
                logger.info("迭代 %d: 已插入 %d 个点, 路径 %d 个锁定点",
                            ctx.iterations, result.n_inserted, len(path))

        if solved:
            self._finish_solved(path, ctx)
        else:
            self._finish_aborted(path, ctx)

    def _finish_solved(self, path: List[PathPoint], ctx: _RunContext) -> None:
        result = ctx.result
        message = "✓ 路径已完全避开所有障碍物"
        final = [replace(p, active=False, intersecting=False) for p in path]
        if result.n_inserted == 0:
            # 直线无穿越：初始快照即最终结果
            result.history[0] = Snapshot(tuple(final), message)
        else:
            self._record(result.history, final, message)
        result.success = True
        result.state = PlannerState.READY
        result.n_unresolved = 0
        result.message = f"规划成功: {ctx.iterations} 次迭代, 插入 {result.n_inserted} 个点"
        logger.info(result.message)

    def _finish_aborted(self, path: List[PathPoint], ctx: _RunContext) -> None:
        result = ctx.result
        unresolved = self._count_crossing_segments(path)
        inside = tuple(i for i, p in enumerate(path)
                       if self.obstacle_set.blocked_anywhere(p.position))
        reason = ctx.abort_reason or f"达到最大迭代次数 ({self.config.max_iterations})"
        message = f"{reason}, 仍有 {unresolved} 段穿越障碍物"
        self._record(result.history, path, message, inside)
        result.success = unresolved == 0
        result.state = PlannerState.ABORTED
        result.n_unresolved = unresolved
        result.message = message
        logger.warning(message)

    # ── 步骤实现 ──

    def _initial_path(self, start: np.ndarray, goal: np.ndarray,
                      ctx: _RunContext) -> List[PathPoint]:
        """直线均匀采样，起终点锁定"""
        n = self.config.n_initial_samples
        path = []
        for i in range(n + 1):
            p = start + (goal - start) * (i / n)
            path.append(PathPoint(float(p[0]), float(p[1]),
                                  point_id=next(ctx.ids),
                                  locked=(i == 0 or i == n)))
        return path

    def _find_first_crossing(
        self, path: Sequence[PathPoint],
    ) -> Optional[Tuple[int, np.ndarray, Obstacle]]:
        """从起点开始找第一个穿越障碍物的线段及其最早的内部采样点"""
        cfg = self.config
        infl = self.obstacle_set.inflation
        for i in range(len(path) - 1):
            p1 = path[i].position
            p2 = path[i + 1].position
            for obs in self.obstacle_set.all_obstacles():
                if not segment_crosses_obstacle(p1, p2, obs, infl,
                                                cfg.crossing_min_samples):
                    continue
                sample = first_segment_obstacle_intersection(
                    p1, p2, obs, infl, cfg.intersection_min_samples)
                if sample is not None:
                    return i, sample, obs
        return None

    def _count_crossing_segments(self, path: Sequence[PathPoint]) -> int:
        infl = self.obstacle_set.inflation
        n = 0
        for i in range(len(path) - 1):
            p1, p2 = path[i].position, path[i + 1].position
            if any(segment_crosses_obstacle(p1, p2, obs, infl,
                                            self.config.crossing_min_samples)
                   for obs in self.obstacle_set.all_obstacles()):
                n += 1
        return n

    @staticmethod
    def _locked_neighbors(
        path: Sequence[PathPoint], index: int,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """活动点前后最近的锁定点（起终点始终锁定）"""
        prev_idx = next(i for i in range(index - 1, -1, -1) if path[i].locked)
        next_idx = next(i for i in range(index + 1, len(path)) if path[i].locked)
        return path[prev_idx].position, path[next_idx].position

    def _push_out(
        self,
        path: List[PathPoint],
        index: int,
        obstacle: Obstacle,
        prev_ref: np.ndarray,
        next_ref: np.ndarray,
        ctx: _RunContext,
    ) -> bool:
        """把 path[index] 推出 obstacle，返回结束时是否仍在障碍物内"""
        cfg = self.config
        upper = cfg.map_size - 1
        point = path[index]
        inside = self.obstacle_set.contains(point.position, obstacle)
        pushes = 0

        while inside and pushes < cfg.max_push_iterations:
            pos = point.position
            escape = self.field.escape_force(pos, obstacle, prev_ref, next_ref,
                                             ctx.fallback_direction)
            force, perturbed = self.field.break_tie(
                escape.force, pos, obstacle, ctx.rng, ctx.fallback_direction)
            if perturbed:
                ctx.result.n_perturbations += 1

            new_pos = np.clip(pos + force * cfg.step_size, 0.0, upper)
            inside = self.obstacle_set.contains(new_pos, obstacle)
            point = point.moved_to(new_pos,
                                   force=(float(force[0]), float(force[1])),
                                   active=True, perturbed=perturbed,
                                   intersecting=inside)
            path[index] = point
            self._record(
                ctx.result.history, path,
                f"推出点 {index}... ({escape.source})" if inside
                else f"点 {index} 已离开障碍物, 锁定",
                (index,) if inside else (), index)

            pushes += 1
            ctx.iterations += 1
            if ctx.iterations >= cfg.max_iterations or self._over_budget(ctx):
                break
        return inside

    def _over_budget(self, ctx: _RunContext) -> bool:
        budget = self.config.time_budget
        if budget is None or time.perf_counter() - ctx.t0 <= budget:
            return False
        if not ctx.abort_reason:
            ctx.abort_reason = f"超出时间预算 ({budget:.3f} s)"
        return True

    @staticmethod
    def _record(
        history: List[Snapshot],
        path: Sequence[PathPoint],
        message: str,
        intersections: Tuple[int, ...] = (),
        active_index: Optional[int] = None,
    ) -> None:
        history.append(Snapshot(tuple(path), message, intersections, active_index))


def plan_path(
    start: Sequence[float],
    goal: Sequence[float],
    obstacles: Union[Scene, Iterable[Obstacle]],
    config: Optional[PlannerConfig] = None,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
) -> PlannerResult:
    """便捷函数：构造 LazyPathPlanner 并执行一次规划"""
    return LazyPathPlanner(obstacles, config).plan(start, goal, seed=seed, rng=rng)
