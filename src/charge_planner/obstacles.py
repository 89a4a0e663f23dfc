"""
charge_planner/obstacles.py - 障碍物与场景管理

- Scene：调用方可编辑的障碍物集合，提供增删查改和 JSON 持久化
- ObstacleSet：一次规划使用的只读障碍物集合（含隐式墙体），
  提供统一的"此处是否被阻挡"查询与边界穿越检测
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

from .geometry import boundary_crossing, point_in_obstacle
from .models import (
    CircleObstacle,
    Obstacle,
    RectangleObstacle,
    TriangleObstacle,
    WallObstacle,
    obstacle_from_dict,
)

logger = logging.getLogger(__name__)


class Scene:
    """二维场景管理

    管理一组矩形 / 圆形 / 三角形障碍物。墙体由 ObstacleSet 隐式添加，
    不属于场景本身。

    Example:
        >>> scene = Scene()
        >>> scene.add_rectangle(12, 8, 18, 16, name="箱子")
        >>> scene.add_circle(25, 22, 4)
        >>> obstacle_set = scene.to_obstacle_set(map_size=40, inflation=1.5)
    """

    def __init__(self) -> None:
        self._obstacles: List[Obstacle] = []

    @property
    def n_obstacles(self) -> int:
        return len(self._obstacles)

    def _auto_name(self, name: str) -> str:
        return name or f"obstacle_{self.n_obstacles}"

    def add(self, obstacle: Obstacle) -> Obstacle:
        """添加已构造的障碍物（墙体除外）"""
        if isinstance(obstacle, WallObstacle):
            raise ValueError("墙体由 ObstacleSet 隐式提供，不能加入场景")
        if not obstacle.name:
            obstacle.name = self._auto_name("")
        self._obstacles.append(obstacle)
        logger.debug("添加障碍物 '%s': %s", obstacle.name, obstacle.to_dict())
        return obstacle

    def add_rectangle(self, x1: float, y1: float, x2: float, y2: float,
                      name: str = "") -> RectangleObstacle:
        return self.add(RectangleObstacle(x1, y1, x2, y2, name=self._auto_name(name)))

    def add_circle(self, cx: float, cy: float, radius: float,
                   name: str = "") -> CircleObstacle:
        return self.add(CircleObstacle(cx, cy, radius, name=self._auto_name(name)))

    def add_triangle(self, p0: Sequence[float], p1: Sequence[float],
                     p2: Sequence[float], name: str = "") -> TriangleObstacle:
        return self.add(TriangleObstacle([p0, p1, p2], name=self._auto_name(name)))

    def remove_obstacle(self, name: str) -> bool:
        """按名称移除障碍物

        Returns:
            是否找到并移除
        """
        for i, obs in enumerate(self._obstacles):
            if obs.name == name:
                self._obstacles.pop(i)
                return True
        return False

    def clear(self) -> None:
        self._obstacles.clear()

    def get_obstacles(self) -> List[Obstacle]:
        return list(self._obstacles)

    def get_obstacle(self, name: str) -> Optional[Obstacle]:
        for obs in self._obstacles:
            if obs.name == name:
                return obs
        return None

    def to_obstacle_set(self, map_size: float = 40.0,
                        inflation: float = 0.0) -> 'ObstacleSet':
        return ObstacleSet(self._obstacles, map_size=map_size, inflation=inflation)

    def to_dict_list(self) -> List[Dict[str, Any]]:
        return [obs.to_dict() for obs in self._obstacles]

    def to_json(self, filepath: str) -> None:
        """保存场景到 JSON 文件"""
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump({'obstacles': self.to_dict_list()}, f,
                      indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, filepath: str) -> 'Scene':
        with open(filepath, 'r', encoding='utf-8') as f:
            return cls.from_dict(json.load(f))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Scene':
        """从字典加载场景

        Args:
            data: {'obstacles': [{'type': 'circle', 'cx': ..., ...}, ...]}
        """
        scene = cls()
        for item in data.get('obstacles', []):
            scene.add(obstacle_from_dict(item))
        return scene

    @classmethod
    def default(cls) -> 'Scene':
        """默认演示场景：矩形 + 圆 + 三角形"""
        scene = cls()
        scene.add_rectangle(12, 8, 18, 16, name="rectangle")
        scene.add_circle(25, 22, 4, name="circle")
        scene.add_triangle((8, 24), (14, 24), (11, 30), name="triangle")
        return scene

    def __repr__(self) -> str:
        return f"Scene(n_obstacles={self.n_obstacles})"


@dataclass
class BoundaryCrossing:
    """路径线段的一次边界穿越

    Attributes:
        point_index: 线段两端中位于障碍物内那个点的索引
        obstacle: 被穿越的障碍物
        crossing_point: 二分得到的边界点
        is_entry: 由外进入
        is_exit: 由内离开
    """
    point_index: int
    obstacle: Obstacle
    crossing_point: np.ndarray
    is_entry: bool
    is_exit: bool


class ObstacleSet:
    """一次规划使用的障碍物集合

    包装调用方障碍物列表并追加隐式墙体。规划期间视为只读。

    Args:
        obstacles: 调用方障碍物
        map_size: 地图边长（墙体范围）
        inflation: 统一膨胀半径
        bisection_iterations: 边界二分次数
    """

    def __init__(
        self,
        obstacles: Iterable[Obstacle],
        map_size: float = 40.0,
        inflation: float = 0.0,
        bisection_iterations: int = 10,
    ) -> None:
        self._obstacles = [o for o in obstacles if not isinstance(o, WallObstacle)]
        self.wall = WallObstacle(map_size=map_size)
        self.map_size = float(map_size)
        self.inflation = float(inflation)
        self.bisection_iterations = bisection_iterations

    @property
    def obstacles(self) -> List[Obstacle]:
        """调用方障碍物（不含墙体）"""
        return list(self._obstacles)

    def all_obstacles(self) -> List[Obstacle]:
        """全部障碍物，墙体排在最后"""
        return self._obstacles + [self.wall]

    def contains(self, point: np.ndarray, obstacle: Obstacle) -> bool:
        """按本集合的膨胀半径判定点是否在指定障碍物内"""
        return point_in_obstacle(point, obstacle, self.inflation)

    def blocked_anywhere(self, point: np.ndarray) -> bool:
        """点是否被任一障碍物（含墙体）阻挡"""
        return any(point_in_obstacle(point, obs, self.inflation)
                   for obs in self.all_obstacles())

    def blocking_obstacles(self, point: np.ndarray) -> List[Obstacle]:
        """返回包含该点的所有障碍物"""
        return [obs for obs in self.all_obstacles()
                if point_in_obstacle(point, obs, self.inflation)]

    def find_boundary_crossings(
        self, points: Sequence[np.ndarray],
    ) -> List[BoundaryCrossing]:
        """检测路径所有相邻点对的边界穿越

        对每个线段、每个障碍物比较两端内外状态，状态改变即为一次穿越，
        并用二分定位边界点。同一线段可能被多个障碍物报告。
        """
        crossings = []
        for i in range(len(points) - 1):
            current = np.asarray(points[i], dtype=np.float64)
            nxt = np.asarray(points[i + 1], dtype=np.float64)
            for obs in self.all_obstacles():
                current_inside = self.contains(current, obs)
                next_inside = self.contains(nxt, obs)
                if current_inside == next_inside:
                    continue
                inside, outside = (current, nxt) if current_inside else (nxt, current)
                crossings.append(BoundaryCrossing(
                    point_index=i if current_inside else i + 1,
                    obstacle=obs,
                    crossing_point=boundary_crossing(
                        inside, outside, obs, self.inflation,
                        self.bisection_iterations),
                    is_entry=next_inside,
                    is_exit=current_inside,
                ))
        return crossings

    def __len__(self) -> int:
        return len(self._obstacles) + 1

    def __repr__(self) -> str:
        return (f"ObstacleSet(n_obstacles={len(self._obstacles)}, "
                f"map_size={self.map_size}, inflation={self.inflation})")
