"""
charge_planner/models.py - 规划器数据模型

定义惰性排斥规划器使用的核心数据结构：
- 障碍物变体：RectangleObstacle / CircleObstacle / TriangleObstacle / WallObstacle
- PathPoint：带状态标志的路径点（不可变）
- Snapshot：算法某一步的路径快照（不可变）
- PlannerConfig：可调参数
- PlannerResult：一次规划的完整输出（History + 统计）
"""

import json
import math
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

import numpy as np


def _require_finite(*values: float) -> None:
    for v in values:
        if not math.isfinite(v):
            raise ValueError(f"坐标必须为有限数值, 得到 {v!r}")


# ==================== 障碍物 ====================

@dataclass(eq=False)
class RectangleObstacle:
    """轴对齐矩形障碍物

    构造时自动归一化，保证 x1 <= x2, y1 <= y2。

    Attributes:
        x1, y1: 最小角点
        x2, y2: 最大角点
        name: 障碍物名称（可选）
    """
    x1: float
    y1: float
    x2: float
    y2: float
    name: str = ""

    kind: ClassVar[str] = 'rectangle'

    def __post_init__(self) -> None:
        self.x1, self.y1 = float(self.x1), float(self.y1)
        self.x2, self.y2 = float(self.x2), float(self.y2)
        _require_finite(self.x1, self.y1, self.x2, self.y2)
        if self.x1 > self.x2:
            self.x1, self.x2 = self.x2, self.x1
        if self.y1 > self.y2:
            self.y1, self.y2 = self.y2, self.y1

    @property
    def center(self) -> np.ndarray:
        """矩形中心"""
        return np.array([(self.x1 + self.x2) / 2.0, (self.y1 + self.y2) / 2.0])

    @property
    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """包围盒 (min_point, max_point)"""
        return np.array([self.x1, self.y1]), np.array([self.x2, self.y2])

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.kind, 'x1': self.x1, 'y1': self.y1,
                'x2': self.x2, 'y2': self.y2, 'name': self.name}


@dataclass(eq=False)
class CircleObstacle:
    """圆形障碍物

    Attributes:
        cx, cy: 圆心
        radius: 半径 (>= 0)
        name: 障碍物名称（可选）
    """
    cx: float
    cy: float
    radius: float
    name: str = ""

    kind: ClassVar[str] = 'circle'

    def __post_init__(self) -> None:
        self.cx, self.cy, self.radius = float(self.cx), float(self.cy), float(self.radius)
        _require_finite(self.cx, self.cy, self.radius)
        if self.radius < 0:
            raise ValueError(f"圆形障碍物半径不能为负: {self.radius}")

    @property
    def center(self) -> np.ndarray:
        return np.array([self.cx, self.cy])

    @property
    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        r = self.radius
        return (np.array([self.cx - r, self.cy - r]),
                np.array([self.cx + r, self.cy + r]))

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.kind, 'cx': self.cx, 'cy': self.cy,
                'radius': self.radius, 'name': self.name}


@dataclass(eq=False)
class TriangleObstacle:
    """三角形障碍物

    退化三角形（面积为 0）会导致重心坐标除零，构造时直接拒绝。

    Attributes:
        vertices: 三个顶点 (3, 2)
        name: 障碍物名称（可选）
    """
    vertices: np.ndarray
    name: str = ""

    kind: ClassVar[str] = 'triangle'

    def __post_init__(self) -> None:
        self.vertices = np.array(self.vertices, dtype=np.float64)
        if self.vertices.shape != (3, 2):
            raise ValueError(
                f"三角形需要 3 个二维顶点, 得到形状 {self.vertices.shape}")
        _require_finite(*self.vertices.ravel().tolist())
        if abs(self.signed_area) < 1e-12:
            raise ValueError("退化三角形（面积为 0）不能作为障碍物")

    @property
    def signed_area(self) -> float:
        """有向面积的两倍（叉积）"""
        p0, p1, p2 = self.vertices
        return float((p1[0] - p0[0]) * (p2[1] - p0[1])
                     - (p2[0] - p0[0]) * (p1[1] - p0[1]))

    @property
    def center(self) -> np.ndarray:
        """三角形重心"""
        return self.vertices.mean(axis=0)

    @property
    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.vertices.min(axis=0), self.vertices.max(axis=0)

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.kind, 'points': self.vertices.tolist(),
                'name': self.name}


@dataclass(eq=False)
class WallObstacle:
    """地图边界伪障碍物

    安全区域为 [inflation, map_size - 1 - inflation]，膨胀向内收缩。
    """
    map_size: float = 40.0
    name: str = "wall"

    kind: ClassVar[str] = 'wall'

    @property
    def center(self) -> np.ndarray:
        c = (self.map_size - 1) / 2.0
        return np.array([c, c])

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.kind, 'map_size': self.map_size, 'name': self.name}


Obstacle = Union[RectangleObstacle, CircleObstacle, TriangleObstacle, WallObstacle]


def obstacle_from_dict(data: Dict[str, Any]) -> Obstacle:
    """从字典创建障碍物

    兼容无 ``type`` 字段但带 x1 的旧矩形格式。
    """
    kind = data.get('type')
    if kind is None and 'x1' in data:
        kind = 'rectangle'
    name = data.get('name', '')
    if kind == 'rectangle':
        return RectangleObstacle(data['x1'], data['y1'], data['x2'], data['y2'],
                                 name=name)
    if kind == 'circle':
        return CircleObstacle(data['cx'], data['cy'], data['radius'], name=name)
    if kind == 'triangle':
        pts = [(p['x'], p['y']) if isinstance(p, dict) else p
               for p in data['points']]
        return TriangleObstacle(pts, name=name)
    if kind == 'wall':
        return WallObstacle(map_size=data.get('map_size', 40.0),
                            name=name or 'wall')
    raise ValueError(f"未知障碍物类型: {kind!r}")


# ==================== 路径点与快照 ====================

@dataclass(frozen=True)
class PathPoint:
    """路径点（不可变）

    锁定状态是点自身的属性，插入/删除其它点不会影响它。

    Attributes:
        x, y: 网格坐标（连续值）
        point_id: 运行内稳定标识
        locked: 已推出障碍物，不再移动
        active: 正在被推出
        boundary: 位于障碍物边界
        intersecting: 当前在障碍物内
        perturbed: 最近一次移动含随机扰动
        force: 最近一次施加的力 (fx, fy)
    """
    x: float
    y: float
    point_id: int = -1
    locked: bool = False
    active: bool = False
    boundary: bool = False
    intersecting: bool = False
    perturbed: bool = False
    force: Tuple[float, float] = (0.0, 0.0)

    @property
    def position(self) -> np.ndarray:
        return np.array([self.x, self.y])

    def moved_to(self, position: np.ndarray, **flags: Any) -> 'PathPoint':
        """返回移动到新位置的副本"""
        return replace(self, x=float(position[0]), y=float(position[1]), **flags)

    def to_dict(self) -> Dict[str, Any]:
        d = {f.name: getattr(self, f.name) for f in fields(self)}
        d['force'] = list(self.force)
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PathPoint':
        data = dict(data)
        data['force'] = tuple(data.get('force', (0.0, 0.0)))
        return cls(**data)


@dataclass(frozen=True)
class Snapshot:
    """算法单步的路径快照

    Attributes:
        points: 该步的路径点序列
        message: 该步描述
        intersections: 仍在障碍物内的点索引
        active_index: 活动点索引（无则 None）
    """
    points: Tuple[PathPoint, ...]
    message: str = ""
    intersections: Tuple[int, ...] = ()
    active_index: Optional[int] = None

    @property
    def positions(self) -> List[np.ndarray]:
        return [p.position for p in self.points]

    @property
    def n_locked(self) -> int:
        return sum(1 for p in self.points if p.locked)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'points': [p.to_dict() for p in self.points],
            'message': self.message,
            'intersections': list(self.intersections),
            'active_index': self.active_index,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Snapshot':
        return cls(
            points=tuple(PathPoint.from_dict(p) for p in data['points']),
            message=data.get('message', ''),
            intersections=tuple(data.get('intersections', ())),
            active_index=data.get('active_index'),
        )


class PlannerState(Enum):
    """规划引擎状态"""
    IDLE = 'idle'
    INITIALIZING = 'initializing'
    ITERATING = 'iterating'
    READY = 'ready'
    ABORTED = 'aborted'


# ==================== 配置 ====================

PERTURBATION_MODES = ('random', 'deterministic')


@dataclass
class PlannerConfig:
    """惰性排斥规划器参数配置

    Attributes:
        repulsion_strength: 排斥强度 K
        repulsion_radius: 聚合排斥力的作用半径 R
        max_iterations: 全局迭代上限（插点 + 推点子步均计入）
        perturbation_strength: 力平衡时随机扰动的幅值
        force_balance_threshold: 力幅值低于此值视为平衡
        inflation_radius: 障碍物膨胀半径
        step_size: 推点积分步长
        map_size: 地图边长，坐标范围 [0, map_size - 1]
        n_initial_samples: 初始直线路径的分段数
        max_push_iterations: 单个点的推出子迭代上限
        escape_search_step: 垂直方向净空搜索步长
        escape_search_limit: 垂直方向净空搜索上限
        escape_strength_ratio: 垂直/墙体逃逸力 = ratio * K
        centroid_strength_ratio: 质心回退逃逸力 = ratio * K
        crossing_min_samples: 线段穿越检测最少采样数
        intersection_min_samples: 交点定位最少采样数
        bisection_iterations: 边界二分次数
        perturbation_mode: 'random' 随机方向 / 'deterministic' 质心方向旋转 90°
        time_budget: 墙钟时间预算 (s)，None 为不限
        smoothing_iterations: 平滑默认轮数
        verbose: 是否输出详细日志
    """
    repulsion_strength: float = 2.5
    repulsion_radius: float = 6.0
    max_iterations: int = 500
    perturbation_strength: float = 1.5
    force_balance_threshold: float = 0.3
    inflation_radius: float = 1.5
    step_size: float = 0.5
    map_size: float = 40.0
    n_initial_samples: int = 20
    max_push_iterations: int = 300
    escape_search_step: float = 0.5
    escape_search_limit: float = 25.0
    escape_strength_ratio: float = 2.0
    centroid_strength_ratio: float = 1.5
    crossing_min_samples: int = 10
    intersection_min_samples: int = 20
    bisection_iterations: int = 10
    perturbation_mode: str = 'random'
    time_budget: Optional[float] = None
    smoothing_iterations: int = 3
    verbose: bool = False

    def validate(self) -> None:
        """参数合法性检查，不合法时抛出 ValueError"""
        positive = ('repulsion_strength', 'repulsion_radius', 'step_size',
                    'map_size', 'escape_search_step', 'escape_search_limit')
        for name in positive:
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} 必须为正数, 得到 {getattr(self, name)}")
        for name in ('max_iterations', 'max_push_iterations', 'n_initial_samples',
                     'crossing_min_samples', 'intersection_min_samples',
                     'bisection_iterations'):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} 必须 >= 1, 得到 {getattr(self, name)}")
        if self.inflation_radius < 0 or self.perturbation_strength < 0:
            raise ValueError("inflation_radius / perturbation_strength 不能为负")
        if self.smoothing_iterations < 0:
            raise ValueError("smoothing_iterations 不能为负")
        if self.perturbation_mode not in PERTURBATION_MODES:
            raise ValueError(f"未知扰动模式: {self.perturbation_mode!r}")
        if self.time_budget is not None and self.time_budget <= 0:
            raise ValueError("time_budget 必须为正数或 None")

    # ── JSON 序列化 ──

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def to_json(self, filepath: str | Path) -> str:
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        return str(filepath)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlannerConfig':
        """从字典创建（忽略未知字段，缺失字段用默认值）"""
        valid_fields = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in valid_fields})

    @classmethod
    def from_json(cls, filepath: str | Path) -> 'PlannerConfig':
        with open(Path(filepath), 'r', encoding='utf-8') as f:
            return cls.from_dict(json.load(f))


# ==================== 规划结果 ====================

@dataclass
class PlannerResult:
    """路径规划结果

    Attributes:
        success: 最终路径是否无穿越
        state: 结束状态 (READY / ABORTED)
        history: 快照序列
        start, goal: 起终点
        n_iterations: 消耗的全局迭代数
        n_inserted: 插入的路径点数
        n_perturbations: 施加随机扰动的次数
        n_unresolved: 结束时仍穿越障碍物的线段数
        blocked_endpoints: 落在膨胀障碍物内的端点 ('start' / 'goal')
        computation_time: 总计算时间 (s)
        phase_times: 各阶段耗时 (s)
        message: 描述信息
        timestamp: 时间戳
    """
    success: bool = False
    state: PlannerState = PlannerState.IDLE
    history: List[Snapshot] = field(default_factory=list)
    start: Optional[np.ndarray] = None
    goal: Optional[np.ndarray] = None
    n_iterations: int = 0
    n_inserted: int = 0
    n_perturbations: int = 0
    n_unresolved: int = 0
    blocked_endpoints: List[str] = field(default_factory=list)
    computation_time: float = 0.0
    phase_times: Dict[str, float] = field(default_factory=dict)
    message: str = ""
    timestamp: str = field(
        default_factory=lambda: datetime.now().strftime('%Y%m%d_%H%M%S'))

    @property
    def final_snapshot(self) -> Optional[Snapshot]:
        return self.history[-1] if self.history else None

    @property
    def path(self) -> List[np.ndarray]:
        """最终路径点坐标"""
        final = self.final_snapshot
        return final.positions if final is not None else []

    def compute_path_length(self) -> float:
        """计算最终路径总长度"""
        path = self.path
        if len(path) < 2:
            return 0.0
        return sum(float(np.linalg.norm(path[i] - path[i - 1]))
                   for i in range(1, len(path)))

    # ── History 序列化 ─────────────────────────────────────

    def save_history(self, filepath: str | Path) -> str:
        """将完整 History 保存为 JSON 文件"""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        data: Dict[str, Any] = {
            "success": self.success,
            "state": self.state.value,
            "start": None if self.start is None else np.asarray(self.start).tolist(),
            "goal": None if self.goal is None else np.asarray(self.goal).tolist(),
            "n_iterations": self.n_iterations,
            "n_inserted": self.n_inserted,
            "n_perturbations": self.n_perturbations,
            "n_unresolved": self.n_unresolved,
            "blocked_endpoints": list(self.blocked_endpoints),
            "computation_time": self.computation_time,
            "message": self.message,
            "timestamp": self.timestamp,
            "history": [s.to_dict() for s in self.history],
        }
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        return str(filepath)

    @classmethod
    def load_history(cls, filepath: str | Path) -> 'PlannerResult':
        """从 JSON 文件加载 History（phase_times 不保存）"""
        with open(Path(filepath), 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls(
            success=data['success'],
            state=PlannerState(data['state']),
            history=[Snapshot.from_dict(s) for s in data['history']],
            start=None if data.get('start') is None else np.array(data['start']),
            goal=None if data.get('goal') is None else np.array(data['goal']),
            n_iterations=data.get('n_iterations', 0),
            n_inserted=data.get('n_inserted', 0),
            n_perturbations=data.get('n_perturbations', 0),
            n_unresolved=data.get('n_unresolved', 0),
            blocked_endpoints=list(data.get('blocked_endpoints', [])),
            computation_time=data.get('computation_time', 0.0),
            message=data.get('message', ''),
            timestamp=data.get('timestamp', ''),
        )
