"""
charge_planner - 惰性排斥 2D 路径规划

从起点到终点的直线路径出发，只在被阻挡的位置做功：
插入一个点 → 沿垂直于路径的净空方向推出障碍物 → 锁定 → 剪除多余点，
反复直到路径不再穿越任何障碍物（含地图边界墙体）。

核心模块：
1. geometry      - 点/障碍物包含、线段采样相交、边界二分
2. obstacles     - Scene（可编辑场景）与 ObstacleSet（规划用只读集合）
3. repulsion     - 聚合排斥力、单障碍物逃逸力、力平衡扰动
4. lazy_planner  - 插点-推点-锁定-剪除主循环，输出完整快照序列
5. path_smoother - Chaikin 切角平滑
6. relaxation    - 整条路径的单步松弛演示
7. metrics / report - 路径质量指标与 Markdown 报告
"""

from .models import (
    CircleObstacle,
    Obstacle,
    PathPoint,
    PlannerConfig,
    PlannerResult,
    PlannerState,
    RectangleObstacle,
    Snapshot,
    TriangleObstacle,
    WallObstacle,
    obstacle_from_dict,
)
from .geometry import (
    boundary_crossing,
    distance_to_obstacle,
    first_segment_obstacle_intersection,
    line_samples_in_obstacle,
    point_in_obstacle,
    point_to_segment_distance,
    segment_crosses_obstacle,
)
from .obstacles import BoundaryCrossing, ObstacleSet, Scene
from .repulsion import EscapeForce, RepulsionField
from .lazy_planner import LazyPathPlanner, plan_path
from .relaxation import PathRelaxer, RelaxStepResult
from .path_smoother import PathSmoother, compute_path_length, smooth_path
from .metrics import PathMetrics, evaluate_result, format_comparison_table
from .report import PlannerReportGenerator

__version__ = "1.0.0"
__all__ = [
    # 数据模型
    'RectangleObstacle',
    'CircleObstacle',
    'TriangleObstacle',
    'WallObstacle',
    'Obstacle',
    'obstacle_from_dict',
    'PathPoint',
    'Snapshot',
    'PlannerConfig',
    'PlannerResult',
    'PlannerState',
    # 几何
    'point_in_obstacle',
    'point_to_segment_distance',
    'distance_to_obstacle',
    'segment_crosses_obstacle',
    'first_segment_obstacle_intersection',
    'line_samples_in_obstacle',
    'boundary_crossing',
    # 场景
    'Scene',
    'ObstacleSet',
    'BoundaryCrossing',
    # 核心算法
    'RepulsionField',
    'EscapeForce',
    'LazyPathPlanner',
    'plan_path',
    'PathRelaxer',
    'RelaxStepResult',
    'PathSmoother',
    'smooth_path',
    'compute_path_length',
    # 评价与报告
    'PathMetrics',
    'evaluate_result',
    'format_comparison_table',
    'PlannerReportGenerator',
]
