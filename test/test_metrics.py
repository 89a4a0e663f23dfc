"""test/test_metrics.py - 路径质量指标测试"""
import math

import numpy as np
import pytest

from charge_planner.lazy_planner import LazyPathPlanner
from charge_planner.metrics import (
    PathMetrics,
    compute_clearance,
    compute_smoothness,
    evaluate_result,
    format_comparison_table,
)
from charge_planner.obstacles import ObstacleSet


class TestSmoothness:

    def test_straight(self):
        path = [np.array([0.0, 0.0]), np.array([1.0, 0.0]), np.array([2.0, 0.0])]
        assert compute_smoothness(path) == (0.0, 0.0)

    def test_right_angle(self):
        path = [np.array([0.0, 0.0]), np.array([1.0, 0.0]), np.array([1.0, 1.0])]
        mean, peak = compute_smoothness(path)
        assert mean == pytest.approx(math.pi / 2)
        assert peak == pytest.approx(math.pi / 2)

    def test_short_path(self):
        assert compute_smoothness([np.zeros(2)]) == (0.0, 0.0)


class TestClearance:

    def test_no_obstacles(self):
        path = [np.array([0.0, 0.0]), np.array([5.0, 0.0])]
        assert compute_clearance(path, ObstacleSet([])) == (math.inf, math.inf)

    def test_parallel_line(self, rect_set):
        path = [np.array([0.0, 20.0]), np.array([30.0, 20.0])]
        min_c, avg_c = compute_clearance(path, rect_set)
        assert min_c == pytest.approx(4.0)
        assert avg_c > min_c


class TestEvaluateResult:

    def test_straight_line_result(self, empty_scene, diagonal):
        planner = LazyPathPlanner(empty_scene)
        result = planner.plan(*diagonal)
        metrics = evaluate_result(result, planner.obstacle_set)
        assert metrics.success
        assert metrics.n_snapshots == 1
        assert metrics.length_ratio == pytest.approx(1.0)
        assert metrics.smoothness == pytest.approx(0.0, abs=1e-6)
        assert math.isinf(metrics.min_clearance)

    def test_custom_path(self, rect_scene, diagonal):
        planner = LazyPathPlanner(rect_scene)
        result = planner.plan(*diagonal, seed=0)
        path = [np.array([2.0, 2.0]), np.array([2.0, 37.0]), np.array([37.0, 37.0])]
        metrics = evaluate_result(result, path=path)
        assert metrics.path_length == pytest.approx(70.0)
        assert metrics.n_waypoints == 3


class TestFormatting:

    def test_summary(self):
        text = PathMetrics(path_length=3.0, success=True).summary()
        assert "路径长度" in text
        assert "3.0000" in text

    def test_to_dict(self):
        assert PathMetrics(n_inserted=2).to_dict()['n_inserted'] == 2

    def test_comparison_table(self):
        table = format_comparison_table({
            '空场景': PathMetrics(success=True, path_length=1.0, length_ratio=1.0),
            '单矩形': PathMetrics(success=False, min_clearance=0.5),
        })
        lines = table.splitlines()
        assert len(lines) == 4
        assert '空场景' in lines[2] and '| - |' in lines[2]
        assert '0.500' in lines[3]
