"""test/test_relaxation.py - 单步松弛测试"""
import pytest

from charge_planner.models import PathPoint, PlannerConfig
from charge_planner.obstacles import ObstacleSet
from charge_planner.relaxation import PathRelaxer


def _points(*coords, locked_interior=False):
    last = len(coords) - 1
    return [PathPoint(float(x), float(y), point_id=i,
                      locked=(i in (0, last)) or locked_interior)
            for i, (x, y) in enumerate(coords)]


class TestPathRelaxer:

    def test_too_few_points(self, rect_set):
        with pytest.raises(ValueError):
            PathRelaxer(rect_set).step(_points((5, 5)))

    def test_tension_only(self):
        relaxer = PathRelaxer(ObstacleSet([], map_size=40))
        out = relaxer.step(_points((5, 5), (10, 15), (15, 5)))
        assert out.active_index is None
        assert out.boundary_count == 0
        assert out.intersections == []
        assert out.points[1].y == pytest.approx(14.5)
        assert out.points[1].x == pytest.approx(10.0)

    def test_endpoints_and_locked_fixed(self):
        relaxer = PathRelaxer(ObstacleSet([], map_size=40))
        pts = _points((5, 5), (10, 15), (15, 5), locked_interior=True)
        out = relaxer.step(pts)
        for before, after in zip(pts, out.points):
            assert (before.x, before.y) == (after.x, after.y)
            assert after.point_id == before.point_id

    def test_active_point_perturbed(self, rect_set):
        cfg = PlannerConfig(inflation_radius=0.0, perturbation_mode='deterministic')
        relaxer = PathRelaxer(rect_set, cfg)
        out = relaxer.step(_points((5, 12), (15, 12), (25, 12)))
        assert out.active_index == 1
        assert not out.active_resolved
        active = out.points[1]
        assert active.active and active.perturbed
        # 力 (0, 1.5) * 0.6，张力为零
        assert (active.x, active.y) == pytest.approx((15.0, 12.9))
        assert out.intersections == [1, 1]
        assert out.boundary_count == 2

    def test_target_index(self, rect_set):
        relaxer = PathRelaxer(rect_set, PlannerConfig(inflation_radius=0.0))
        pts = _points((5, 20), (10, 25), (15, 20))
        out = relaxer.step(pts, target_index=1)
        assert out.active_index == 1
        assert out.points[1].active
        assert not out.points[1].perturbed
