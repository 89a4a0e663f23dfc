"""test/test_repulsion.py - 排斥力场测试"""
import numpy as np
import pytest

from charge_planner.models import PlannerConfig, RectangleObstacle
from charge_planner.obstacles import ObstacleSet
from charge_planner.repulsion import RepulsionField


@pytest.fixture
def field(rect_set):
    return RepulsionField(rect_set, PlannerConfig(inflation_radius=0.0))


class TestAggregateForce:

    def test_linear_falloff(self, field):
        force = field.aggregate_force(np.array([10.0, 12.0]))
        np.testing.assert_array_almost_equal(force, [-2.5 * (1 - 2 / 6), 0.0])

    def test_outside_radius(self, field):
        np.testing.assert_array_equal(field.aggregate_force(np.array([30.0, 30.0])), [0, 0])

    def test_inside_bbox_has_no_direction(self, field):
        np.testing.assert_array_equal(field.aggregate_force(np.array([15.0, 12.0])), [0, 0])

    def test_sums_obstacles(self):
        left = RectangleObstacle(0, 10, 2, 14)
        right = RectangleObstacle(8, 10, 10, 14)
        obstacle_set = ObstacleSet([left, right], map_size=40)
        field = RepulsionField(obstacle_set, PlannerConfig())
        # 两侧对称，合力为零
        np.testing.assert_array_almost_equal(
            field.aggregate_force(np.array([5.0, 12.0])), [0, 0])


class TestEscapeForce:

    def test_nearer_side_wins(self, field, rect_obstacle):
        esc = field.escape_force(np.array([15.0, 10.0]), rect_obstacle,
                                 np.array([0.0, 10.0]), np.array([30.0, 10.0]))
        assert esc.source == 'right'
        assert esc.clearance == pytest.approx(2.5)
        np.testing.assert_array_almost_equal(esc.force, [0.0, -5.0])
        assert esc.magnitude == pytest.approx(5.0)

    def test_left_side(self, field, rect_obstacle):
        esc = field.escape_force(np.array([15.0, 14.0]), rect_obstacle,
                                 np.array([0.0, 14.0]), np.array([30.0, 14.0]))
        assert esc.source == 'left'
        np.testing.assert_array_almost_equal(esc.force, [0.0, 5.0])

    def test_tie_prefers_left(self, field, rect_obstacle):
        esc = field.escape_force(np.array([15.0, 12.0]), rect_obstacle,
                                 np.array([0.0, 12.0]), np.array([30.0, 12.0]))
        assert esc.source == 'left'
        assert esc.clearance == pytest.approx(4.5)

    def test_fallback_direction(self, field, rect_obstacle):
        esc = field.escape_force(np.array([15.0, 10.0]), rect_obstacle,
                                 fallback_direction=np.array([1.0, 0.0]))
        assert esc.source == 'right'

    def test_centroid_fallback(self, rect_set, rect_obstacle):
        cfg = PlannerConfig(inflation_radius=0.0, escape_search_limit=2.0)
        field = RepulsionField(rect_set, cfg)
        p = np.array([16.0, 12.0])
        assert field.clearance_distance(p, np.array([0.0, 1.0])) is None
        esc = field.escape_force(p, rect_obstacle,
                                 np.array([0.0, 12.0]), np.array([30.0, 12.0]))
        assert esc.source == 'centroid'
        np.testing.assert_array_almost_equal(esc.force, [3.75, 0.0])

    def test_wall_pushes_inward(self, rect_set):
        field = RepulsionField(rect_set, PlannerConfig())
        esc = field.escape_force(np.array([0.5, 20.0]), rect_set.wall)
        assert esc.source == 'wall'
        np.testing.assert_array_almost_equal(esc.force, [10.0, 0.0])

    def test_wall_upper_edge(self, rect_set):
        field = RepulsionField(rect_set, PlannerConfig())
        esc = field.escape_force(np.array([20.0, 38.0]), rect_set.wall)
        assert esc.force[0] == 0.0
        assert esc.force[1] < 0


class TestBreakTie:

    def test_strong_force_unchanged(self, field, rect_obstacle):
        force, perturbed = field.break_tie(np.array([1.0, 0.0]),
                                           np.array([15.0, 12.0]), rect_obstacle)
        assert not perturbed
        np.testing.assert_array_equal(force, [1.0, 0.0])

    def test_random_nudge_magnitude(self, field, rect_obstacle):
        force, perturbed = field.break_tie(np.zeros(2), np.array([15.0, 12.0]),
                                           rect_obstacle, np.random.default_rng(0))
        assert perturbed
        assert np.linalg.norm(force) == pytest.approx(1.5)

    def test_random_reproducible(self, field, rect_obstacle):
        a, _ = field.break_tie(np.zeros(2), np.array([15.0, 12.0]),
                               rect_obstacle, np.random.default_rng(42))
        b, _ = field.break_tie(np.zeros(2), np.array([15.0, 12.0]),
                               rect_obstacle, np.random.default_rng(42))
        np.testing.assert_array_equal(a, b)

    def test_deterministic_rotates_centroid_direction(self, rect_set, rect_obstacle):
        cfg = PlannerConfig(inflation_radius=0.0, perturbation_mode='deterministic')
        field = RepulsionField(rect_set, cfg)
        force, perturbed = field.break_tie(np.zeros(2), np.array([16.0, 12.0]),
                                           rect_obstacle)
        assert perturbed
        np.testing.assert_array_almost_equal(force, [0.0, 1.5])

    def test_deterministic_at_centroid(self, rect_set, rect_obstacle):
        cfg = PlannerConfig(inflation_radius=0.0, perturbation_mode='deterministic')
        field = RepulsionField(rect_set, cfg)
        force, _ = field.break_tie(np.zeros(2), rect_obstacle.center, rect_obstacle,
                                   fallback_direction=np.array([0.0, 1.0]))
        np.testing.assert_array_almost_equal(force, [-1.5, 0.0])
