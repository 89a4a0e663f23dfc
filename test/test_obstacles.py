"""test/test_obstacles.py - Scene 与 ObstacleSet 测试"""
import numpy as np
import pytest

from charge_planner.models import (
    CircleObstacle,
    RectangleObstacle,
    TriangleObstacle,
    WallObstacle,
)
from charge_planner.obstacles import ObstacleSet, Scene


class TestScene:
    """Scene 场景管理测试"""

    def test_empty(self):
        scene = Scene()
        assert scene.n_obstacles == 0
        assert scene.get_obstacles() == []

    def test_add_shapes(self):
        scene = Scene()
        scene.add_rectangle(0, 0, 1, 1, name="r")
        scene.add_circle(5, 5, 1, name="c")
        scene.add_triangle((0, 0), (4, 0), (0, 4), name="t")
        assert scene.n_obstacles == 3
        assert isinstance(scene.get_obstacle("t"), TriangleObstacle)

    def test_auto_name(self):
        scene = Scene()
        scene.add_rectangle(0, 0, 1, 1)
        scene.add_circle(5, 5, 1)
        assert [o.name for o in scene.get_obstacles()] == ["obstacle_0", "obstacle_1"]

    def test_rejects_wall(self):
        with pytest.raises(ValueError):
            Scene().add(WallObstacle())

    def test_remove(self):
        scene = Scene()
        scene.add_circle(5, 5, 1, name="c")
        assert scene.remove_obstacle("c")
        assert not scene.remove_obstacle("c")
        assert scene.n_obstacles == 0

    def test_get_missing(self):
        assert Scene().get_obstacle("nope") is None

    def test_clear(self):
        scene = Scene.default()
        scene.clear()
        assert scene.n_obstacles == 0

    def test_default(self):
        scene = Scene.default()
        names = [o.name for o in scene.get_obstacles()]
        assert names == ["rectangle", "circle", "triangle"]

    def test_json_roundtrip(self, tmp_path):
        scene = Scene.default()
        filepath = str(tmp_path / "scene.json")
        scene.to_json(filepath)
        loaded = Scene.from_json(filepath)
        assert loaded.n_obstacles == 3
        assert [type(o) for o in loaded.get_obstacles()] == [
            RectangleObstacle, CircleObstacle, TriangleObstacle]
        assert loaded.get_obstacle("circle").radius == 4.0

    def test_from_dict_legacy(self):
        scene = Scene.from_dict({'obstacles': [{'x1': 1, 'y1': 1, 'x2': 3, 'y2': 3}]})
        assert isinstance(scene.get_obstacles()[0], RectangleObstacle)

    def test_repr(self):
        assert repr(Scene.default()) == "Scene(n_obstacles=3)"

    def test_to_obstacle_set(self):
        obstacle_set = Scene.default().to_obstacle_set(map_size=40, inflation=1.5)
        assert len(obstacle_set) == 4
        assert obstacle_set.inflation == 1.5


class TestObstacleSet:

    def test_wall_last(self, rect_set):
        all_obs = rect_set.all_obstacles()
        assert isinstance(all_obs[-1], WallObstacle)
        assert len(rect_set.obstacles) == 1
        assert len(rect_set) == 2

    def test_caller_walls_filtered(self, rect_obstacle):
        obstacle_set = ObstacleSet([rect_obstacle, WallObstacle(20)], map_size=40)
        assert len(obstacle_set) == 2
        assert obstacle_set.wall.map_size == 40

    def test_blocked_anywhere(self, rect_set):
        assert rect_set.blocked_anywhere(np.array([15, 12]))
        assert rect_set.blocked_anywhere(np.array([-1, 20]))
        assert not rect_set.blocked_anywhere(np.array([5, 20]))

    def test_blocking_obstacles(self, rect_set, rect_obstacle):
        assert rect_set.blocking_obstacles(np.array([15, 12])) == [rect_obstacle]
        assert rect_set.blocking_obstacles(np.array([5, 20])) == []

    def test_find_boundary_crossings(self, rect_set, rect_obstacle):
        points = [np.array([5.0, 12.0]), np.array([15.0, 12.0]), np.array([25.0, 12.0])]
        crossings = rect_set.find_boundary_crossings(points)
        assert len(crossings) == 2

        entry, exit_ = crossings
        assert entry.obstacle is rect_obstacle
        assert entry.point_index == 1 and entry.is_entry and not entry.is_exit
        assert entry.crossing_point[0] == pytest.approx(12.0, abs=0.01)

        assert exit_.point_index == 1 and exit_.is_exit and not exit_.is_entry
        assert exit_.crossing_point[0] == pytest.approx(18.0, abs=0.01)

    def test_no_crossings_when_clear(self, rect_set):
        points = [np.array([5.0, 20.0]), np.array([25.0, 20.0])]
        assert rect_set.find_boundary_crossings(points) == []
