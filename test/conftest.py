"""test/conftest.py - 共享 fixtures"""
import pytest
import numpy as np

from charge_planner.models import PlannerConfig, RectangleObstacle
from charge_planner.obstacles import ObstacleSet, Scene


# ==================== 配置 ====================

@pytest.fixture
def default_config():
    """默认参数 (40x40 地图, 膨胀 1.5)"""
    return PlannerConfig()


@pytest.fixture
def deterministic_config():
    """确定性扰动，无需随机种子"""
    return PlannerConfig(perturbation_mode='deterministic')


# ==================== 场景 ====================

@pytest.fixture
def empty_scene():
    return Scene()


@pytest.fixture
def rect_scene():
    """单矩形横跨 (2,2)→(37,37) 对角线"""
    scene = Scene()
    scene.add_rectangle(12, 8, 18, 16, name="box")
    return scene


@pytest.fixture
def two_circle_scene():
    """两个不相交的圆，各自阻挡 y=20 水平线的不同位置"""
    scene = Scene()
    scene.add_circle(10, 18, 2, name="c1")
    scene.add_circle(25, 19, 2, name="c2")
    return scene


@pytest.fixture
def rect_obstacle():
    return RectangleObstacle(12, 8, 18, 16, name="box")


@pytest.fixture
def rect_set(rect_obstacle):
    """不膨胀的单矩形集合，便于手算边界"""
    return ObstacleSet([rect_obstacle], map_size=40, inflation=0.0)


@pytest.fixture
def diagonal():
    return np.array([2.0, 2.0]), np.array([37.0, 37.0])
