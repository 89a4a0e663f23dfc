"""
examples/planner_scenarios.py - 典型场景示例

演示惰性排斥规划器在不同场景下的表现：
1. 空场景（直线即解）
2. 单矩形阻挡对角线
3. 起点落在障碍物内（端点被阻挡，规划无法收敛）
4. 两个不相交的圆依次阻挡
5. 默认演示场景（矩形 + 圆 + 三角形）

运行: python examples/planner_scenarios.py [--seed 0] [--smooth 3] [--output DIR]
"""
from __future__ import annotations

import argparse
import logging
from datetime import datetime
from pathlib import Path

from charge_planner import (
    LazyPathPlanner,
    PlannerConfig,
    PlannerReportGenerator,
    PathSmoother,
    Scene,
    evaluate_result,
    format_comparison_table,
)

logger = logging.getLogger(__name__)


# ==================== 场景定义 ====================

def scenario_empty() -> dict:
    """场景1: 无障碍物"""
    return {
        'name': '空场景',
        'scene': Scene(),
        'start': (2, 2),
        'goal': (37, 37),
        'config': PlannerConfig(),
    }


def scenario_single_rectangle() -> dict:
    """场景2: 单矩形横跨对角线"""
    scene = Scene()
    scene.add_rectangle(12, 8, 18, 16, name="box")
    return {
        'name': '单矩形',
        'scene': scene,
        'start': (2, 2),
        'goal': (37, 37),
        'config': PlannerConfig(inflation_radius=1.5),
    }


def scenario_blocked_start() -> dict:
    """场景3: 起点在膨胀障碍物内"""
    scene = Scene()
    scene.add_rectangle(1, 1, 3, 3, name="trap")
    return {
        'name': '起点被阻挡',
        'scene': scene,
        'start': (2, 2),
        'goal': (37, 37),
        'config': PlannerConfig(max_iterations=60),
    }


def scenario_two_circles() -> dict:
    """场景4: 两个不相交的圆"""
    scene = Scene()
    scene.add_circle(10, 18, 2, name="c1")
    scene.add_circle(25, 19, 2, name="c2")
    return {
        'name': '双圆',
        'scene': scene,
        'start': (2, 20),
        'goal': (37, 20),
        'config': PlannerConfig(inflation_radius=1.0),
    }


def scenario_default() -> dict:
    """场景5: 默认演示场景"""
    return {
        'name': '默认场景',
        'scene': Scene.default(),
        'start': (2, 2),
        'goal': (37, 37),
        'config': PlannerConfig(),
    }


ALL_SCENARIOS = [
    scenario_empty,
    scenario_single_rectangle,
    scenario_blocked_start,
    scenario_two_circles,
    scenario_default,
]


# ==================== 主函数 ====================

def run_scenario(info: dict, seed: int, smooth_iters: int, output_dir: Path | None):
    planner = LazyPathPlanner(info['scene'], info['config'])
    result = planner.plan(info['start'], info['goal'], seed=seed)
    metrics = evaluate_result(result, planner.obstacle_set)

    status = "✓ 成功" if result.success else "✗ 未收敛"
    print(f"[{status}] {info['name']}: {result.message}")
    print(f"  快照: {len(result.history)}, 路径点: {len(result.path)}, "
          f"长度: {metrics.path_length:.3f}, 时间: {result.computation_time:.3f}s")

    if smooth_iters > 0 and result.success:
        smoother = PathSmoother(planner.obstacle_set, iterations=smooth_iters)
        smooth = smoother.smooth(result.path)
        bad = smoother.find_crossings(smooth)
        print(f"  平滑 {smooth_iters} 轮: {len(smooth)} 个点, 穿越线段 {len(bad)}")

    if output_dir is not None:
        safe_name = info['name'].replace(' ', '_')
        result.save_history(output_dir / f"{safe_name}_history.json")
        PlannerReportGenerator().save(
            str(output_dir / f"{safe_name}_report.md"), result,
            config=info['config'], metrics=metrics)
    return metrics


def main():
    parser = argparse.ArgumentParser(description="惰性排斥规划场景演示")
    parser.add_argument("--seed", type=int, default=0,
                        help="扰动随机种子 (默认: 0)")
    parser.add_argument("--smooth", type=int, default=3,
                        help="Chaikin 平滑轮数, 0 为不平滑 (默认: 3)")
    parser.add_argument("--output", type=str, default=None,
                        help="输出目录; 指定时保存 History JSON 与 Markdown 报告")
    parser.add_argument("--verbose", action="store_true",
                        help="输出调试日志")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    output_dir = None
    if args.output:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output_dir = Path(args.output) / f"scenarios_{timestamp}"
        output_dir.mkdir(parents=True, exist_ok=True)
        logger.info("输出目录: %s", output_dir)

    all_metrics = {}
    for scenario_func in ALL_SCENARIOS:
        info = scenario_func()
        all_metrics[info['name']] = run_scenario(info, args.seed, args.smooth, output_dir)
        print()

    print(format_comparison_table(all_metrics))


if __name__ == '__main__':
    main()
