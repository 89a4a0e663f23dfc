"""test/test_report.py - Markdown 报告测试"""
import pytest

from charge_planner.lazy_planner import LazyPathPlanner
from charge_planner.metrics import evaluate_result
from charge_planner.models import PlannerConfig
from charge_planner.report import PlannerReportGenerator


@pytest.fixture
def planned(rect_scene, diagonal):
    config = PlannerConfig()
    planner = LazyPathPlanner(rect_scene, config)
    result = planner.plan(*diagonal, seed=0)
    return result, config, evaluate_result(result, planner.obstacle_set)


class TestPlannerReport:

    def test_sections(self, planned):
        result, config, metrics = planned
        text = PlannerReportGenerator().generate(result, config=config, metrics=metrics)
        assert text.startswith("# 惰性排斥路径规划报告")
        for heading in ("## 参数配置", "## 规划结果", "## 路径质量",
                        "## 最终路径", "## 步骤轨迹"):
            assert heading in text
        assert "| repulsion_strength | 2.5 |" in text

    def test_optional_sections_omitted(self, planned):
        result, _, _ = planned
        text = PlannerReportGenerator().generate(result)
        assert "## 参数配置" not in text
        assert "## 路径质量" not in text

    def test_trace_truncated(self, planned):
        result, _, _ = planned
        text = PlannerReportGenerator(max_trace_rows=2).generate(result)
        assert f"省略 {len(result.history) - 2} 步" in text

    def test_save(self, planned, tmp_path):
        result, config, _ = planned
        filepath = str(tmp_path / "report.md")
        PlannerReportGenerator().save(filepath, result, config=config)
        with open(filepath, encoding='utf-8') as f:
            assert "## 规划结果" in f.read()
