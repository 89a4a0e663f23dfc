"""
report.py - 规划报告生成器

将 PlannerResult 转换为 Markdown 格式报告，包含参数配置、
规划结果、路径质量指标、最终路径点和步骤轨迹。
"""

import logging
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .metrics import PathMetrics
    from .models import PlannerConfig, PlannerResult

logger = logging.getLogger(__name__)


class PlannerReportGenerator:
    """规划报告生成器

    Args:
        max_trace_rows: 步骤轨迹表最多列出的快照数，超出部分省略
    """

    def __init__(self, max_trace_rows: int = 50) -> None:
        self.max_trace_rows = max_trace_rows

    def generate(
        self,
        result: 'PlannerResult',
        config: Optional['PlannerConfig'] = None,
        metrics: Optional['PathMetrics'] = None,
    ) -> str:
        """生成完整的 Markdown 规划报告"""
        lines: List[str] = []
        _a = lines.append

        _a("# 惰性排斥路径规划报告")
        _a("")
        _a(f"生成时间: {result.timestamp}")
        _a("")

        if config is not None:
            _a("## 参数配置")
            _a("")
            _a("| 参数 | 值 |")
            _a("|------|-----|")
            for key, value in config.to_dict().items():
                _a(f"| {key} | {value} |")
            _a("")

        _a("## 规划结果")
        _a("")
        _a(f"- **状态**: {result.state.value}")
        _a(f"- **是否成功**: {'是' if result.success else '否'}")
        if result.start is not None and result.goal is not None:
            _a(f"- **起点**: ({result.start[0]:.2f}, {result.start[1]:.2f})")
            _a(f"- **终点**: ({result.goal[0]:.2f}, {result.goal[1]:.2f})")
        _a(f"- **迭代次数**: {result.n_iterations}")
        _a(f"- **插入点数**: {result.n_inserted}")
        _a(f"- **扰动次数**: {result.n_perturbations}")
        _a(f"- **剩余穿越线段**: {result.n_unresolved}")
        if result.blocked_endpoints:
            _a(f"- **被阻挡的端点**: {', '.join(result.blocked_endpoints)}")
        _a(f"- **计算耗时**: {result.computation_time:.4f} 秒")
        _a(f"- **信息**: {result.message}")
        _a("")

        if metrics is not None:
            _a("## 路径质量")
            _a("")
            _a("```")
            _a(metrics.summary())
            _a("```")
            _a("")

        final = result.final_snapshot
        if final is not None:
            _a("## 最终路径")
            _a("")
            _a("| # | x | y | 锁定 |")
            _a("|---|---|---|------|")
            for i, p in enumerate(final.points):
                _a(f"| {i} | {p.x:.3f} | {p.y:.3f} | {'✓' if p.locked else ''} |")
            _a("")

        _a("## 步骤轨迹")
        _a("")
        _a("| 步 | 点数 | 锁定 | 活动点 | 信息 |")
        _a("|----|------|------|--------|------|")
        shown = result.history[:self.max_trace_rows]
        for step, snap in enumerate(shown):
            active = "" if snap.active_index is None else str(snap.active_index)
            _a(f"| {step} | {len(snap.points)} | {snap.n_locked} | {active} | {snap.message} |")
        if len(result.history) > len(shown):
            _a(f"| ... | | | | 省略 {len(result.history) - len(shown)} 步 |")
        _a("")

        return "\n".join(lines)

    def save(self, filepath: str, result: 'PlannerResult', **kwargs) -> str:
        """生成报告并写入文件"""
        text = self.generate(result, **kwargs)
        with open(filepath, 'w', encoding='utf-8') as f:
            f.write(text)
        logger.info("报告已保存: %s", filepath)
        return filepath
