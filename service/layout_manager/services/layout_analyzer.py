"""
布局分析：类型统计、区域分布、网格尺寸、密度、问题与建议，以及对常见问题的模板回答
"""
from itertools import combinations
from typing import List

from layout_manager.schemas.layout_schema import LayoutItem, LayoutSchema
from layout_manager.schemas.tool import GridDimensions, LayoutAnalysis
from layout_manager.services.widget_finder import is_in_zone

CORNER_ZONES = ("top-left", "top-right", "bottom-left", "bottom-right")

# 密度阈值
SPARSE_DENSITY = 0.3
DENSE_DENSITY = 0.9


def analyze(schema: LayoutSchema, breakpoint: str) -> LayoutAnalysis:
    """分析断点下的布局；断点不存在时按空列表处理"""
    widgets: List[LayoutItem] = schema.layouts.get(breakpoint, [])
    cols = schema.cols_for(breakpoint)

    analysis = LayoutAnalysis(
        totalWidgets=len(widgets),
        widgetDetails=[item.model_dump(exclude_none=True) for item in widgets],
    )

    for item in widgets:
        analysis.widgetsByType[item.componentType] = analysis.widgetsByType.get(item.componentType, 0) + 1
        for zone in CORNER_ZONES:
            if is_in_zone(item, zone):
                analysis.widgetsByZone.setdefault(zone, []).append(item.i)

    if widgets:
        max_x = max(item.x + item.w for item in widgets)
        max_y = max(item.y + item.h for item in widgets)
        used_cells = sum(item.w * item.h for item in widgets)
        analysis.gridDimensions = GridDimensions(
            columns=cols,
            usedRows=max_y,
            maxX=max_x,
            maxY=max_y,
            totalCells=cols * max_y,
            usedCells=used_cells,
        )
        if analysis.gridDimensions.totalCells > 0:
            analysis.density = used_cells / analysis.gridDimensions.totalCells

    analysis.issues = _find_issues(widgets, cols)
    analysis.suggestions = _suggest(analysis, cols)
    return analysis


def _find_issues(widgets: List[LayoutItem], cols: int) -> List[str]:
    issues = []
    for a, b in combinations(widgets, 2):
        if a.intersects(b):
            issues.append(f"widgets {a.i} and {b.i} overlap")
    for item in widgets:
        if item.x + item.w > cols:
            issues.append(f"widget {item.i} extends beyond {cols} columns")
    return issues


def _suggest(analysis: LayoutAnalysis, cols: int) -> List[str]:
    suggestions = []
    if analysis.totalWidgets == 0:
        suggestions.append("layout is empty; add widgets with add_widget")
        return suggestions
    if analysis.issues:
        suggestions.append("move or resize overlapping widgets to resolve conflicts")
    if analysis.density < SPARSE_DENSITY:
        suggestions.append("layout is sparse; consider enlarging widgets or compacting rows")
    elif analysis.density > DENSE_DENSITY:
        suggestions.append("layout is crowded; consider removing or shrinking widgets")
    if analysis.gridDimensions is not None and analysis.gridDimensions.maxX < cols:
        suggestions.append(f"columns {analysis.gridDimensions.maxX}-{cols - 1} are unused")
    return suggestions


def analysis_message(analysis: LayoutAnalysis, question: str) -> str:
    """按问题模板生成回答"""
    question = question.lower()

    if "how many" in question:
        return f"This layout contains {analysis.totalWidgets} widgets total"

    if "what widgets" in question or "what's in" in question:
        parts = []
        for widget_type, count in analysis.widgetsByType.items():
            if count == 1:
                parts.append(f"1 {widget_type}")
            else:
                parts.append(f"{count} {widget_type}s")
        return f"This layout contains: {', '.join(parts)}"

    return f"Layout analysis: {analysis.totalWidgets} widgets with density {analysis.density * 100:.1f}%"
