from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable, Literal, Sequence

from impact_bubbles.config import AppConfig, ScaleBoundsConfig
from impact_bubbles.features.aggregates import summarize_bubbles, summarize_records
from impact_bubbles.formatting import (
    format_number,
    format_si,
    format_usd,
    format_usd_short,
    format_usd_thousands,
    round_half_up,
)
from impact_bubbles.models import Bubble, CategoryBubble, RawIssueRecord, SubcategoryBubble
from impact_bubbles.scales import ChartScales, LinearScale, build_chart_scales
from impact_bubbles.state import DashboardState
from impact_bubbles.viz.palette import CategoryColors

PointKind = Literal["record", "category", "subcategory"]

AGGREGATED_STROKE = "#ffffff"

# (title, detail, left edge?, top edge?) over effort (x) vs impact (y).
QUADRANTS = (
    ("Quick Wins", "(Low Effort, High Impact)", True, True),
    ("Major Projects", "(High Effort, High Impact)", False, True),
    ("Fill-ins", "(Low Effort, Low Impact)", True, False),
    ("Thankless Tasks", "(High Effort, Low Impact)", False, False),
)
QUADRANT_INSET = 10.0


@dataclass(frozen=True)
class TooltipLine:
    label: str
    value: str


@dataclass(frozen=True)
class PlottedBubble:
    key: str
    kind: PointKind
    category: str
    x: float
    y: float
    r: float
    fill: str
    opacity: float
    stroke: str
    stroke_width: float
    tooltip: tuple[TooltipLine, ...]
    expandable: bool = False


@dataclass(frozen=True)
class AxisTick:
    value: float
    position: float
    label: str


@dataclass(frozen=True)
class Axis:
    label: str
    domain: tuple[float, float]
    range: tuple[float, float]
    ticks: tuple[AxisTick, ...]


@dataclass(frozen=True)
class LegendEntry:
    category: str
    color: str
    active: bool


@dataclass(frozen=True)
class SeverityLegendEntry:
    severity: str
    color: str
    label: str


@dataclass(frozen=True)
class StatCard:
    label: str
    value: str


@dataclass(frozen=True)
class QuadrantLabel:
    title: str
    detail: str
    x: float
    y: float
    anchor: Literal["start", "end"]


@dataclass(frozen=True)
class DashboardView:
    """Immutable snapshot handed to the renderers."""

    title: str
    subtitle: str
    mode: str
    width: int
    height: int
    margin: tuple[int, int, int, int]
    x_axis: Axis | None
    y_axis: Axis | None
    bubbles: tuple[PlottedBubble, ...]
    legend: tuple[LegendEntry, ...]
    severity_legend: tuple[SeverityLegendEntry, ...]
    stats: tuple[StatCard, ...]
    quadrants: tuple[QuadrantLabel, ...] = ()
    data_source: str = ""
    expanded_category: str | None = None
    error: str | None = None

    @property
    def inner_width(self) -> float:
        return float(self.width - self.margin[1] - self.margin[3])

    @property
    def inner_height(self) -> float:
        return float(self.height - self.margin[0] - self.margin[2])

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _axis(label: str, scale: LinearScale, formatter: Callable[[float], str]) -> Axis:
    return Axis(
        label=label,
        domain=scale.domain,
        range=scale.range,
        ticks=tuple(
            AxisTick(value=value, position=scale(value), label=formatter(value))
            for value in scale.ticks()
        ),
    )


def _record_tooltip(record: RawIssueRecord) -> tuple[TooltipLine, ...]:
    lines = [TooltipLine(label="", value=record.category)]
    if record.sub_category:
        lines.append(TooltipLine(label="Sub-category", value=record.sub_category))
    lines.append(TooltipLine(label="Severity", value=record.severity))
    if record.request_id:
        lines.append(TooltipLine(label="Request ID", value=record.request_id))
    if record.status:
        lines.append(TooltipLine(label="Status", value=record.status))
    lines.extend(
        [
            TooltipLine(label="Issues", value=format_number(record.num_issues)),
            TooltipLine(
                label="Business Impact", value=f"${format_number(record.business_impact)}/day"
            ),
            TooltipLine(
                label="Avg Resolve Time",
                value=f"{format_number(round_half_up(record.avg_resolve_time, 1))} hours",
            ),
            TooltipLine(label="Total Exposure", value=format_usd(record.total_exposure)),
        ]
    )
    return tuple(lines)


def _bubble_tooltip(bubble: Bubble) -> tuple[TooltipLine, ...]:
    lines = [TooltipLine(label="", value=bubble.category)]
    if isinstance(bubble, SubcategoryBubble):
        if bubble.subcategory:
            lines.append(TooltipLine(label="Subcategory", value=bubble.subcategory))
        lines.extend(
            [
                TooltipLine(label="Issues", value=format_number(bubble.count)),
                TooltipLine(label="Effort per Issue", value=format_usd(bubble.effort_per_issue)),
                TooltipLine(label="Impact per Day", value=format_usd(bubble.impact_per_day)),
                TooltipLine(
                    label="Avg Days to Fix",
                    value=format_number(round_half_up(bubble.avg_days_to_fix, 2)),
                ),
            ]
        )
        return tuple(lines)

    count = bubble.count or 1
    lines.extend(
        [
            TooltipLine(label="Issues", value=format_number(bubble.count)),
            TooltipLine(label="Avg Effort", value=format_usd(bubble.total_effort / count)),
            TooltipLine(label="Avg Impact", value=format_usd(bubble.total_impact / count)),
        ]
    )
    return tuple(lines)


def _bubble_position(bubble: Bubble) -> tuple[float, float]:
    # Category bubbles sit at the issue-weighted means of their subcategories.
    return bubble.effort_per_issue, bubble.impact_per_day


def _severity_legend(config: AppConfig) -> tuple[SeverityLegendEntry, ...]:
    colors = config.chart.colors.severity
    return tuple(
        SeverityLegendEntry(
            severity=tier.severity,
            color=colors.get(tier.severity, config.chart.colors.inactive),
            label=f"{tier.severity} Impact (${format_number(tier.daily_impact)}/day)",
        )
        for tier in config.severity_tiers
    )


def _legend(
    state: DashboardState,
    colors: CategoryColors,
) -> tuple[LegendEntry, ...]:
    return tuple(
        LegendEntry(
            category=category,
            color=colors(category),
            active=state.category_filter.is_active(category),
        )
        for category in state.plotted_categories()
    )


def _record_stats(records: Sequence[RawIssueRecord]) -> list[StatCard]:
    stats = summarize_records(records)
    avg = "–" if stats.avg_resolve_time is None else f"{stats.avg_resolve_time:.1f}h"
    return [
        StatCard(label="Total Issues", value=format_number(stats.total_issues)),
        StatCard(label="Total Daily Impact", value=format_usd_thousands(stats.total_impact)),
        StatCard(label="Avg Resolve Time", value=avg),
        StatCard(label="High Severity Items", value=str(stats.high_severity_count)),
        StatCard(label="Categories Analyzed", value=str(stats.categories_count)),
    ]


def _bubble_stats(bubbles: Sequence[Bubble]) -> list[StatCard]:
    stats = summarize_bubbles(bubbles)
    avg = "–" if stats.avg_days_to_fix is None else f"{stats.avg_days_to_fix:.1f}d"
    return [
        StatCard(label="Total Issues", value=format_number(stats.total_issues)),
        StatCard(label="Total Effort", value=format_usd_thousands(stats.total_effort)),
        StatCard(label="Total Impact", value=format_usd_thousands(stats.total_impact)),
        StatCard(label="Avg Days to Fix", value=avg),
        StatCard(label="Bubbles", value=str(stats.bubble_count)),
    ]


def _quadrants(config: AppConfig) -> tuple[QuadrantLabel, ...]:
    width, height = config.chart.inner_width, config.chart.inner_height
    labels = []
    for title, detail, left, top in QUADRANTS:
        labels.append(
            QuadrantLabel(
                title=title,
                detail=detail,
                x=QUADRANT_INSET if left else width - QUADRANT_INSET,
                y=2 * QUADRANT_INSET if top else height - 4 * QUADRANT_INSET,
                anchor="start" if left else "end",
            )
        )
    return tuple(labels)


def _data_source(state: DashboardState, config: AppConfig) -> str:
    source = config.data_source
    count = source.total_categories if state.source_categories is None else state.source_categories
    return f"{source.description} ({count} categories analyzed)"


def _subtitle(state: DashboardState) -> str:
    if state.mode == "real":
        return f"Real CSV data - {state.window.label}" if state.window.label else "Real data"
    if state.is_aggregated:
        if state.window.is_empty:
            return "No data"
        return f"{state.window.label} ({state.window.day_count} days)"
    return f"{state.mode} data"


def _scales(
    config: AppConfig,
    bounds: ScaleBoundsConfig,
    points: Sequence[tuple[float, float, float]],
) -> ChartScales:
    return build_chart_scales(
        [point[0] for point in points],
        [point[1] for point in points],
        [point[2] for point in points],
        inner_width=config.chart.inner_width,
        inner_height=config.chart.inner_height,
        bounds=bounds,
    )


def build_view_model(state: DashboardState, config: AppConfig) -> DashboardView:
    """Project the dashboard state onto plot coordinates, colors, legends and stat cards."""
    chart = config.chart
    margin = (chart.margin.top, chart.margin.right, chart.margin.bottom, chart.margin.left)
    subtitle = _subtitle(state)

    if state.error:
        return DashboardView(
            title=config.ui.title,
            subtitle=subtitle,
            mode=state.mode,
            width=chart.width,
            height=chart.height,
            margin=margin,
            x_axis=None,
            y_axis=None,
            bubbles=(),
            legend=(),
            severity_legend=(),
            stats=(),
            data_source=_data_source(state, config),
            error=state.error,
        )

    colors = CategoryColors(chart.colors.scheme, chart.colors.category)

    if state.is_aggregated:
        bubbles = state.visible_bubbles()
        colors.assign(bubble.category for bubble in state.category_bubbles)
        positions = [_bubble_position(bubble) for bubble in bubbles]
        scales = _scales(
            config,
            chart.aggregated,
            [(x, y, float(bubble.count)) for (x, y), bubble in zip(positions, bubbles)],
        )
        plotted = tuple(
            _plot_bubble(bubble, x, y, scales, colors, state, config)
            for (x, y), bubble in zip(positions, bubbles)
        )
        x_axis = _axis(config.ui.x_label_aggregated, scales.x, format_usd_short)
        y_axis = _axis(config.ui.y_label_aggregated, scales.y, format_usd_short)
        stats = _bubble_stats(bubbles)
    else:
        records = state.records
        colors.assign(record.category for record in records)
        scales = _scales(
            config,
            chart.raw,
            [
                (record.avg_resolve_time, record.business_impact, float(record.num_issues))
                for record in records
            ],
        )
        plotted = tuple(
            _plot_record(index, record, scales, colors, state, config)
            for index, record in enumerate(records)
        )
        x_axis = _axis(config.ui.x_label_raw, scales.x, format_number)
        y_axis = _axis(config.ui.y_label_raw, scales.y, lambda value: f"${format_si(value)}")
        stats = _record_stats(records)

    if not state.window.is_empty:
        stats.append(StatCard(label="Days in Window", value=str(state.window.day_count)))

    return DashboardView(
        title=config.ui.title,
        subtitle=subtitle,
        mode=state.mode,
        width=chart.width,
        height=chart.height,
        margin=margin,
        x_axis=x_axis,
        y_axis=y_axis,
        bubbles=plotted,
        legend=_legend(state, colors),
        severity_legend=() if state.is_aggregated else _severity_legend(config),
        stats=tuple(stats),
        quadrants=_quadrants(config) if state.is_aggregated else (),
        data_source=_data_source(state, config),
        expanded_category=state.drill_down.expanded,
    )


def _fill_and_opacity(
    category: str,
    colors: CategoryColors,
    state: DashboardState,
    config: AppConfig,
) -> tuple[str, float]:
    chart = config.chart
    if state.category_filter.is_active(category):
        return colors(category), chart.active_opacity
    return chart.colors.inactive, chart.inactive_opacity


def _plot_record(
    index: int,
    record: RawIssueRecord,
    scales: ChartScales,
    colors: CategoryColors,
    state: DashboardState,
    config: AppConfig,
) -> PlottedBubble:
    fill, opacity = _fill_and_opacity(record.category, colors, state, config)
    severity_colors = config.chart.colors.severity
    return PlottedBubble(
        key=record.request_id or f"record-{index}",
        kind="record",
        category=record.category,
        x=scales.x(record.avg_resolve_time),
        y=scales.y(record.business_impact),
        r=scales.radius(record.num_issues),
        fill=fill,
        opacity=opacity,
        stroke=severity_colors.get(record.severity, config.chart.colors.inactive),
        stroke_width=2.0,
        tooltip=_record_tooltip(record),
    )


def _plot_bubble(
    bubble: Bubble,
    x: float,
    y: float,
    scales: ChartScales,
    colors: CategoryColors,
    state: DashboardState,
    config: AppConfig,
) -> PlottedBubble:
    fill, opacity = _fill_and_opacity(bubble.category, colors, state, config)
    return PlottedBubble(
        key=bubble.key,
        kind=bubble.kind,
        category=bubble.category,
        x=scales.x(x),
        y=scales.y(y),
        r=scales.radius(bubble.count),
        fill=fill,
        opacity=opacity,
        stroke=AGGREGATED_STROKE,
        stroke_width=1.5,
        tooltip=_bubble_tooltip(bubble),
        expandable=isinstance(bubble, CategoryBubble),
    )
