"""Plotly rendering of chart series behind explicit render / dispose handles.

The board owns at most one live figure per container. Callers dispose the
previous handle before rendering into the same container again.
"""

from __future__ import annotations

import itertools
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable

import plotly.graph_objects as go

from ..exceptions import ChartSlotBusyError
from ..schemas.chart_schema import ChartSeries

logger = logging.getLogger(__name__)

_handle_ids = itertools.count(1)


@dataclass(frozen=True)
class ChartHandle:
    container: str
    handle_id: int
    chart_id: str


def _placeholder_figure(series: ChartSeries) -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(
        text=series.placeholder,
        x=0.5,
        y=0.5,
        xref="paper",
        yref="paper",
        showarrow=False,
        font=dict(size=14, color="gray"),
    )
    fig.update_layout(
        title=series.title,
        xaxis=dict(visible=False),
        yaxis=dict(visible=False),
        height=400,
    )
    return fig


def _bar_figure(series: ChartSeries) -> go.Figure:
    dataset = series.datasets[0]
    fig = go.Figure(data=[
        go.Bar(
            x=series.labels,
            y=dataset.data,
            text=[f"{v:,.1f}" for v in dataset.data if v is not None],
            textposition="auto",
            marker=dict(color=dataset.background_colors, line=dict(color=dataset.border_colors, width=1)),
        )
    ])
    fig.update_layout(
        title=series.title,
        xaxis_title="Companies",
        yaxis_title=series.axis_label,
        showlegend=False,
        height=400,
    )
    return fig


def _pie_figure(series: ChartSeries) -> go.Figure:
    dataset = series.datasets[0]
    fig = go.Figure(data=[
        go.Pie(
            labels=series.labels,
            values=dataset.data,
            hole=0.4,
            marker=dict(colors=dataset.background_colors, line=dict(color=dataset.border_colors, width=1)),
            sort=False,
        )
    ])
    fig.update_layout(title=series.title, height=400)
    return fig


def _radar_figure(series: ChartSeries) -> go.Figure:
    fig = go.Figure()
    for dataset in series.datasets:
        # Close the polygon; None points stay gaps
        fig.add_trace(go.Scatterpolar(
            r=dataset.data + dataset.data[:1],
            theta=series.labels + series.labels[:1],
            fill="toself",
            name=dataset.label,
            connectgaps=False,
            fillcolor=dataset.background_colors[0] if dataset.background_colors else None,
            line=dict(color=dataset.border_colors[0] if dataset.border_colors else None),
        ))
    fig.update_layout(
        polar=dict(radialaxis=dict(visible=True, range=[0, 100])),
        showlegend=True,
        title=series.title,
        height=500,
    )
    return fig


_BUILDERS = {
    "bar": _bar_figure,
    "pie": _pie_figure,
    "radar": _radar_figure,
}


def build_figure(series: ChartSeries) -> go.Figure:
    """Plotly figure for one series; placeholder series get an annotated empty figure."""
    if not series.has_data or not series.datasets:
        return _placeholder_figure(series)
    return _BUILDERS[series.chart_type](series)


def figure_to_dict(fig: go.Figure) -> Dict[str, Any]:
    """JSON-safe dict (numpy arrays and the like already encoded by plotly)."""
    return json.loads(fig.to_json())


class ChartBoard:
    """Tracks the live figure in each container slot."""

    def __init__(self) -> None:
        self._slots: Dict[str, tuple[ChartHandle, go.Figure]] = {}

    def render(self, container: str, series: ChartSeries) -> ChartHandle:
        """Render *series* into *container*.

        Raises ChartSlotBusyError if the container still holds an undisposed handle.
        """
        if container in self._slots:
            raise ChartSlotBusyError(
                f"Container '{container}' still holds chart handle {self._slots[container][0].handle_id}"
            )
        handle = ChartHandle(container=container, handle_id=next(_handle_ids), chart_id=series.chart_id)
        self._slots[container] = (handle, build_figure(series))
        return handle

    def dispose(self, handle: ChartHandle) -> None:
        """Release *handle*. Disposing a stale or already-released handle is a no-op."""
        current = self._slots.get(handle.container)
        if current is None or current[0] != handle:
            logger.debug("[CHARTS] Ignoring dispose of stale handle %s", handle)
            return
        del self._slots[handle.container]

    def figure(self, handle: ChartHandle) -> go.Figure:
        current = self._slots.get(handle.container)
        if current is None or current[0] != handle:
            raise KeyError(f"Chart handle {handle.handle_id} is not live")
        return current[1]

    def is_occupied(self, container: str) -> bool:
        return container in self._slots

    def render_all(self, series_list: Iterable[ChartSeries]) -> Dict[str, Dict[str, Any]]:
        """Render each series into the slot named by its chart id and return figure dicts.

        Each slot is replaced: the previous handle is disposed first.
        """
        figures: Dict[str, Dict[str, Any]] = {}
        for series in series_list:
            current = self._slots.get(series.chart_id)
            if current is not None:
                self.dispose(current[0])
            handle = self.render(series.chart_id, series)
            figures[series.chart_id] = figure_to_dict(self.figure(handle))
        return figures
