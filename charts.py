#!/usr/bin/env python3

"""Plotly figures for the dashboard and tracker pages."""

from __future__ import annotations

from typing import Sequence

import plotly.graph_objects as go

from projections import BalancePoint, NetPoint, StepsPoint, WeightPoint

DEFICIT_COLOR = "#22c55e"
SURPLUS_COLOR = "#ef4444"
BALANCE_AXIS_LIMIT = 3000
WEIGHT_AXIS_PADDING = 5


def get_mobile_friendly_layout_config(height: int = 320) -> dict:
    """Horizontal legend below the chart with room for it in the bottom margin."""
    return dict(
        legend=dict(orientation="h", yanchor="top", y=-0.15, xanchor="center", x=0.5, font=dict(size=10)),
        margin=dict(l=10, r=10, t=40, b=80),
        height=height,
        hovermode="x unified",
    )


def net_trend_figure(points: Sequence[NetPoint]) -> go.Figure:
    fig = go.Figure()
    labels = [p.label for p in points]
    fig.add_trace(go.Scatter(x=labels, y=[p.net for p in points], mode="lines+markers", name="Net (kcal)",
                             line=dict(color="#3b82f6", width=2)))
    fig.add_trace(go.Scatter(x=labels, y=[p.target for p in points], mode="lines", name="Target (kcal)",
                             line=dict(color="#a3a3a3", width=1, dash="dash")))
    fig.update_layout(title="Net Calories", **get_mobile_friendly_layout_config())
    return fig


def balance_bar_figure(points: Sequence[BalancePoint]) -> go.Figure:
    """Daily target - net; green bars are deficits, red bars surpluses."""
    colors = [DEFICIT_COLOR if p.balance >= 0 else SURPLUS_COLOR for p in points]
    hover = [
        f"{p.date:%A, %b %d}<br>Target: {p.target}<br>Net: {p.net}<br>"
        f"{'Deficit' if p.balance >= 0 else 'Surplus'}: {p.balance:+g}"
        for p in points
    ]
    fig = go.Figure(go.Bar(
        x=[p.day_number for p in points],
        y=[p.balance for p in points],
        marker_color=colors,
        opacity=0.8,
        hovertext=hover,
        hoverinfo="text",
        name="Balance",
    ))
    fig.add_hline(y=0, line_color="#666")
    fig.update_yaxes(range=[-BALANCE_AXIS_LIMIT, BALANCE_AXIS_LIMIT])
    fig.update_layout(title="Deficit / Surplus", showlegend=False, **get_mobile_friendly_layout_config())
    return fig


def weight_figure(points: Sequence[WeightPoint], title: str = "Weight") -> go.Figure:
    fig = go.Figure(go.Scatter(
        x=[p.label for p in points],
        y=[p.weight for p in points],
        mode="lines+markers",
        name="Weight (lbs)",
        line=dict(color="#a855f7", width=2),
    ))
    if points:
        weights = [p.weight for p in points]
        fig.update_yaxes(range=[min(weights) - WEIGHT_AXIS_PADDING, max(weights) + WEIGHT_AXIS_PADDING])
    fig.update_layout(title=title, **get_mobile_friendly_layout_config())
    return fig


def steps_figure(points: Sequence[StepsPoint]) -> go.Figure:
    fig = go.Figure(go.Bar(
        x=[p.label for p in points],
        y=[p.steps for p in points],
        marker_color="#3b82f6",
        name="Steps",
    ))
    fig.update_layout(title="Daily Steps", showlegend=False, **get_mobile_friendly_layout_config())
    return fig
