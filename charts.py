from __future__ import annotations

from io import BytesIO
from typing import Mapping

import numpy as np
from matplotlib.figure import Figure

from scoring import MAX_CATEGORY_SCORE, MIN_CATEGORY_SCORE, chart_series

CHART_COLOR = "#F57C00"
LABEL_COLOR = "#34495e"
GRID_COLOR = (0, 0, 0, 0.1)


def render_radar_chart(scores: Mapping[str, int], size_inches: float = 6.0, dpi: int = 100) -> bytes:
    """Draw the five category scores as a radar chart and return PNG bytes."""
    labels, values = chart_series(scores)

    angles = np.linspace(0, 2 * np.pi, len(labels), endpoint=False).tolist()
    values = values + values[:1]
    angles = angles + angles[:1]

    # Figure is used directly instead of pyplot so concurrent requests never share state.
    fig = Figure(figsize=(size_inches, size_inches * 5 / 6), dpi=dpi, facecolor="white")
    ax = fig.add_subplot(111, polar=True)
    ax.set_theta_offset(np.pi / 2)
    ax.set_theta_direction(-1)

    ax.set_ylim(0, MAX_CATEGORY_SCORE)
    ticks = list(range(MIN_CATEGORY_SCORE, MAX_CATEGORY_SCORE + 1, 10))
    ax.set_yticks(ticks)
    ax.set_yticklabels([str(tick) for tick in ticks], color=(0, 0, 0, 0.5), fontsize=8)
    ax.set_rlabel_position(0)
    ax.grid(color=GRID_COLOR)
    ax.spines["polar"].set_color(GRID_COLOR)

    ax.set_xticks(angles[:-1])
    ax.set_xticklabels(labels, fontdict={"fontsize": 12, "color": LABEL_COLOR})
    ax.tick_params(axis="x", pad=14)

    ax.plot(angles, values, color=CHART_COLOR, linewidth=2, linestyle="solid")
    ax.fill(angles, values, color=CHART_COLOR, alpha=0.2)
    ax.plot(angles[:-1], values[:-1], "o", color=CHART_COLOR, markeredgecolor="white", markersize=7)

    fig.tight_layout(pad=1)

    buf = BytesIO()
    fig.savefig(buf, format="png", facecolor="white")
    return buf.getvalue()
