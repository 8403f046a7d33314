"""
Bar charts of incidence tables with optional fit overlays.

Requires matplotlib (``pip install outbreak-incidence[plotting]``).
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
import matplotlib.pyplot as plt
from matplotlib import colormaps
from matplotlib.colors import is_color_like

from .aggregate import IncidenceTable
from .fitting import FittedModel
from .utils import incidence_label


def group_palette(n: int) -> list:
    """``n`` colours cycled from the tab10 palette."""
    cmap = colormaps["tab10"]
    return [cmap(i % cmap.N) for i in range(n)]


def plot_incidence(
    table: IncidenceTable,
    fits: Sequence[FittedModel] = (),
    stack: bool | None = None,
    color="black",
    border: str | None = None,
    alpha: float = 0.7,
    xlab: str = "",
    ylab: str | None = None,
    ax=None,
):
    """
    Draw incidence as left-aligned bars, one bar width per interval.

    Parameters
    ----------
    table : IncidenceTable
        Incidence to draw
    fits : Sequence[FittedModel]
        Fits overlaid as a line with a dashed confidence band. A single fit
        is passed as a sequence of length one.
    stack : bool | None
        Stack group bars (True) or place them side by side (False).
        Default: stack only when no fits are drawn
    color
        Bar colour for a single group, or one colour per group; otherwise
        groups use :func:`group_palette`
    border : str | None
        Bar edge colour; None for no border
    alpha : float
        Bar opacity
    xlab, ylab : str
        Axis labels; ``ylab`` defaults to :func:`incidence_label`
    ax : matplotlib.axes.Axes | None
        Axes to draw on; a new figure is created if omitted

    Returns
    -------
    matplotlib.axes.Axes
    """
    fits = list(fits)
    for i, f in enumerate(fits, start=1):
        if not isinstance(f, FittedModel):
            raise TypeError(f"Item {i} of 'fits' is not a FittedModel, but a {type(f).__name__}")

    if stack is None:
        stack = not fits
    if ylab is None:
        ylab = incidence_label(table.interval_width)
    if ax is None:
        _, ax = plt.subplots(figsize=(6.4, 3.6))

    n_groups = table.n_groups
    if n_groups < 2:
        colors = [color if is_color_like(color) else list(color)[0]]
    elif not is_color_like(color) and len(color) == n_groups:
        colors = list(color)
    else:
        colors = group_palette(n_groups)

    starts = np.asarray(table.bin_starts, dtype=float)
    width = table.interval_width
    counts = np.asarray(table.counts)
    bottom = np.zeros(table.n_bins)
    edge = "none" if border is None else border

    for j, g in enumerate(table.groups):
        if stack:
            ax.bar(starts, counts[:, j], width=width, bottom=bottom, align="edge",
                   color=colors[j], edgecolor=edge, alpha=alpha, label=str(g))
            bottom = bottom + counts[:, j]
        else:
            sub = width / max(n_groups, 1)
            ax.bar(starts + j * sub, counts[:, j], width=sub, align="edge",
                   color=colors[j], edgecolor=edge, alpha=alpha, label=str(g))

    fit_colors = colors if n_groups > 1 else group_palette(1)
    for f in fits:
        c = fit_colors[table.groups.index(f.group)] if f.group in table.groups else fit_colors[0]
        pred = f.predict()
        ax.plot(pred["bin_midpoint"], pred["fitted"], color=c, lw=1.5)
        ax.plot(pred["bin_midpoint"], pred["lower"], color=c, lw=1, ls="--")
        ax.plot(pred["bin_midpoint"], pred["upper"], color=c, lw=1, ls="--")

    ax.set_xlabel(xlab)
    ax.set_ylabel(ylab)
    if n_groups > 1:
        ax.legend(title="groups")
    return ax
