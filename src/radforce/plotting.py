from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd

import matplotlib
matplotlib.use("Agg", force=True)  # headless
import matplotlib.pyplot as plt


@dataclass(frozen=True)
class FigureConfig:
    fmt: str = "pdf"          # "pdf", "png", "svg"
    dpi: int = 300            # raster formats only
    fontsize: float = 10.0
    tight: bool = True
    pad_inches: float = 0.02
    figsize: Tuple[float, float] = (3.4, 2.6)


def set_paper_style(cfg: FigureConfig) -> None:
    plt.rcParams.update({
        "figure.figsize": cfg.figsize,
        "savefig.dpi": cfg.dpi,
        "font.size": cfg.fontsize,
        "axes.labelsize": cfg.fontsize,
        "legend.fontsize": max(6.0, cfg.fontsize - 2.0),
        "xtick.direction": "in",
        "ytick.direction": "in",
        "legend.frameon": False,
        "lines.linewidth": 1.2,
        "pdf.fonttype": 42,
    })


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def savefig(fig: plt.Figure, path: str, cfg: FigureConfig) -> None:
    kwargs = {}
    if cfg.tight:
        kwargs["bbox_inches"] = "tight"
        kwargs["pad_inches"] = cfg.pad_inches
    if path.lower().endswith((".png", ".jpg", ".jpeg", ".tif", ".tiff")):
        kwargs["dpi"] = cfg.dpi
    fig.savefig(path, **kwargs)


def plot_accel_vs_r(df: pd.DataFrame, out_path: str, cfg: FigureConfig) -> None:
    """Source reaction |a| against separation, one line per beta (rdot = 0 rows if present)."""
    sub = df[df["rdot"] == 0.0] if (df["rdot"] == 0.0).any() else df
    fig = plt.figure()
    ax = fig.add_subplot(111)
    for beta, g in sub.groupby("beta"):
        g = g.groupby("r", as_index=False)["a_mag"].mean().sort_values("r")
        ax.loglog(g["r"].to_numpy(dtype=float), g["a_mag"].to_numpy(dtype=float),
                  marker=".", label=fr"$\beta={float(beta):.3g}$")
    ax.set_xlabel("r")
    ax.set_ylabel(r"$|a_\mathrm{src}|$")
    ax.legend(loc="best")
    savefig(fig, out_path, cfg)
    plt.close(fig)


def plot_radial_factor(df: pd.DataFrame, out_path: str, cfg: FigureConfig) -> None:
    """Doppler factor 1 - rdot/c and the resulting radial source acceleration ratio."""
    g = df.groupby("rdot", as_index=False).agg(radial_factor=("radial_factor", "mean"),
                                               ax=("ax", "mean"), a_rad=("a_rad", "mean"))
    g = g.sort_values("rdot")
    fig = plt.figure()
    ax = fig.add_subplot(111)
    rdot = g["rdot"].to_numpy(dtype=float)
    ax.plot(rdot, g["radial_factor"].to_numpy(dtype=float), label=r"$1-\dot r/c$")
    ratio = np.divide(g["ax"].to_numpy(dtype=float), g["a_rad"].to_numpy(dtype=float))
    ax.plot(rdot, ratio, linestyle="--", label=r"$a_x/a_\mathrm{rad}$")
    ax.axhline(1.0, color="0.6", linewidth=0.8)
    ax.set_xlabel(r"$\dot r$")
    ax.legend(loc="best")
    savefig(fig, out_path, cfg)
    plt.close(fig)
