#!/usr/bin/env python
from __future__ import annotations

import os
import argparse

import pandas as pd

from radforce.plotting import FigureConfig, set_paper_style, ensure_dir, plot_accel_vs_r, plot_radial_factor


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--runs_csv", required=True)
    ap.add_argument("--out_dir", default="figures")
    ap.add_argument("--fmt", default="pdf", choices=["pdf", "png", "svg"])
    args = ap.parse_args()

    cfg = FigureConfig(fmt=args.fmt)
    set_paper_style(cfg)
    ensure_dir(args.out_dir)

    df = pd.read_csv(args.runs_csv)
    print("n points:", len(df))
    print(df[["a_rad", "radial_factor", "a_mag"]].describe())

    plot_accel_vs_r(df, os.path.join(args.out_dir, f"accel_vs_r.{cfg.fmt}"), cfg)
    plot_radial_factor(df, os.path.join(args.out_dir, f"radial_factor.{cfg.fmt}"), cfg)
    print("Saved figures to", args.out_dir)


if __name__ == "__main__":
    main()
