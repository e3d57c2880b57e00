#!/usr/bin/env python
from __future__ import annotations

import os
import logging
import argparse
from dataclasses import replace

from radforce.config import load_scan_config, to_json
from radforce.scan import run_scan


def _pin_blas_threads():
    # one BLAS/OpenMP thread per worker process
    for var in ("OMP_NUM_THREADS", "OPENBLAS_NUM_THREADS", "MKL_NUM_THREADS",
                "VECLIB_MAXIMUM_THREADS", "NUMEXPR_NUM_THREADS"):
        os.environ.setdefault(var, "1")


def main():
    _pin_blas_threads()
    logging.basicConfig(level=logging.INFO)
    log = logging.getLogger("run_scan")

    ap = argparse.ArgumentParser(description="Scan the radiation reaction on the source over (r, rdot, beta).")
    ap.add_argument("--config", required=True, help="Path to scan JSON config")
    ap.add_argument("--out_dir", default=None, help="Override output.out_dir")
    ap.add_argument("--workers", type=int, default=None, help="Override parallel.workers (1 = in-process)")
    args = ap.parse_args()

    cfg = load_scan_config(args.config)
    if args.out_dir:
        cfg = replace(cfg, output=replace(cfg.output, out_dir=args.out_dir))
    os.makedirs(cfg.output.out_dir, exist_ok=True)
    to_json(cfg, os.path.join(cfg.output.out_dir, "config_used.json"))
    log.info("scanning %d grid points", cfg.n_points)

    df = run_scan(cfg, workers=args.workers)

    out_csv = os.path.join(cfg.output.out_dir, cfg.output.csv_name)
    tmp_csv = out_csv + ".tmp"
    df.to_csv(tmp_csv, index=False)
    os.replace(tmp_csv, out_csv)
    print("Saved:", out_csv)


if __name__ == "__main__":
    main()
