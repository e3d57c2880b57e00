from __future__ import annotations

import os
from concurrent.futures import ProcessPoolExecutor
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from tqdm import tqdm

from .config import ScanConfig, RadiationParams
from .particles import Simulation
from .radiation import radiation_forces


def two_body(G: float, source_mass: float, r: float, rdot: float, vt: float, beta: float) -> Simulation:
    """Source at rest at the origin, one tagged grain at (r,0,0) moving with (rdot,vt,0)."""
    sim = Simulation.empty(G=G)
    sim.add(source_mass, (0.0, 0.0, 0.0))
    sim.add(0.0, (r, 0.0, 0.0), (rdot, vt, 0.0), beta=beta)
    return sim


def build_tasks(cfg: ScanConfig) -> List[Tuple[int, Dict[str, Any]]]:
    tasks = []
    k = 0
    for r in cfg.r_list:
        for rdot in cfg.rdot_list:
            for beta in cfg.beta_list:
                payload = {
                    "r": float(r),
                    "rdot": float(rdot),
                    "beta": float(beta),
                    "vt": float(cfg.vt),
                    "G": float(cfg.G),
                    "source_mass": float(cfg.source_mass),
                    "rad": cfg.radiation,
                }
                tasks.append((k, payload))
                k += 1
    return tasks


def run_one(k: int, r: float, rdot: float, beta: float, vt: float,
            G: float, source_mass: float, rad: RadiationParams) -> dict:
    """Evaluate one grid point and return a flat dict for tabular storage."""
    sim = two_body(G, source_mass, r, rdot, vt, beta)
    radiation_forces(sim, rad)
    a = sim.acc[rad.source_index]

    row = {
        "k": int(k),
        "r": r,
        "rdot": rdot,
        "vt": vt,
        "beta": beta,
        "a_rad": beta*G*source_mass/(r*r),
        "radial_factor": 1.0 - rdot/rad.c,
        "ax": float(a[0]),
        "ay": float(a[1]),
        "az": float(a[2]),
        "a_mag": float(np.linalg.norm(a)),
    }
    for key, v in asdict(rad).items():
        row[f"rad_{key}"] = v
    return row


def _evaluate(task: Tuple[int, Dict[str, Any]]) -> dict:
    k, p = task
    return run_one(k, **p)


def run_scan(cfg: ScanConfig, workers: Optional[int] = None, progress: bool = True) -> pd.DataFrame:
    """Evaluate the whole grid, one row per point in task order.

    workers=None takes cfg.parallel.workers (0 => os.cpu_count()); workers=1
    stays in-process.
    """
    tasks = build_tasks(cfg)
    if workers is None:
        workers = cfg.parallel.workers or (os.cpu_count() or 4)

    if workers <= 1:
        rows = [_evaluate(t) for t in tqdm(tasks, disable=not progress)]
    else:
        chunksize = max(1, int(cfg.parallel.chunksize))
        with ProcessPoolExecutor(max_workers=workers) as ex:
            rows = list(tqdm(ex.map(_evaluate, tasks, chunksize=chunksize),
                             total=len(tasks), disable=not progress))
    return pd.DataFrame(rows)
