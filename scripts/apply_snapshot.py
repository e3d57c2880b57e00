#!/usr/bin/env python
from __future__ import annotations

import argparse
import logging

import numpy as np

from radforce.config import RadiationParams, load_radiation_params
from radforce.particles import load_snapshot, save_snapshot
from radforce.radiation import radiation_forces, radiation_forces_on_particles, tagged_indices


def main():
    logging.basicConfig(level=logging.INFO)

    ap = argparse.ArgumentParser(description="Apply radiation forces to an npz particle snapshot.")
    ap.add_argument("--snapshot", required=True, help="Input .npz written by radforce.particles.save_snapshot")
    ap.add_argument("--params", default=None, help="JSON with c and source_index (defaults: AU/Msun/yr/2pi, 0)")
    ap.add_argument("--grains", action="store_true", help="also apply the direct force on tagged particles")
    ap.add_argument("--workers", type=int, default=0)
    ap.add_argument("--out", default=None, help="Write the updated snapshot here")
    args = ap.parse_args()

    params = load_radiation_params(args.params) if args.params else RadiationParams()
    sim = load_snapshot(args.snapshot)

    src = params.source_index
    before = sim.acc[src].copy()
    radiation_forces(sim, params, workers=args.workers)
    if args.grains:
        radiation_forces_on_particles(sim, params)

    print("tagged particles:", len(tagged_indices(sim, params)))
    print("source acceleration change:", np.array2string(sim.acc[src] - before, precision=6))

    if args.out:
        save_snapshot(args.out, sim)
        print("Saved:", args.out)


if __name__ == "__main__":
    main()
