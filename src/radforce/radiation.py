"""Radiation pressure and Poynting-Robertson drag.

Accelerations follow eq. (5) of Burns, Lamy & Soter (1979):

    a = beta * G M / r^2 * ((1 - rdot/c) r_hat - v/c)

where r and v are the particle's position and velocity relative to the
radiation source of mass M, and rdot = r_hat . v is the radial velocity.

Particles take part only if they carry a "beta" entry in `sim.params`.
Coincident positions (r = 0) are not guarded: the result is inf/nan, which
propagates into the accelerations and is reported through the module logger.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .config import RadiationParams
from .particles import BETA, Simulation

logger = logging.getLogger(__name__)


def tagged_indices(sim: Simulation, params: RadiationParams) -> List[int]:
    """Real particles other than the source that carry a beta coefficient."""
    src = params.source_index
    return [i for i in range(sim.N_real) if i != src and sim.params.get(i, BETA) is not None]


def _partial_sum(sim: Simulation,
                 params: RadiationParams,
                 source: Tuple[NDArray[np.float64], NDArray[np.float64], float],
                 indices: Sequence[int],
                 bad: List[int],
                 start=(0.0, 0.0, 0.0)) -> NDArray[np.float64]:
    c = params.c
    spos, svel, smass = source
    mu = sim.G * smass
    ax, ay, az = (np.float64(s) for s in start)
    with np.errstate(divide="ignore", invalid="ignore"):
        for i in indices:
            beta = sim.params.get(i, BETA)
            if beta is None:
                continue
            dx = sim.pos[i, 0] - spos[0]
            dy = sim.pos[i, 1] - spos[1]
            dz = sim.pos[i, 2] - spos[2]
            dr = np.sqrt(dx*dx + dy*dy + dz*dz)

            dvx = sim.vel[i, 0] - svel[0]
            dvy = sim.vel[i, 1] - svel[1]
            dvz = sim.vel[i, 2] - svel[2]
            rdot = (dx*dvx + dy*dvy + dz*dvz)/dr
            a_rad = beta*mu/(dr*dr)
            if dr == 0.0:
                bad.append(int(i))

            ax += a_rad*((1. - rdot/c)*dx/dr - dvx/c)
            ay += a_rad*((1. - rdot/c)*dy/dr - dvy/c)
            az += a_rad*((1. - rdot/c)*dz/dr - dvz/c)
    return np.array([ax, ay, az], dtype=np.float64)


def _source_state(sim: Simulation, src: int) -> Tuple[NDArray[np.float64], NDArray[np.float64], float]:
    return sim.pos[src].copy(), sim.vel[src].copy(), float(sim.mass[src])


def _accelerations(sim: Simulation,
                   params: RadiationParams,
                   source: Tuple[NDArray[np.float64], NDArray[np.float64], float],
                   idx: NDArray[np.int64]) -> Tuple[NDArray[np.float64], List[int]]:
    """Array form of the per-particle terms for tagged indices idx.

    Returns the (len(idx), 3) accelerations and the indices sitting on the source.
    """
    if idx.size == 0:
        return np.zeros((0, 3), dtype=np.float64), []
    spos, svel, smass = source
    beta = np.array([sim.params.get(i, BETA) for i in idx], dtype=np.float64)
    d = sim.pos[idx] - spos
    dv = sim.vel[idx] - svel
    with np.errstate(divide="ignore", invalid="ignore"):
        dr = np.sqrt(np.sum(d*d, axis=1))
        rdot = np.sum(d*dv, axis=1) / dr
        a_rad = beta * sim.G * smass / (dr*dr)
        a = a_rad[:, None] * ((1.0 - rdot/params.c)[:, None] * d/dr[:, None] - dv/params.c)
    return a, idx[dr == 0.0].tolist()


def _warn_coincident(bad: List[int], src: int) -> None:
    if bad:
        logger.warning("particles %s coincide with radiation source %d; accelerations are non-finite",
                       sorted(bad), src)


def radiation_forces(sim: Simulation, params: RadiationParams, workers: int = 0) -> None:
    """Add the radiation reaction of every tagged particle onto the source.

    Only `sim.acc[params.source_index]` changes, by accumulation, so this
    composes with forces computed earlier in the same step.

    workers > 1 splits the tagged particles into contiguous chunks. Each chunk
    is evaluated with array operations on a thread pool (numpy releases the GIL
    inside them) and summed privately; the partial sums are then added to the
    source in chunk order.
    """
    src = params.source_index
    source = _source_state(sim, src)
    bad: List[int] = []

    if workers is None or workers <= 1:
        # accumulate in loop order starting from the current source acceleration
        sim.acc[src] = _partial_sum(sim, params, source, [i for i in range(sim.N_real) if i != src], bad,
                                    start=sim.acc[src])
    else:
        idx = tagged_indices(sim, params)
        chunks = [c for c in np.array_split(np.asarray(idx, dtype=np.int64), workers) if c.size]
        with ThreadPoolExecutor(max_workers=workers) as ex:
            parts = list(ex.map(lambda chunk: _accelerations(sim, params, source, chunk), chunks))
        total = np.zeros(3, dtype=np.float64)
        for a, b in parts:
            total += a.sum(axis=0)
            bad.extend(b)
        sim.acc[src] += total

    _warn_coincident(bad, src)


def radiation_contributions(sim: Simulation, params: RadiationParams) -> tuple[NDArray[np.int64], NDArray[np.float64]]:
    """Per-particle radiation accelerations, vectorized, without touching sim.

    Returns (indices, a) with a of shape (len(indices), 3). The sum over rows is
    what `radiation_forces` adds to the source.
    """
    src = params.source_index
    idx = np.asarray(tagged_indices(sim, params), dtype=np.int64)
    a, bad = _accelerations(sim, params, _source_state(sim, src), idx)
    _warn_coincident(bad, src)
    return idx, a


def radiation_forces_on_particles(sim: Simulation, params: RadiationParams) -> None:
    """Apply the direct radiation acceleration to each tagged particle.

    Counterpart of `radiation_forces`: here the grains are perturbed and the
    source is left alone.
    """
    idx, a = radiation_contributions(sim, params)
    if idx.size:
        sim.acc[idx] += a


def calc_beta(G: float, c: float, source_mass: float, source_luminosity: float,
              radius: float, density: float, Q_pr: float = 1.0) -> float:
    """Ratio of radiation to gravitational force for a spherical grain.

    beta = 3 L Q_pr / (16 pi G M c rho s)
    """
    return 3.*source_luminosity*Q_pr/(16.*np.pi*G*source_mass*c*density*radius)
