import logging

import numpy as np
import pytest

from radforce.config import RadiationParams
from radforce.particles import Simulation, BETA
from radforce.radiation import (
    radiation_forces,
    radiation_forces_on_particles,
    radiation_contributions,
    tagged_indices,
    calc_beta,
)


def make_star_and_grain(pos, vel=(0.0, 0.0, 0.0), beta=0.01, G=1.0, M=1.0):
    sim = Simulation.empty(G=G)
    sim.add(M, (0.0, 0.0, 0.0))
    if beta is None:
        sim.add(0.0, pos, vel)
    else:
        sim.add(0.0, pos, vel, beta=beta)
    return sim


def make_random_system(n=60, seed=0, tag_every=3):
    rng = np.random.default_rng(seed)
    sim = Simulation.empty(G=1.0)
    sim.add(1.0, rng.normal(scale=0.1, size=3), rng.normal(scale=0.01, size=3))
    for k in range(n):
        pos = rng.uniform(-10.0, 10.0, size=3)
        vel = rng.normal(scale=50.0, size=3)
        if k % tag_every == 0:
            sim.add(1e-10, pos, vel, beta=float(rng.uniform(0.001, 0.5)))
        else:
            sim.add(1e-10, pos, vel)
    return sim


def test_untagged_particle_is_noop():
    sim = make_star_and_grain((1.0, 0.0, 0.0), beta=None)
    sim.acc[0] = (0.5, -0.25, 1.0)
    radiation_forces(sim, RadiationParams(c=100.0))
    assert np.array_equal(sim.acc[0], [0.5, -0.25, 1.0])


def test_reference_scenario():
    sim = make_star_and_grain((1.0, 0.0, 0.0), beta=0.01)
    radiation_forces(sim, RadiationParams(c=10000.0, source_index=0))
    np.testing.assert_allclose(sim.acc[0], [0.01, 0.0, 0.0], rtol=0, atol=1e-15)


def test_particle_at_rest_points_along_separation():
    beta, G, M = 0.2, 2.0, 3.0
    sim = make_star_and_grain((3.0, 4.0, 0.0), beta=beta, G=G, M=M)
    radiation_forces(sim, RadiationParams(c=1.0))
    a_rad = beta*G*M/25.0
    np.testing.assert_allclose(sim.acc[0], [a_rad*0.6, a_rad*0.8, 0.0], rtol=1e-14, atol=1e-15)


def test_radial_velocity_sign_symmetric_about_one():
    c, u = 100.0, 7.0
    out = []
    for sign in (+1.0, -1.0):
        sim = make_star_and_grain((2.0, 0.0, 0.0), vel=(sign*u, 0.0, 0.0), beta=0.1)
        radiation_forces(sim, RadiationParams(c=c))
        out.append(sim.acc[0, 0])
    a_rad = 0.1/4.0
    # radial motion along x: ax = a_rad*((1 - rdot/c) - rdot/c)
    np.testing.assert_allclose(out[0], a_rad*(1.0 - 2.0*u/c), rtol=1e-14)
    np.testing.assert_allclose(out[1], a_rad*(1.0 + 2.0*u/c), rtol=1e-14)
    np.testing.assert_allclose(0.5*(out[0] + out[1]), a_rad, rtol=1e-14)


def test_tangential_velocity_gives_drag_term():
    c, vt = 50.0, 3.0
    sim = make_star_and_grain((1.0, 0.0, 0.0), vel=(0.0, vt, 0.0), beta=0.05)
    radiation_forces(sim, RadiationParams(c=c))
    np.testing.assert_allclose(sim.acc[0], [0.05, -0.05*vt/c, 0.0], rtol=1e-14)


def test_accumulation_is_additive():
    rad = RadiationParams(c=30.0)
    sim = Simulation.empty()
    sim.add(1.0, (0.0, 0.0, 0.0))
    sim.add(0.0, (1.0, 2.0, -1.0), (0.3, -0.1, 0.2), beta=0.02)
    sim.add(0.0, (-3.0, 0.5, 2.0), (-0.5, 0.4, 0.0), beta=0.3)
    radiation_forces(sim, rad)

    split = Simulation.empty()
    split.add(1.0, (0.0, 0.0, 0.0))
    split.add(0.0, (1.0, 2.0, -1.0), (0.3, -0.1, 0.2), beta=0.02)
    split.add(0.0, (-3.0, 0.5, 2.0), (-0.5, 0.4, 0.0))
    radiation_forces(split, rad)
    split.params.remove(1, BETA)
    split.params.set(2, BETA, 0.3)
    radiation_forces(split, rad)

    np.testing.assert_allclose(sim.acc[0], split.acc[0], rtol=1e-13)


def test_composes_with_existing_acceleration():
    sim = make_star_and_grain((1.0, 0.0, 0.0), beta=0.01)
    sim.acc[0] = (1.0, 2.0, 3.0)
    radiation_forces(sim, RadiationParams(c=10000.0))
    np.testing.assert_allclose(sim.acc[0], [1.01, 2.0, 3.0], rtol=1e-14)


def test_only_source_is_mutated():
    sim = make_random_system()
    sim.acc[:] = 0.25
    radiation_forces(sim, RadiationParams(c=1000.0))
    assert np.all(sim.acc[1:] == 0.25)
    assert not np.allclose(sim.acc[0], 0.25)


def test_source_with_beta_skips_itself():
    sim = Simulation.empty()
    sim.add(1.0, (0.0, 0.0, 0.0), beta=0.9)
    radiation_forces(sim, RadiationParams(c=10.0))
    assert np.array_equal(sim.acc[0], [0.0, 0.0, 0.0])
    assert tagged_indices(sim, RadiationParams(c=10.0)) == []


def test_nonzero_source_index():
    sim = Simulation.empty()
    sim.add(0.0, (6.0, 0.0, 0.0), beta=0.01)
    sim.add(4.0, (5.0, 0.0, 0.0))
    radiation_forces(sim, RadiationParams(c=1e8, source_index=1))
    np.testing.assert_allclose(sim.acc[1], [0.04, 0.0, 0.0], rtol=1e-7)
    assert np.array_equal(sim.acc[0], [0.0, 0.0, 0.0])


def test_variational_particles_are_ignored():
    mass = [1.0, 0.0, 0.0]
    pos = [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [2.0, 0.0, 0.0]]
    vel = np.zeros((3, 3))
    sim = Simulation.from_arrays(mass, pos, vel, N_var=1)
    sim.params.set(1, BETA, 0.01)
    sim.params.set(2, BETA, 0.5)
    rad = RadiationParams(c=10000.0)
    assert tagged_indices(sim, rad) == [1]

    radiation_forces(sim, rad)
    np.testing.assert_allclose(sim.acc[0], [0.01, 0.0, 0.0], atol=1e-15)

    radiation_forces_on_particles(sim, rad)
    assert np.array_equal(sim.acc[2], [0.0, 0.0, 0.0])


def test_parallel_matches_serial():
    rad = RadiationParams(c=500.0)
    serial = make_random_system(n=200, seed=3)
    parallel = make_random_system(n=200, seed=3)
    radiation_forces(serial, rad)
    radiation_forces(parallel, rad, workers=4)
    _, a = radiation_contributions(serial, rad)
    np.testing.assert_allclose(parallel.acc[0], serial.acc[0], rtol=1e-12, atol=1e-12*np.abs(a).max())
    assert np.all(parallel.acc[1:] == 0.0)


def test_parallel_with_more_workers_than_particles():
    rad = RadiationParams(c=10000.0)
    sim = make_star_and_grain((1.0, 0.0, 0.0), beta=0.01)
    radiation_forces(sim, rad, workers=8)
    np.testing.assert_allclose(sim.acc[0], [0.01, 0.0, 0.0], atol=1e-15)


def test_contributions_sum_matches_kernel():
    rad = RadiationParams(c=200.0)
    sim = make_random_system(seed=7)
    idx, a = radiation_contributions(sim, rad)
    assert idx.tolist() == tagged_indices(sim, rad)
    assert a.shape == (len(idx), 3)
    assert np.all(sim.acc == 0.0)

    radiation_forces(sim, rad)
    np.testing.assert_allclose(a.sum(axis=0), sim.acc[0], rtol=1e-12, atol=1e-12*np.abs(a).max())


def test_contributions_empty_when_nothing_tagged():
    sim = make_star_and_grain((1.0, 0.0, 0.0), beta=None)
    idx, a = radiation_contributions(sim, RadiationParams())
    assert idx.size == 0
    assert a.shape == (0, 3)


def test_force_on_particles_mutates_only_tagged():
    rad = RadiationParams(c=10000.0)
    sim = Simulation.empty()
    sim.add(1.0, (0.0, 0.0, 0.0))
    sim.add(0.0, (1.0, 0.0, 0.0), beta=0.01)
    sim.add(0.0, (0.0, 2.0, 0.0))
    radiation_forces_on_particles(sim, rad)
    np.testing.assert_allclose(sim.acc[1], [0.01, 0.0, 0.0], atol=1e-15)
    assert np.array_equal(sim.acc[0], [0.0, 0.0, 0.0])
    assert np.array_equal(sim.acc[2], [0.0, 0.0, 0.0])


def test_coincident_positions_propagate_nonfinite(caplog):
    sim = make_star_and_grain((0.0, 0.0, 0.0), beta=0.01)
    with caplog.at_level(logging.WARNING, logger="radforce.radiation"):
        radiation_forces(sim, RadiationParams(c=10.0))
    assert not np.all(np.isfinite(sim.acc[0]))
    assert "coincide" in caplog.text


def test_coincident_positions_parallel_logs(caplog):
    sim = make_star_and_grain((0.0, 0.0, 0.0), beta=0.01)
    with caplog.at_level(logging.WARNING, logger="radforce.radiation"):
        radiation_forces(sim, RadiationParams(c=10.0), workers=2)
    assert not np.all(np.isfinite(sim.acc[0]))
    assert "[1]" in caplog.text


def test_calc_beta():
    b = calc_beta(G=1.0, c=1.0, source_mass=1.0, source_luminosity=16.0*np.pi/3.0,
                  radius=1.0, density=1.0, Q_pr=1.0)
    assert b == pytest.approx(1.0)
    b2 = calc_beta(G=1.0, c=1.0, source_mass=1.0, source_luminosity=16.0*np.pi/3.0,
                   radius=4.0, density=1.0, Q_pr=0.5)
    assert b2 == pytest.approx(0.125)


if __name__ == "__main__":
    test_reference_scenario()
    test_parallel_matches_serial()
    print("OK")


def test_parallel_chunks_use_array_path(monkeypatch):
    import radforce.radiation as radiation

    def scalar_loop(*args, **kwargs):
        raise AssertionError("scalar loop used on the thread pool")

    monkeypatch.setattr(radiation, "_partial_sum", scalar_loop)
    rad = RadiationParams(c=300.0)
    sim = make_random_system(n=120, seed=11)
    sim.acc[0] = (0.1, -0.2, 0.3)
    _, a = radiation_contributions(sim, rad)
    radiation_forces(sim, rad, workers=3)
    np.testing.assert_allclose(sim.acc[0], np.array([0.1, -0.2, 0.3]) + a.sum(axis=0),
                               rtol=1e-12, atol=1e-12*np.abs(a).max())
