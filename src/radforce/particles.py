from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)

BETA = "beta"


class ParticleParams:
    """Sparse per-particle parameters, keyed by particle index and name.

    Lookups of a missing (index, key) pair return None.
    """

    def __init__(self):
        self._store: Dict[int, Dict[str, float]] = {}

    def set(self, i: int, key: str, value: float) -> None:
        self._store.setdefault(int(i), {})[key] = float(value)

    def get(self, i: int, key: str) -> Optional[float]:
        entry = self._store.get(int(i))
        if entry is None:
            return None
        return entry.get(key)

    def remove(self, i: int, key: str) -> None:
        entry = self._store.get(int(i))
        if entry is None or key not in entry:
            return
        del entry[key]
        if not entry:
            del self._store[int(i)]

    def indices_with(self, key: str) -> List[int]:
        return sorted(i for i, entry in self._store.items() if key in entry)

    def items(self) -> Iterator[Tuple[int, str, float]]:
        """(index, key, value) triples, ordered by index then key."""
        for i in sorted(self._store):
            for key in sorted(self._store[i]):
                yield i, key, self._store[i][key]

    def __len__(self) -> int:
        return len(self._store)


class Simulation:
    """Particle state the radiation kernels read and write.

    Arrays are float64: mass (N,), pos/vel/acc (N,3). The last N_var rows are
    variational particles and take no part in physical force passes.
    """

    def __init__(self,
                 mass: NDArray[np.float64],
                 pos: NDArray[np.float64],
                 vel: NDArray[np.float64],
                 G: float = 1.0,
                 N_var: int = 0,
                 acc: Optional[NDArray[np.float64]] = None):
        self.mass = np.asarray(mass, dtype=np.float64).reshape(-1).copy()
        n = self.mass.shape[0]
        self.pos = np.asarray(pos, dtype=np.float64).reshape(-1, 3).copy()
        self.vel = np.asarray(vel, dtype=np.float64).reshape(-1, 3).copy()
        if self.pos.shape != (n, 3) or self.vel.shape != (n, 3):
            raise ValueError(f"pos/vel must have shape ({n}, 3), got {self.pos.shape} and {self.vel.shape}")
        if acc is None:
            self.acc = np.zeros((n, 3), dtype=np.float64)
        else:
            self.acc = np.asarray(acc, dtype=np.float64).reshape(-1, 3).copy()
            if self.acc.shape != (n, 3):
                raise ValueError(f"acc must have shape ({n}, 3), got {self.acc.shape}")
        if not 0 <= int(N_var) <= n:
            raise ValueError(f"N_var must lie in [0, {n}], got {N_var}")
        self.G = float(G)
        self.N_var = int(N_var)
        self.params = ParticleParams()

    @classmethod
    def from_arrays(cls, mass, pos, vel, G: float = 1.0, N_var: int = 0) -> "Simulation":
        return cls(mass, pos, vel, G=G, N_var=N_var)

    @classmethod
    def empty(cls, G: float = 1.0) -> "Simulation":
        return cls(np.zeros(0), np.zeros((0, 3)), np.zeros((0, 3)), G=G)

    @property
    def N(self) -> int:
        return int(self.mass.shape[0])

    @property
    def N_real(self) -> int:
        return self.N - self.N_var

    def add(self, m: float, pos, vel=(0.0, 0.0, 0.0), **params: float) -> int:
        """Append a real particle and return its index.

        Extra keyword arguments are stored in `params` (e.g. beta=0.01).
        """
        if self.N_var:
            raise ValueError("cannot add real particles once variational particles are present")
        i = self.N
        self.mass = np.append(self.mass, float(m))
        self.pos = np.vstack([self.pos, np.asarray(pos, dtype=np.float64).reshape(1, 3)])
        self.vel = np.vstack([self.vel, np.asarray(vel, dtype=np.float64).reshape(1, 3)])
        self.acc = np.vstack([self.acc, np.zeros((1, 3))])
        for key, value in params.items():
            self.params.set(i, key, value)
        return i

    def reset_accelerations(self) -> None:
        self.acc[:] = 0.0


def save_snapshot(path: str, sim: Simulation) -> None:
    """Write sim to a compressed npz, including every ParticleParams entry."""
    entries = list(sim.params.items())
    np.savez_compressed(path,
                        G=np.float64(sim.G),
                        N_var=np.int64(sim.N_var),
                        mass=sim.mass, pos=sim.pos, vel=sim.vel, acc=sim.acc,
                        param_index=np.array([e[0] for e in entries], dtype=np.int64),
                        param_key=np.array([e[1] for e in entries], dtype=np.str_),
                        param_value=np.array([e[2] for e in entries], dtype=np.float64))
    logger.info("saved snapshot with %d particles (%d tagged) to %s",
                sim.N, len(sim.params.indices_with(BETA)), path)


def load_snapshot(path: str) -> Simulation:
    with np.load(path) as data:
        sim = Simulation(data["mass"], data["pos"], data["vel"],
                         G=float(data["G"]), N_var=int(data["N_var"]), acc=data["acc"])
        for i, key, value in zip(data["param_index"].tolist(), data["param_key"].tolist(),
                                 data["param_value"].tolist()):
            sim.params.set(i, key, value)
    logger.info("loaded snapshot with %d particles from %s", sim.N, path)
    return sim
