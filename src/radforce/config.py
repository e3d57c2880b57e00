from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List
import json
import numpy as np


# speed of light in AU / (yr/2pi), the usual G=1 unit system (AU, Msun, yr/2pi)
C_AU_YR2PI = 10065.32


@dataclass(frozen=True)
class RadiationParams:
    # speed of light in simulation units
    c: float = C_AU_YR2PI
    # index of the radiation source (the star) in the particle array
    source_index: int = 0

    def __post_init__(self):
        if not np.isfinite(self.c) or self.c <= 0.0:
            raise ValueError(f"c must be positive and finite, got {self.c!r}")
        idx = self.source_index
        # JSON may hand us 1.0; bools are rejected even though they are ints
        if (isinstance(idx, (bool, np.bool_))
                or not isinstance(idx, (int, float, np.integer, np.floating))
                or not np.isfinite(idx) or int(idx) != idx or idx < 0):
            raise ValueError(f"source_index must be a non-negative integer, got {idx!r}")
        object.__setattr__(self, "source_index", int(idx))


@dataclass(frozen=True)
class OutputParams:
    out_dir: str = "out_scan"
    csv_name: str = "runs.csv"


@dataclass(frozen=True)
class ParallelParams:
    workers: int = 0  # 0 => use os.cpu_count()
    chunksize: int = 16


@dataclass(frozen=True)
class ScanConfig:
    # grid axes
    r_list: List[float]
    rdot_list: List[float]
    beta_list: List[float]

    # source / units
    source_mass: float = 1.0
    G: float = 1.0
    c: float = C_AU_YR2PI

    # tangential speed of the grain (same for every grid point)
    vt: float = 0.0

    output: OutputParams = field(default_factory=OutputParams)
    parallel: ParallelParams = field(default_factory=ParallelParams)

    @property
    def radiation(self) -> RadiationParams:
        return RadiationParams(c=float(self.c), source_index=0)

    @property
    def n_points(self) -> int:
        return len(self.r_list) * len(self.rdot_list) * len(self.beta_list)


def _dataclass_from_dict(cls, d: Dict[str, Any]):
    # allow passing dict for nested dataclasses
    kwargs = {}
    for f in cls.__dataclass_fields__.values():  # type: ignore
        if f.name not in d:
            continue
        val = d[f.name]
        sub = _NESTED.get(f.name)
        if sub is not None and isinstance(val, dict):
            kwargs[f.name] = _dataclass_from_dict(sub, val)
        else:
            kwargs[f.name] = val
    return cls(**kwargs)  # type: ignore


# field annotations are strings under `from __future__ import annotations`
_NESTED = {"output": OutputParams, "parallel": ParallelParams}


def load_radiation_params(path: str) -> RadiationParams:
    with open(path, "r", encoding="utf-8") as f:
        d = json.load(f)
    return _dataclass_from_dict(RadiationParams, d)


def load_scan_config(path: str) -> ScanConfig:
    with open(path, "r", encoding="utf-8") as f:
        d = json.load(f)
    return _dataclass_from_dict(ScanConfig, d)


def to_json(obj: Any, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(asdict(obj), f, indent=2)
