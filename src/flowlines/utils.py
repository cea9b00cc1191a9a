# src/flowlines/utils.py
from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
from numba import njit

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    tomllib = None  # type: ignore


@dataclass
class FlowLinesResult:
    """Common container for a finished set of flow lines."""

    points: Optional[np.ndarray] = None
    offsets: Optional[np.ndarray] = None
    lengths: Optional[np.ndarray] = None
    meta: Optional[Dict[str, Any]] = None

    @classmethod
    def from_arrays(
        cls, lines: List[np.ndarray], lengths: List[float], meta: Optional[Dict[str, Any]] = None
    ) -> "FlowLinesResult":
        """Pack per-line (N_i, 2) arrays into one ragged layout."""
        counts = [len(line) for line in lines]
        offsets = np.zeros(len(lines) + 1, dtype=np.int64)
        offsets[1:] = np.cumsum(counts)
        if lines:
            points = np.vstack([np.asarray(line, dtype=np.float64).reshape(-1, 2) for line in lines])
        else:
            points = np.zeros((0, 2), dtype=np.float64)
        return cls(
            points=points,
            offsets=offsets,
            lengths=np.asarray(lengths, dtype=np.float64),
            meta=meta or {},
        )

    @property
    def num_lines(self) -> int:
        if self.offsets is None:
            return 0
        return int(self.offsets.shape[0]) - 1

    def lines(self) -> List[np.ndarray]:
        if self.points is None or self.offsets is None:
            return []
        return [
            self.points[self.offsets[i] : self.offsets[i + 1]]
            for i in range(self.num_lines)
        ]

    def ensure_meta(self) -> Dict[str, Any]:
        if self.meta is None:
            self.meta = {}
        return self.meta


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Random generator for seed placement; `None` draws fresh OS entropy."""
    return np.random.default_rng(seed)


def now_str() -> str:
    return time.strftime("%Y%m%d-%H%M%S")


###############################################################################
# Shuffle
###############################################################################


@njit(cache=True)
def _fisher_yates(ixs: np.ndarray, draws: np.ndarray) -> None:
    # draws[k] in [0, 1) picks the partner for position n-1-k
    n = ixs.shape[0]
    for k in range(n - 1):
        curr = n - 1 - k
        rand = int(draws[k] * (curr + 1))
        if rand > curr:
            rand = curr
        tmp = ixs[curr]
        ixs[curr] = ixs[rand]
        ixs[rand] = tmp


def shuffle_indices(ixs: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """
    Uniform in-place permutation of `ixs` (Fisher-Yates).

    All randomness is drawn from `rng` up front, so two generators with the
    same seed always produce the same order. Returns `ixs` for chaining.
    """
    n = ixs.shape[0]
    if n > 1:
        draws = rng.random(n - 1)
        _fisher_yates(ixs, draws)
    return ixs


###############################################################################
# Persistence
###############################################################################


def save_flowlines(
    path: str | os.PathLike[str], result: FlowLinesResult, *, overwrite: bool = True
) -> None:
    """Serialize a FlowLinesResult to a compressed .npz."""
    if not overwrite and Path(path).exists():
        raise FileExistsError(f"{path} already exists")
    out_dir = Path(path).parent
    out_dir.mkdir(parents=True, exist_ok=True)
    out: Dict[str, Any] = {}
    if result.points is not None:
        out["points"] = np.asarray(result.points, dtype=np.float64)
    if result.offsets is not None:
        out["offsets"] = np.asarray(result.offsets, dtype=np.int64)
    if result.lengths is not None:
        out["lengths"] = np.asarray(result.lengths, dtype=np.float64)
    out["meta"] = dict(result.meta or {})
    np.savez_compressed(path, **out)


def load_flowlines(path: str | os.PathLike[str]) -> FlowLinesResult:
    """Load a .npz written by `save_flowlines`."""
    data = np.load(path, allow_pickle=True)
    points = data["points"].astype(np.float64) if "points" in data else None
    offsets = data["offsets"].astype(np.int64) if "offsets" in data else None
    lengths = data["lengths"].astype(np.float64) if "lengths" in data else None
    meta: Dict[str, Any] = {}
    if "meta" in data:
        meta_raw = data["meta"]
        try:
            meta = meta_raw.item()
        except ValueError:
            meta = {}
    return FlowLinesResult(points=points, offsets=offsets, lengths=lengths, meta=meta)


def load_params(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """
    Read `FlowConfig` keyword values from a JSON or TOML file.

    The file must hold a single table whose keys are `FlowConfig` field names
    (`width`, `step_size`, `level_count`, ...); the result is meant for
    `FlowConfig.from_dict` or `run_model`, which reject unknown keys.
    """
    path = str(path)
    with open(path, "rb") as fh:
        data = fh.read()
    suffix = Path(path).suffix.lower()
    if suffix in {".json", ""}:
        params = json.loads(data.decode("utf-8"))
    elif suffix in {".toml", ".tml"}:
        if tomllib is None:
            raise RuntimeError(
                f"Cannot read flow parameters from {path}: TOML needs Python 3.11+ (tomllib)"
            )
        params = tomllib.loads(data.decode("utf-8"))
    else:
        raise ValueError(
            f"Unsupported flow parameter file {path!r}: expected .json or .toml, got {suffix!r}"
        )
    if not isinstance(params, dict):
        raise ValueError(
            f"Flow parameter file {path!r} must hold a table of FlowConfig values, "
            f"got {type(params).__name__}"
        )
    return params
