"""
Bootstrap resampling of replicated dose-response blocks.

Every (block, iteration) task draws from its own random stream derived from
the run seed, so iterations can run in any order or in parallel and still
reproduce the same draws.

Functions
---------
block_key : Stable non-negative integer for a block identifier
iteration_rng : Random generator for one bootstrap iteration of one block
bootstrap_block : Draw one replicate per dose combination
"""

from __future__ import annotations

import zlib
from typing import Any

import numpy as np
import pandas as pd

from drugcomb_sensitivity.data import conc_columns


def block_key(block_id: Any) -> int:
    """
    Map a block identifier to a stable non-negative integer.

    Non-negative integers are used as is; anything else is hashed with
    CRC32 of its string form (Python's hash() is salted per process).
    """
    if isinstance(block_id, (int, np.integer)) and not isinstance(block_id, bool) and block_id >= 0:
        return int(block_id)
    return zlib.crc32(str(block_id).encode("utf-8"))


def iteration_rng(seed: int, block_id: Any, iteration_index: int) -> np.random.Generator:
    """
    Random generator for one bootstrap iteration of one block.

    Parameters
    ----------
    seed : int
        Run-level seed (non-negative).
    block_id : Any
        Block being resampled.
    iteration_index : int
        Zero-based bootstrap iteration.

    Returns
    -------
    numpy.random.Generator
        Generator seeded from (seed, block_id, iteration_index).
    """
    seq = np.random.SeedSequence(entropy=seed, spawn_key=(block_key(block_id), iteration_index))
    return np.random.default_rng(seq)


def bootstrap_block(response: pd.DataFrame, rng: np.random.Generator) -> pd.DataFrame:
    """
    Resample a block by drawing one replicate for every dose combination.

    Each dose combination contributes exactly one row, picked uniformly from
    its replicates, so the resample is a single dose-response matrix.

    Parameters
    ----------
    response : pd.DataFrame
        One block's response table, possibly with repeated dose combinations.
    rng : numpy.random.Generator
        Source of the draws.

    Returns
    -------
    pd.DataFrame
        The resampled table, ordered by dose combination.
    """
    codes = response.groupby(conc_columns(response), sort=True).ngroup().to_numpy()
    n_groups = codes.max() + 1
    members = [np.flatnonzero(codes == g) for g in range(n_groups)]
    sizes = np.array([len(m) for m in members])
    picks = rng.integers(0, sizes)
    rows = [m[pick] for m, pick in zip(members, picks)]
    return response.iloc[rows].reset_index(drop=True)
