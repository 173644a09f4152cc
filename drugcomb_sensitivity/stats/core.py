"""
Summary statistics for bootstrapped sensitivity scores.

Replicated blocks are scored once per bootstrap iteration. This module
reduces the per-iteration scores of a block to the reported statistics.

Classes
-------
FieldSummary : Statistics of one score field across iterations
SensitivityStatistics : Statistics of every score field of one block

Functions
---------
approximate_p_value : Normal-tail approximation of a two-sided p-value
format_p_value : Display formatting for p-values
summarize_field : Statistics of one field's iteration values
summarize_iterations : Statistics of every field of one block
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

import numpy as np
import pandas as pd

# Shown instead of a p-value that underflows to exactly zero
P_VALUE_FLOOR = "< 2e-324"
STAT_SUFFIXES = ("mean", "sd", "sem", "ci_left", "ci_right")


def approximate_p_value(values: Sequence[float]) -> float:
    """
    Approximate two-sided p-value for the mean of bootstrap values being zero.

    Uses p = exp(-0.717 * z - 0.416 * z^2) with z = |mean| / sd. This is a
    closed-form approximation of the normal tail probability, kept for
    compatibility with existing sensitivity score tables. It is not an exact
    test and should not be reused as a general-purpose one.

    Parameters
    ----------
    values : sequence of float
        Per-iteration values of one score field.

    Returns
    -------
    float
        The approximate p-value. NaN for fewer than two values, 0.0 when the
        sd is zero and the mean is not, NaN when both are zero.
    """
    values = np.asarray(values, dtype=float)
    if len(values) < 2:
        return np.nan
    sd = _sample_sd(values)
    with np.errstate(divide="ignore", invalid="ignore"):
        z = np.abs(np.mean(values)) / np.float64(sd)
        return float(np.exp(-0.717 * z - 0.416 * z ** 2))


def format_p_value(p: float) -> str:
    """
    Format a p-value in scientific notation with two decimals.

    Examples
    --------
    >>> format_p_value(0.000123456)
    '1.23e-04'
    >>> format_p_value(0.0)
    '< 2e-324'
    """
    if np.isnan(p):
        return "nan"
    if p == 0:
        return P_VALUE_FLOOR
    return f"{p:.2e}"


def _sample_sd(values: np.ndarray) -> float:
    # a single iteration carries no spread
    if len(values) < 2:
        return 0.0
    return float(np.std(values, ddof=1))


@dataclass(frozen=True)
class FieldSummary:
    """
    Statistics of one score field across bootstrap iterations.

    Attributes
    ----------
    mean : float
        Mean over iterations.
    sd : float
        Sample standard deviation (0 for a single iteration).
    sem : float
        Standard error of the mean, sd / sqrt(iterations).
    ci_left, ci_right : float
        2.5th and 97.5th percentiles of the iteration values.
    p_value : str
        Formatted approximate p-value (see `approximate_p_value`).
    """

    mean: float
    sd: float
    sem: float
    ci_left: float
    ci_right: float
    p_value: str


def summarize_field(values: Sequence[float]) -> FieldSummary:
    """
    Compute the statistics of one field's iteration values.

    Parameters
    ----------
    values : sequence of float
        One value per bootstrap iteration.

    Returns
    -------
    FieldSummary
    """
    values = np.asarray(values, dtype=float)
    sd = _sample_sd(values)
    ci_left, ci_right = np.percentile(values, [2.5, 97.5])
    return FieldSummary(
        mean=float(np.mean(values)),
        sd=sd,
        sem=float(sd / np.sqrt(len(values))),
        ci_left=float(ci_left),
        ci_right=float(ci_right),
        p_value=format_p_value(approximate_p_value(values)),
    )


@dataclass
class SensitivityStatistics:
    """
    Bootstrap statistics of every score field of one block.

    Attributes
    ----------
    block_id : Any
        Block the statistics belong to.
    iterations : int
        Number of bootstrap iterations summarized.
    fields : dict
        FieldSummary per score field name, in output order.

    Examples
    --------
    >>> stats = summarize_iterations(1, [{"ri_1": 10.0}, {"ri_1": 12.0}])
    >>> stats.fields["ri_1"].mean
    11.0
    """

    block_id: Any
    iterations: int
    fields: Dict[str, FieldSummary] = field(default_factory=dict)

    @property
    def means(self) -> Dict[str, float]:
        """Mean of each field, i.e. the scores reported for the block."""
        return {name: summary.mean for name, summary in self.fields.items()}

    def to_dict(self) -> Dict[str, Any]:
        """
        Flatten to one record: block_id, then `<field>_<stat>` for every
        statistic, then `<field>_p_value`.
        """
        record: Dict[str, Any] = {"block_id": self.block_id}
        for suffix in STAT_SUFFIXES:
            for name, summary in self.fields.items():
                record[f"{name}_{suffix}"] = getattr(summary, suffix)
        for name, summary in self.fields.items():
            record[f"{name}_p_value"] = summary.p_value
        return record

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to a single-row DataFrame."""
        return pd.DataFrame([self.to_dict()])

    def __repr__(self) -> str:
        return (f"SensitivityStatistics(block_id={self.block_id!r}, "
                f"iterations={self.iterations}, fields={list(self.fields)})")


def summarize_iterations(block_id: Any, records: List[Mapping[str, float]]) -> SensitivityStatistics:
    """
    Reduce per-iteration score records of a block to its statistics.

    Parameters
    ----------
    block_id : Any
        Block the records belong to.
    records : list of dict
        One record per bootstrap iteration, all with the same field names.

    Returns
    -------
    SensitivityStatistics
    """
    if not records:
        raise ValueError("At least one iteration record is required")

    names = list(records[0].keys())
    fields = {
        name: summarize_field([record[name] for record in records])
        for name in names
    }
    return SensitivityStatistics(block_id=block_id, iterations=len(records), fields=fields)
