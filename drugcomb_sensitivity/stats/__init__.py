"""
Bootstrap statistics for replicated sensitivity scores.

Modules
-------
core : Per-field summaries (mean, sd, sem, CI, approximate p-value)
bootstrap : Reproducible resampling of replicated blocks
test_utils : Synthetic dose-response data with known parameters
"""

from .core import (
    FieldSummary,
    SensitivityStatistics,
    approximate_p_value,
    format_p_value,
    summarize_field,
    summarize_iterations,
)

from .bootstrap import (
    bootstrap_block,
    iteration_rng,
)

__all__ = [
    'FieldSummary',
    'SensitivityStatistics',
    'approximate_p_value',
    'format_p_value',
    'summarize_field',
    'summarize_iterations',
    'bootstrap_block',
    'iteration_rng',
]
