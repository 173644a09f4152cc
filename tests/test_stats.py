# imports
import pytest
import numpy as np
from drugcomb_sensitivity.stats.core import (
    P_VALUE_FLOOR,
    approximate_p_value,
    format_p_value,
    summarize_field,
    summarize_iterations,
)

# Test p-values
def test_format_p_value():
    assert format_p_value(0.000123456) == '1.23e-04'
    assert format_p_value(0.5) == '5.00e-01'
    assert format_p_value(0.0) == P_VALUE_FLOOR
    assert format_p_value(np.nan) == 'nan'

def test_approximate_p_value():
    values = [1.0, 3.0]
    z = 2.0 / np.std(values, ddof=1)
    assert approximate_p_value(values) == pytest.approx(np.exp(-0.717 * z - 0.416 * z ** 2))

def test_approximate_p_value_without_spread():
    """
    Constant non-zero values underflow to 0, constant zeros are undefined
    """
    assert approximate_p_value([2.0, 2.0, 2.0]) == 0.0
    assert np.isnan(approximate_p_value([0.0, 0.0]))

def test_approximate_p_value_single_value():
    """
    A single value carries no evidence about the mean
    """
    assert np.isnan(approximate_p_value([5.0]))
    assert np.isnan(approximate_p_value([]))
    summary = summarize_field([42.0])
    assert summary.sd == 0
    assert summary.p_value == 'nan'

# Test field summaries
def test_summarize_field():
    values = [1.0, 2.0, 3.0, 4.0]
    summary = summarize_field(values)
    sd = np.std(values, ddof=1)
    assert summary.mean == 2.5
    assert summary.sd == pytest.approx(sd)
    assert summary.sem == pytest.approx(sd / 2)
    assert summary.ci_left == pytest.approx(np.percentile(values, 2.5))
    assert summary.ci_right == pytest.approx(np.percentile(values, 97.5))

def test_summarize_single_iteration():
    """
    A single iteration has no spread and a collapsed interval
    """
    summary = summarize_field([42.0])
    assert summary.sd == 0
    assert summary.sem == 0
    assert summary.ci_left == summary.ci_right == summary.mean == 42.0

# Test block statistics
def test_summarize_iterations_layout():
    """
    Statistics are grouped by statistic, then p-values follow
    """
    stats = summarize_iterations(7, [{'ri_1': 1.0, 'css': 2.0}, {'ri_1': 3.0, 'css': 4.0}])
    assert stats.iterations == 2
    assert stats.means == {'ri_1': 2.0, 'css': 3.0}
    assert list(stats.to_dict()) == [
        'block_id',
        'ri_1_mean', 'css_mean',
        'ri_1_sd', 'css_sd',
        'ri_1_sem', 'css_sem',
        'ri_1_ci_left', 'css_ci_left',
        'ri_1_ci_right', 'css_ci_right',
        'ri_1_p_value', 'css_p_value',
    ]
    df = stats.to_dataframe()
    assert len(df) == 1
    assert df.loc[0, 'block_id'] == 7

def test_summarize_iterations_requires_records():
    with pytest.raises(ValueError):
        summarize_iterations(1, [])
