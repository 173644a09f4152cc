# imports
import pytest
import pandas as pd
from drugcomb_sensitivity.baseline import correct_baseline, find_baseline

@pytest.fixture
def shifted_block(two_drug_block):
    """
    Two-drug block with every response lowered by 5, so low doses are negative
    """
    block = two_drug_block.copy()
    block['response'] = block['response'] - 5
    return block

# Test baseline estimation
def test_find_baseline(shifted_block):
    """
    The baseline is the mean minimum fitted single-drug response
    """
    # minimum responses at the lowest non-zero dose of each drug
    expected = ((100 / (1 + 3 / 0.1954) - 5) + (80 / (1 + 0.1954 ** -1.5) - 5)) / 2
    assert find_baseline(shifted_block) == pytest.approx(expected, abs=0.05)

# Test correction methods
def test_correct_baseline_non(shifted_block):
    """
    No correction returns the input untouched
    """
    assert correct_baseline(shifted_block, 'non') is shifted_block

def test_correct_baseline_all(shifted_block):
    """
    Every response is corrected
    """
    baseline = find_baseline(shifted_block)
    corrected = correct_baseline(shifted_block, 'all')
    values = shifted_block['response']
    expected = values - ((100 - values) / 100) * baseline
    pd.testing.assert_series_equal(corrected['response'], expected)

def test_correct_baseline_part(shifted_block):
    """
    Only negative responses are corrected
    """
    baseline = find_baseline(shifted_block)
    corrected = correct_baseline(shifted_block, 'part')
    negative = shifted_block['response'] < 0
    assert negative.any()
    pd.testing.assert_series_equal(corrected.loc[~negative, 'response'],
                                   shifted_block.loc[~negative, 'response'])
    values = shifted_block.loc[negative, 'response']
    pd.testing.assert_series_equal(corrected.loc[negative, 'response'],
                                   values - ((100 - values) / 100) * baseline)

def test_correct_baseline_does_not_mutate(shifted_block):
    before = shifted_block.copy()
    correct_baseline(shifted_block, 'all')
    pd.testing.assert_frame_equal(shifted_block, before)

def test_correct_baseline_invalid_method(shifted_block):
    with pytest.raises(ValueError):
        correct_baseline(shifted_block, 'some')
