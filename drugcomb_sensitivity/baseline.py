# imports
## batteries
from typing import List
## 3rd party
import numpy as np
import pandas as pd
## package
from drugcomb_sensitivity.logger import init_custom_logger
from drugcomb_sensitivity.errors import DegenerateCurveError
from drugcomb_sensitivity.curves.fitting import fit_dose_response, prepare_curve
from drugcomb_sensitivity.data import extract_single_drug

# Initialize logger
_logger = init_custom_logger(__name__)

BASELINE_METHODS = ('non', 'part', 'all')


def _curve_minimum(curve: pd.DataFrame) -> float:
    # lowest fitted response at the tested doses; falls back to the observations
    dose, response = prepare_curve(curve)
    if len(dose) == 0:
        return float(curve['response'].min())
    try:
        model = fit_dose_response(curve)
    except DegenerateCurveError:
        return float(np.min(response))
    return float(np.min(model.predict(dose)))


def find_baseline(response: pd.DataFrame) -> float:
    """
    Estimates the response baseline of a block.

    Args:
        response: One block's response table.
    Returns:
        The mean, over drugs, of the minimum fitted single-drug response.
    """
    minima: List[float] = [_curve_minimum(curve) for curve in extract_single_drug(response).values()]
    return float(np.mean(minima))


def correct_baseline(response: pd.DataFrame, method: str = 'non') -> pd.DataFrame:
    """
    Corrects the baseline of one block's responses.

    Each corrected value becomes response - ((100 - response) / 100) * baseline,
    so the correction fades out towards 100% inhibition.

    Args:
        response: One block's response table with 'conc<i>' and 'response'.
        method: "non" (no correction), "part" (only negative responses) or
            "all" (every response).
    Returns:
        A corrected copy of the table (the input itself when method is "non").
    """
    if method not in BASELINE_METHODS:
        raise ValueError(f'method must be one of {BASELINE_METHODS}, got {method!r}')
    if method == 'non':
        return response

    baseline = find_baseline(response)
    _logger.debug(f'Baseline for correction: {baseline:.4f}')
    corrected = response.copy()
    if method == 'part':
        index = corrected['response'] < 0
    else:
        index = pd.Series(True, index=corrected.index)
    values = corrected.loc[index, 'response']
    corrected.loc[index, 'response'] = values - ((100 - values) / 100) * baseline
    return corrected
