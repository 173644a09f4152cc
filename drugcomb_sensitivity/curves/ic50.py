# imports
## batteries
from typing import Mapping, Union
## 3rd party
import numpy as np
import pandas as pd
## package
from drugcomb_sensitivity.logger import init_custom_logger
from drugcomb_sensitivity.errors import DegenerateCurveError, UnsupportedModelFamilyError
from drugcomb_sensitivity.curves.fitting import ModelFamily, fit_dose_response, prepare_curve

# Initialize logger
_logger = init_custom_logger(__name__)


def calculate_ic50(coef: Mapping[str, float], family: Union[ModelFamily, str],
                   max_conc: float) -> float:
    """
    Calculates the relative IC50 from fitted model coefficients.

    The IC50 is capped at the maximum tested concentration.

    Args:
        coef: Fitted coefficients with at least the key 'e'.
        family: Model family the coefficients belong to ("LL4" or "L4").
        max_conc: Maximum concentration in the dose-response data.
    Returns:
        The relative IC50.
    Raises:
        UnsupportedModelFamilyError: If `family` is not LL4 or L4.
    """
    try:
        family = ModelFamily(family)
    except ValueError:
        raise UnsupportedModelFamilyError(
            f"The input 'family = {family}' is not available. The available values are 'LL4' and 'L4'"
        ) from None

    if family == ModelFamily.LL4:
        ic50 = coef['e']
    else:
        # L4 is fitted on log10 dose
        ic50 = 10 ** coef['e']

    if ic50 > max_conc:
        ic50 = max_conc
    return float(ic50)


def estimate_ic50(curve: pd.DataFrame) -> float:
    """
    Fits a single-drug dose-response curve and returns its relative IC50.

    A curve with only one non-zero dose has no model, so that dose (which is
    also the maximum tested dose) is returned.

    Args:
        curve: DataFrame with 'dose' and 'response' columns.
    Returns:
        The relative IC50, never above the maximum tested dose.
    Raises:
        DegenerateCurveError: If the curve has no non-zero dose.
    """
    dose, _ = prepare_curve(curve)
    if len(dose) == 0:
        raise DegenerateCurveError('Cannot estimate the IC50 of a curve without non-zero doses')
    max_conc = float(np.max(dose))
    if len(dose) == 1:
        return max_conc
    try:
        model = fit_dose_response(curve)
    except DegenerateCurveError as e:
        _logger.warning(f'{e}; capping the IC50 at the maximum dose')
        return max_conc
    return calculate_ic50(model.coefficients, model.family, max_conc)
