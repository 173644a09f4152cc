"""
Relative Inhibition (RI) scoring of dose-response curves.

RI is the average % inhibition of the fitted curve over the tested log10
dose window, computed from the closed-form integral of the curve rather
than by numerical integration.
"""

# imports
## 3rd party
import numpy as np
import pandas as pd
## package
from drugcomb_sensitivity.logger import init_custom_logger
from drugcomb_sensitivity.errors import DegenerateCurveError, UnsupportedModelFamilyError
from drugcomb_sensitivity.curves.fitting import FittedModel, ModelFamily, fit_dose_response, prepare_curve

# Initialize logger
_logger = init_custom_logger(__name__)

LN10 = np.log(10)


def log1p_pow10(beta: float, x: float, y: float) -> float:
    """
    ln(1 + 10^(beta * (x - y))), switching to the asymptote beta * (x - y) * ln(10)
    when the power overflows.
    """
    exponent = beta * (x - y)
    with np.errstate(over='ignore'):
        arg = 1 + np.power(10.0, exponent)
    if np.isinf(arg):
        return exponent * LN10
    return float(np.log(arg))


def log1p_exp(x: float) -> float:
    """ln(1 + exp(x)), returning x itself when exp(x) overflows."""
    with np.errstate(over='ignore'):
        arg = 1 + np.exp(x)
    if np.isinf(arg):
        return float(x)
    return float(np.log(arg))


def score_curve_ll4(b: float, c: float, d: float, m: float, c1: float, c2: float,
                    t: float = 0.0) -> float:
    """
    Scores a curve fitted with the LL4 model.

    Args:
        b: Fitted slope.
        c: Fitted lower asymptote (fraction scale).
        d: Fitted upper asymptote (fraction scale).
        m: log10 of the fitted inflection point e.
        c1: log10 of the lowest non-zero dose.
        c2: log10 of the highest dose.
        t: Response threshold, 0 for RI.
    Returns:
        The unrounded score on the percent scale.
    """
    if b == 0:
        return 100 * (c + d) / 2 / (1 - t)
    int_y = ((((d - c) * log1p_pow10(-b, c2, m)) / (-b * LN10) + c * c2) -
             (((d - c) * log1p_pow10(-b, c1, m)) / (-b * LN10) + c * c1))
    return 100 * int_y / ((1 - t) * (c2 - c1))


def score_curve_l4(b: float, c: float, d: float, e: float, c1: float, c2: float,
                   t: float = 0.0) -> float:
    """
    Scores a curve fitted with the L4 model on log10 dose.

    Args:
        b: Fitted slope.
        c: Fitted lower asymptote (fraction scale).
        d: Fitted upper asymptote (fraction scale).
        e: Fitted inflection point on the log10 dose scale.
        c1: log10 of the lowest non-zero dose.
        c2: log10 of the highest dose.
        t: Response threshold, 0 for RI.
    Returns:
        The unrounded score on the percent scale.
    """
    if b == 0:
        return 100 * (c + d) / 2 / (1 - t)
    int_y = d * (c2 - c1) + ((c - d) / b) * (log1p_exp(b * (c2 - e)) - log1p_exp(b * (c1 - e)))
    return 100 * int_y / ((1 - t) * (c2 - c1))


def score_curve(model: FittedModel, c1: float, c2: float, t: float = 0.0) -> float:
    """
    Scores a fitted model over the log10 dose window [c1, c2].

    The asymptotes are fitted on the percent scale and converted to fractions
    here, so the result is back on the percent scale.

    Raises:
        UnsupportedModelFamilyError: If the model is neither LL4 nor L4.
    """
    if model.family == ModelFamily.LL4:
        return score_curve_ll4(b=model.b, c=model.c / 100, d=model.d / 100,
                               m=np.log10(model.e), c1=c1, c2=c2, t=t)
    if model.family == ModelFamily.L4:
        return score_curve_l4(b=model.b, c=model.c / 100, d=model.d / 100,
                              e=model.e, c1=c1, c2=c2, t=t)
    raise UnsupportedModelFamilyError(
        f"The model family '{model.family}' is not available. The available values are 'LL4' and 'L4'"
    )


def calculate_ri(curve: pd.DataFrame) -> float:
    """
    Calculates the Relative Inhibition (RI) of a dose-response curve.

    The integration window runs from the lowest non-zero dose to the highest
    dose. A curve with a single non-zero dose is scored as that dose's raw
    response. If no model can be fitted, the mean observed response is used.

    Args:
        curve: DataFrame with 'dose' and 'response' (% inhibition) columns.
    Returns:
        The RI score, rounded to 3 decimals.
    Raises:
        DegenerateCurveError: If the curve has no non-zero dose.

    Examples:
        >>> df = pd.DataFrame({'dose': [0, 0.1954, 0.7812, 3.125, 12.5, 50],
        ...                    'response': [2.95, 3.76, 18.13, 28.69, 46.66, 58.82]})
        >>> ri = calculate_ri(df)
    """
    dose, response = prepare_curve(curve)
    if len(dose) == 0:
        raise DegenerateCurveError('The dose-response curve has no non-zero dose')
    if len(dose) == 1:
        return float(response[0])

    try:
        model = fit_dose_response(curve)
    except DegenerateCurveError as e:
        _logger.warning(f'{e}; using the mean observed response as the score')
        return round(float(np.mean(response)), 3)

    c1, c2 = np.log10(dose[0]), np.log10(dose[-1])
    return round(float(score_curve(model, c1, c2)), 3)
