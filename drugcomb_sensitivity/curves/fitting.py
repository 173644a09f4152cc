"""
Four-parameter dose-response curve fitting.

Two parameterizations of the same monotone sigmoid are supported:

LL4 : c + (d - c) / (1 + exp(b * (ln(x) - ln(e))))   on the raw dose x
L4  : c + (d - c) / (1 + exp(b * (u - e)))           on u = log10(x)

LL4 is always tried first. L4 is the fallback for data the raw-dose fit
cannot handle, usually doses spanning several orders of magnitude.
"""

# imports
## batteries
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple
## 3rd party
import numpy as np
import pandas as pd
import scipy.optimize
import scipy.stats
## package
from drugcomb_sensitivity.errors import DegenerateCurveError, ModelFitError

# Upper limit on residual evaluations for a single fit
MAX_FIT_EVALS = 10000
# Added to the highest-dose response when a curve has no variance
FLAT_CURVE_EPSILON = 1e-10
PARAM_NAMES = ('b', 'c', 'd', 'e')


class ModelFamily(str, Enum):
    """Tag for the curve parameterization a FittedModel was fitted with."""
    LL4 = 'LL4'
    L4 = 'L4'


def ll4(x, b, c, d, e):
    """
    Four parameter log-logistic function on raw doses.

    Args:
        x: Dose values (>= 0).
        b: Hill slope (negative for responses that increase with dose).
        c: Lower asymptote.
        d: Upper asymptote.
        e: Inflection point (EC50-like), same units as x.
    Returns:
        Response values.
    """
    with np.errstate(divide='ignore', over='ignore', invalid='ignore'):
        return c + (d - c) / (1 + np.exp(b * (np.log(x) - np.log(e))))


def l4(u, b, c, d, e):
    """
    Four parameter logistic function on log10 doses.

    Args:
        u: log10 dose values.
        b: Slope.
        c: Lower asymptote.
        d: Upper asymptote.
        e: Inflection point on the log10 dose scale.
    Returns:
        Response values.
    """
    with np.errstate(over='ignore', invalid='ignore'):
        return c + (d - c) / (1 + np.exp(b * (u - e)))


@dataclass(frozen=True)
class FittedModel:
    """
    Coefficients of a fitted dose-response curve, tagged with the model family.

    For LL4 `e` is a dose. For L4 `e` is a log10 dose.
    """
    family: ModelFamily
    b: float
    c: float
    d: float
    e: float

    @property
    def coefficients(self) -> Dict[str, float]:
        return {'b': self.b, 'c': self.c, 'd': self.d, 'e': self.e}

    def predict(self, dose):
        """
        Evaluate the fitted curve at raw dose value(s).

        Args:
            dose: A dose or an array of doses.
        Returns:
            The predicted response, with the same shape as `dose`.
        """
        dose = np.asarray(dose, dtype=float)
        if self.family == ModelFamily.LL4:
            return ll4(dose, self.b, self.c, self.d, self.e)
        with np.errstate(divide='ignore'):
            return l4(np.log10(dose), self.b, self.c, self.d, self.e)


def prepare_curve(curve: pd.DataFrame) -> Tuple[np.ndarray, np.ndarray]:
    """
    Extracts the usable points of a dose-response curve.

    Zero doses and missing responses are dropped, repeated doses are
    collapsed to their mean response and the points are sorted by dose.

    Args:
        curve: DataFrame with 'dose' and 'response' columns.
    Returns:
        Tuple of (dose, response) arrays.
    """
    df = curve[['dose', 'response']].astype(float)
    df = df[(df['dose'] != 0) & df['response'].notna()]
    df = df.groupby('dose', sort=True)['response'].mean()
    return df.index.to_numpy(dtype=float), df.to_numpy(dtype=float)


def _find_cd(y: np.ndarray, scale: float = 0.001) -> Tuple[float, float]:
    # asymptote start values: the observed range, widened slightly
    ymin, ymax = np.min(y), np.max(y)
    pad = scale * (ymax - ymin)
    return ymin - pad, ymax + pad


def _find_be(x: np.ndarray, y: np.ndarray, c: float, d: float) -> Tuple[float, float]:
    """
    Slope and location start values from the linearized curve.

    Regresses ln((d - y) / (y - c)) on the transformed dose, which is a line
    with slope b crossing zero at the inflection point.
    """
    with np.errstate(divide='ignore', invalid='ignore'):
        z = np.log((d - y) / (y - c))
    ok = np.isfinite(z)
    if ok.sum() >= 2 and np.ptp(x[ok]) > 0:
        fit = scipy.stats.linregress(x[ok], z[ok])
        if np.isfinite(fit.slope) and fit.slope != 0:
            loc = -fit.intercept / fit.slope
            if np.isfinite(loc):
                return fit.slope, loc
    # increasing responses need a negative slope
    trend = np.sign(y[-1] - y[0]) or 1.0
    return -trend, float(np.median(x))


def _fit_family(fn, x, y, p0, lower, upper, fixed: Sequence[Optional[float]]) -> np.ndarray:
    """
    Least-squares fit of `fn` with some parameters optionally held fixed.

    Raises:
        ModelFitError: The optimizer failed or returned non-finite values.
    """
    free = [i for i, value in enumerate(fixed) if value is None]

    def fit_fn(xx, *free_params):
        params = list(fixed)
        for i, value in zip(free, free_params):
            params[i] = value
        return fn(xx, *params)

    bounds = ([lower[i] for i in free], [upper[i] for i in free])
    p0_free = [min(max(p0[i], lower[i]), upper[i]) for i in free]
    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        try:
            popt, _ = scipy.optimize.curve_fit(
                fit_fn, x, y,
                p0=p0_free,
                bounds=bounds,
                method='trf',
                x_scale='jac',
                maxfev=MAX_FIT_EVALS
            )
        except (RuntimeError, ValueError, np.linalg.LinAlgError) as e:
            raise ModelFitError(f'{fn.__name__} fit failed: {e}') from e

    params = np.array([value if value is not None else np.nan for value in fixed], dtype=float)
    params[free] = popt
    if not np.all(np.isfinite(params)):
        raise ModelFitError(f'{fn.__name__} fit returned non-finite parameters: {params}')
    return params


def fit_ll4(dose: np.ndarray, response: np.ndarray, emin: Optional[float] = None,
            emax: Optional[float] = None) -> FittedModel:
    """
    Fits the LL4 model to prepared (non-zero, sorted) dose-response points.

    Args:
        dose: Non-zero doses, sorted ascending.
        response: Responses at those doses.
        emin: Fixed value for the lower asymptote `c`, or None to fit it.
        emax: Fixed value for the upper asymptote `d`, or None to fit it.
    Returns:
        FittedModel with family LL4.
    Raises:
        ModelFitError: If the fit does not converge.
    """
    c0, d0 = _find_cd(response)
    c0 = c0 if emin is None else emin
    d0 = d0 if emax is None else emax
    b0, log_e0 = _find_be(np.log(dose), response, c0, d0)
    p0 = (b0, c0, d0, float(np.exp(log_e0)))
    lower = (-np.inf, -np.inf, -np.inf, 1e-300)
    upper = (np.inf, np.inf, np.inf, np.inf)
    params = _fit_family(ll4, dose, response, p0, lower, upper, (None, emin, emax, None))
    return FittedModel(ModelFamily.LL4, *map(float, params))


def fit_l4(dose: np.ndarray, response: np.ndarray, emin: Optional[float] = None,
           emax: Optional[float] = None) -> FittedModel:
    """
    Fits the L4 model on log10(dose) to prepared dose-response points.

    Args:
        dose: Non-zero doses, sorted ascending.
        response: Responses at those doses.
        emin: Fixed value for the lower asymptote `c`, or None to fit it.
        emax: Fixed value for the upper asymptote `d`, or None to fit it.
    Returns:
        FittedModel with family L4 (`e` on the log10 dose scale).
    Raises:
        ModelFitError: If the fit does not converge.
    """
    u = np.log10(dose)
    c0, d0 = _find_cd(response)
    c0 = c0 if emin is None else emin
    d0 = d0 if emax is None else emax
    b0, e0 = _find_be(u, response, c0, d0)
    p0 = (b0, c0, d0, e0)
    unbounded = (-np.inf,) * 4, (np.inf,) * 4
    params = _fit_family(l4, u, response, p0, *unbounded, (None, emin, emax, None))
    return FittedModel(ModelFamily.L4, *map(float, params))


def fit_dose_response(curve: pd.DataFrame, emin: Optional[float] = None,
                      emax: Optional[float] = None) -> FittedModel:
    """
    Fits a four-parameter model to a dose-response curve.

    The zero-dose anchor is excluded. A curve with identical responses gets
    its highest-dose response nudged by FLAT_CURVE_EPSILON so the optimizer
    has something to work with. LL4 is tried first and L4 on log10 dose is
    used when LL4 fails.

    Args:
        curve: DataFrame with 'dose' and 'response' columns.
        emin: Optional fixed lower asymptote.
        emax: Optional fixed upper asymptote.
    Returns:
        The FittedModel.
    Raises:
        DegenerateCurveError: Fewer than two distinct non-zero doses, or
            neither model family could be fitted.
    """
    dose, response = prepare_curve(curve)
    if len(dose) < 2:
        raise DegenerateCurveError(
            f'At least 2 distinct non-zero doses are required for fitting, got {len(dose)}'
        )

    if np.var(response) == 0:
        response = response.copy()
        response[-1] += FLAT_CURVE_EPSILON

    try:
        return fit_ll4(dose, response, emin=emin, emax=emax)
    except ModelFitError:
        pass
    try:
        return fit_l4(dose, response, emin=emin, emax=emax)
    except ModelFitError as e:
        raise DegenerateCurveError(f'Neither LL4 nor L4 could be fitted: {e}') from e
