# imports
import pytest
import numpy as np
import pandas as pd
from scipy.integrate import quad
from drugcomb_sensitivity.curves import fitting
from drugcomb_sensitivity.curves.fitting import FittedModel, ModelFamily
from drugcomb_sensitivity.curves.scoring import (
    calculate_ri,
    log1p_exp,
    log1p_pow10,
    score_curve,
    score_curve_l4,
    score_curve_ll4,
)
from drugcomb_sensitivity.errors import (
    DegenerateCurveError,
    ModelFitError,
    UnsupportedModelFamilyError,
)

C1 = np.log10(0.1954)
C2 = np.log10(50)

# Test the closed forms against numerical integration
@pytest.mark.parametrize('b', [-1.0, -3.5, 0.8])
def test_score_ll4_matches_quad(b):
    """
    The LL4 closed form equals the mean of the curve over the log10 window
    """
    c, d, m = 0.05, 0.95, np.log10(3.0)
    area, _ = quad(lambda x: c + (d - c) / (1 + 10 ** (b * (x - m))), C1, C2)
    expected = 100 * area / (C2 - C1)
    assert score_curve_ll4(b, c, d, m, C1, C2) == pytest.approx(expected, rel=1e-6)

@pytest.mark.parametrize('b', [-2.0, -0.5, 1.3])
def test_score_l4_matches_quad(b):
    """
    The L4 closed form equals the mean of the curve over the log10 window
    """
    c, d, e = 0.1, 0.8, 0.2
    area, _ = quad(lambda u: c + (d - c) / (1 + np.exp(b * (u - e))), C1, C2)
    expected = 100 * area / (C2 - C1)
    assert score_curve_l4(b, c, d, e, C1, C2) == pytest.approx(expected, rel=1e-6)

# Test the overflow guards
def test_log1p_guards_overflow():
    """
    Overflowing powers fall back to their asymptotes
    """
    assert log1p_pow10(1.0, 500.0, 0.0) == pytest.approx(500 * np.log(10))
    assert log1p_pow10(1.0, 1.0, 0.0) == pytest.approx(np.log(11))
    assert log1p_exp(800.0) == 800.0
    assert log1p_exp(0.0) == pytest.approx(np.log(2))

def test_score_steep_curves_are_finite():
    """
    Step-like curves centered in the window score their midpoint
    """
    assert score_curve_ll4(-500, 0, 1, 0, -1, 1) == pytest.approx(50)
    assert score_curve_l4(800, 0, 1, 0, -1, 1) == pytest.approx(50)

def test_score_zero_slope():
    """
    A zero slope scores the midpoint of the asymptotes
    """
    assert score_curve_ll4(0, 0.2, 0.8, 0.5, C1, C2) == pytest.approx(50)
    assert score_curve_l4(0, 0.2, 0.8, 0.5, C1, C2) == pytest.approx(50)

def test_score_unsupported_family():
    """
    Only LL4 and L4 models can be scored
    """
    model = FittedModel('XX', b=-1.0, c=0.0, d=100.0, e=1.0)
    with pytest.raises(UnsupportedModelFamilyError):
        score_curve(model, C1, C2)

# Test RI of dose-response curves
def test_ri_of_noiseless_curve(noiseless_curve):
    """
    The RI of a noiseless curve equals the analytic score of its parameters
    """
    curve, p = noiseless_curve
    expected = score_curve_ll4(p['b'], p['c'] / 100, p['d'] / 100, np.log10(p['e']), C1, C2)
    ri = calculate_ri(curve)
    assert ri == pytest.approx(expected, abs=0.1)
    assert ri == round(ri, 3)

def test_ri_with_l4_fallback(noiseless_curve, monkeypatch):
    """
    Scoring with the L4 fallback gives the same RI as LL4
    """
    curve, _ = noiseless_curve
    ri_ll4 = calculate_ri(curve)
    def fail(*args, **kwargs):
        raise ModelFitError('forced')
    monkeypatch.setattr(fitting, 'fit_ll4', fail)
    assert calculate_ri(curve) == pytest.approx(ri_ll4, abs=0.1)

def test_ri_of_flat_curve():
    """
    A constant curve scores its constant response
    """
    curve = pd.DataFrame({'dose': [0.0, 1.0, 2.0, 4.0, 8.0], 'response': [0.0, 10.0, 10.0, 10.0, 10.0]})
    assert calculate_ri(curve) == pytest.approx(10.0, abs=1e-2)

def test_ri_single_dose():
    """
    A single non-zero dose scores its raw response
    """
    curve = pd.DataFrame({'dose': [0.0, 5.0], 'response': [1.0, 42.123456]})
    assert calculate_ri(curve) == 42.123456

def test_ri_without_doses():
    """
    A curve without non-zero doses cannot be scored
    """
    curve = pd.DataFrame({'dose': [0.0, 0.0], 'response': [1.0, 2.0]})
    with pytest.raises(DegenerateCurveError):
        calculate_ri(curve)

def test_ri_when_fitting_fails(monkeypatch):
    """
    When no model fits, the mean observed response is the score
    """
    def fail(*args, **kwargs):
        raise ModelFitError('forced')
    monkeypatch.setattr(fitting, 'fit_ll4', fail)
    monkeypatch.setattr(fitting, 'fit_l4', fail)
    curve = pd.DataFrame({'dose': [0.0, 1.0, 2.0, 4.0], 'response': [0.0, 10.0, 20.0, 33.0]})
    assert calculate_ri(curve) == 21.0

def test_ri_matches_fitted_curve_area(reference_curve):
    """
    RI is the mean of the fitted curve over the log10 window of tested doses
    """
    model = fitting.fit_dose_response(reference_curve)
    area, _ = quad(lambda x: float(model.predict(10 ** x)), C1, C2)
    ri = calculate_ri(reference_curve)
    assert isinstance(ri, float)
    assert ri == pytest.approx(area / (C2 - C1), abs=1e-2)
    assert 3.76 < ri < 58.82

def test_ri_of_reference_curve(reference_curve):
    """
    The RI of a measured curve is pinned to its known value
    """
    assert calculate_ri(reference_curve) == pytest.approx(31.064, abs=1e-3)

# Test that scores do not depend on the dose unit
@pytest.mark.parametrize('scale', [1e-9, 1e-6, 1e-3, 1e3, 1e6])
def test_ri_is_unit_invariant(noiseless_curve, scale):
    """
    Expressing doses in another unit (e.g. molar instead of micromolar) keeps the RI
    """
    curve, _ = noiseless_curve
    scaled = curve.assign(dose=curve['dose'] * scale)
    assert calculate_ri(scaled) == pytest.approx(calculate_ri(curve), abs=0.05)

