from .fitting import FittedModel, ModelFamily, fit_dose_response, prepare_curve
from .scoring import calculate_ri, score_curve
from .ic50 import calculate_ic50, estimate_ic50
from .predict import impute_ic50, predict_response

__all__ = [
    'FittedModel',
    'ModelFamily',
    'fit_dose_response',
    'prepare_curve',
    'calculate_ri',
    'score_curve',
    'calculate_ic50',
    'estimate_ic50',
    'impute_ic50',
    'predict_response',
]
