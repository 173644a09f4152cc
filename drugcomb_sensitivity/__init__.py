# disable multithreading for numpy
import os
os.environ["OMP_NUM_THREADS"] = "1"
os.environ["MKL_NUM_THREADS"] = "1"
os.environ["OPENBLAS_NUM_THREADS"] = "1"

# import the main entry point
from .sensitivity import SensitivityConfig, SensitivityResult, calculate_sensitivity, score_block

# import curve fitting and scoring for direct access
from . import curves
from .curves import calculate_ic50, calculate_ri, estimate_ic50, fit_dose_response, impute_ic50, predict_response

# import stats module for convenient access
from . import stats

__all__ = [
    'SensitivityConfig',
    'SensitivityResult',
    'calculate_sensitivity',
    'score_block',
    'curves',
    'calculate_ic50',
    'calculate_ri',
    'estimate_ic50',
    'fit_dose_response',
    'impute_ic50',
    'predict_response',
    'stats',
]
