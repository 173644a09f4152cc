"""
Response prediction at doses that were not measured directly.

Used to place one drug of a combination at its IC50 when that concentration
does not appear in the dose matrix.
"""

# imports
## batteries
from typing import Dict
## 3rd party
import numpy as np
import pandas as pd
## package
from drugcomb_sensitivity.logger import init_custom_logger
from drugcomb_sensitivity.errors import DegenerateCurveError
from drugcomb_sensitivity.curves.fitting import fit_dose_response, prepare_curve

# Initialize logger
_logger = init_custom_logger(__name__)


def predict_response(curve: pd.DataFrame, dose: float) -> float:
    """
    Predicts the response of a small dose-response table at `dose`.

    A two-point table is treated as a line and the response measured at its
    higher dose is returned as is. Larger tables are fitted with the
    LL4/L4 models and the fitted curve is evaluated at `dose`.

    Args:
        curve: DataFrame with 'dose' and 'response' columns.
        dose: The dose to predict the response at.
    Returns:
        The predicted response.
    """
    df = curve.sort_values('dose', kind='mergesort')
    if len(df) == 1:
        return float(df['response'].iloc[0])
    if len(df) == 2:
        return float(df['response'].iloc[1])

    usable_dose, usable_response = prepare_curve(df)
    if len(usable_dose) == 0:
        return float(df['response'].mean())
    if len(usable_dose) == 1:
        return float(usable_response[0])

    try:
        model = fit_dose_response(df)
    except DegenerateCurveError as e:
        _logger.warning(f'{e}; predicting the mean observed response')
        return float(np.mean(usable_response))
    return float(model.predict(dose))


def impute_ic50(response_mat: pd.DataFrame, col_ic50: float, row_ic50: float) -> Dict[str, pd.DataFrame]:
    """
    Imputes a two-drug response matrix at the IC50 of each drug.

    For each column dose the row drug is placed at `row_ic50`, and for each
    row dose the column drug is placed at `col_ic50`. An axis with only two
    doses uses its second row/column directly instead of a prediction.

    Args:
        response_mat: Response matrix indexed by row-drug doses (index) and
            column-drug doses (columns), both ascending and starting at 0.
        col_ic50: IC50 of the drug added to the columns.
        row_ic50: IC50 of the drug added to the rows.
    Returns:
        dict with two dose-response curves ready for `calculate_ri`:
        'row_at_ic50' (dose = column doses, row drug at its IC50) and
        'col_at_ic50' (dose = row doses, column drug at its IC50).
    """
    col_conc = response_mat.columns.to_numpy(dtype=float)
    row_conc = response_mat.index.to_numpy(dtype=float)

    if len(row_conc) == 2:
        row_response = response_mat.iloc[1, :].to_numpy(dtype=float)
    else:
        row_response = np.array([
            predict_response(pd.DataFrame({'dose': row_conc, 'response': response_mat.iloc[:, j].to_numpy()}), row_ic50)
            for j in range(len(col_conc))
        ])

    if len(col_conc) == 2:
        col_response = response_mat.iloc[:, 1].to_numpy(dtype=float)
    else:
        col_response = np.array([
            predict_response(pd.DataFrame({'dose': col_conc, 'response': response_mat.iloc[i, :].to_numpy()}), col_ic50)
            for i in range(len(row_conc))
        ])

    return {
        'row_at_ic50': pd.DataFrame({'dose': col_conc, 'response': row_response}),
        'col_at_ic50': pd.DataFrame({'dose': row_conc, 'response': col_response}),
    }
