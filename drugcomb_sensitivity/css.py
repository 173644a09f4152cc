"""
Combination Sensitivity Score (CSS).

For every pair of drugs in a block, one drug is held at its IC50 while the
other is varied, and the resulting single-drug curve is scored as an RI.
The block CSS is the mean of all directed pair scores.
"""

# imports
## batteries
from itertools import combinations
from typing import Dict, List, Mapping, Tuple
## 3rd party
import numpy as np
import pandas as pd
## package
from drugcomb_sensitivity.logger import init_custom_logger
from drugcomb_sensitivity.errors import DegenerateCurveError
from drugcomb_sensitivity.curves.predict import predict_response
from drugcomb_sensitivity.curves.scoring import calculate_ri
from drugcomb_sensitivity.data import conc_columns, drug_ids

# Initialize logger
_logger = init_custom_logger(__name__)

# (varied drug, drug fixed at its IC50)
DrugPair = Tuple[int, int]


def css_field(vary: int, fixed: int) -> str:
    """Output column name for the CSS of drug `vary` with drug `fixed` at its IC50."""
    return f'css{vary}_ic50{fixed}'


def directed_pairs(drugs: List[int]) -> List[DrugPair]:
    """All (vary, fixed) pairs, in the order they are reported."""
    pairs = []
    for a, b in combinations(drugs, 2):
        pairs.extend([(a, b), (b, a)])
    return pairs


def _curve_at_ic50(pair_rows: pd.DataFrame, vary: int, fixed: int, fixed_ic50: float) -> pd.DataFrame:
    """Builds the curve of drug `vary` with drug `fixed` placed at its IC50."""
    vary_col, fixed_col = f'conc{vary}', f'conc{fixed}'
    points = []
    for vary_dose, group in pair_rows.groupby(vary_col, sort=True):
        fixed_curve = pd.DataFrame({
            'dose': group[fixed_col].to_numpy(dtype=float),
            'response': group['response'].to_numpy(dtype=float),
        })
        points.append((float(vary_dose), predict_response(fixed_curve, fixed_ic50)))
    return pd.DataFrame(points, columns=['dose', 'response'])


def calculate_css(response: pd.DataFrame, ic50: Mapping[int, float]) -> Tuple[Dict[DrugPair, float], float]:
    """
    Calculates the CSS for every directed drug pair of a block.

    Args:
        response: One block's response table with 'conc<i>' and 'response'.
        ic50: Relative IC50 of every drug, keyed by drug number.
    Returns:
        Tuple of (pair scores keyed by (vary, fixed), block CSS). A directed
        pair whose curve has no non-zero dose scores NaN, which makes the
        block CSS NaN as well.
    """
    concs = conc_columns(response)
    drugs = drug_ids(response)
    # rows with at most two drugs present
    two_drugs = response[(response[concs] != 0).sum(axis=1) <= 2]

    scores: Dict[DrugPair, float] = {}
    for a, b in combinations(drugs, 2):
        others = [f'conc{k}' for k in drugs if k not in (a, b)]
        if others:
            pair_rows = two_drugs[(two_drugs[others] == 0).all(axis=1)]
        else:
            pair_rows = two_drugs
        for vary, fixed in ((a, b), (b, a)):
            curve = _curve_at_ic50(pair_rows, vary, fixed, ic50[fixed])
            try:
                scores[(vary, fixed)] = calculate_ri(curve)
            except DegenerateCurveError as e:
                _logger.warning(f'{css_field(vary, fixed)}: {e}')
                scores[(vary, fixed)] = np.nan

    css = float(np.mean(list(scores.values())))
    return scores, css
