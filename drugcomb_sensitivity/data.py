"""
Input tables for sensitivity scoring.

The scoring functions consume the output of the preprocessing step:

drug_pairs : one row per block with 'block_id' and a boolean 'replicate'
response   : one row per tested dose combination with 'block_id',
             'conc1' ... 'concN', 'response' and 'response_origin'

This module validates those tables and slices them into the pieces the
curve and CSS calculations need.
"""

# imports
## batteries
import re
from typing import Any, Dict, List, Tuple
## 3rd party
import pandas as pd
## package
from drugcomb_sensitivity.errors import InputShapeError

CONC_PATTERN = re.compile(r'^conc(\d+)$')


def conc_columns(df: pd.DataFrame) -> List[str]:
    """Returns the 'conc<i>' columns of a table, ordered by drug number."""
    matches = []
    for col in df.columns:
        m = CONC_PATTERN.match(col) if isinstance(col, str) else None
        if m:
            matches.append((int(m.group(1)), col))
    return [col for _, col in sorted(matches)]


def drug_ids(df: pd.DataFrame) -> List[int]:
    """Returns the drug numbers present in a response table (1 for 'conc1', ...)."""
    return [int(CONC_PATTERN.match(col).group(1)) for col in conc_columns(df)]


def detect_replicates(response: pd.DataFrame) -> pd.Series:
    """
    Flags blocks that contain replicated measurements.

    A block is replicated when any of its dose combinations occurs more
    than once.

    Args:
        response: Response table with 'block_id' and 'conc<i>' columns.
    Returns:
        Boolean Series indexed by block_id.
    """
    keys = ['block_id'] + conc_columns(response)
    n = response.groupby(keys, sort=False, dropna=False).size()
    return n.groupby(level='block_id', sort=False).max().gt(1).rename('replicate')


def build_drug_pairs(response: pd.DataFrame) -> pd.DataFrame:
    """Creates a minimal drug_pairs table (block_id, replicate) from a response table."""
    return detect_replicates(response).reset_index()


def validate_input(data: Dict[str, pd.DataFrame]) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Checks that the input holds the tables and columns needed for scoring.

    Args:
        data: dict with 'drug_pairs' and 'response' DataFrames. The response
            table needs both 'response' and 'response_origin'.
    Returns:
        Copies of (drug_pairs, response). A missing 'replicate' column in
        drug_pairs is filled in from the response table.
    Raises:
        InputShapeError: If tables, columns or blocks are missing.
    """
    if not isinstance(data, dict):
        raise InputShapeError('Input data is not in dict format!')
    missing_tables = [name for name in ('drug_pairs', 'response') if name not in data]
    if missing_tables:
        raise InputShapeError(
            f"Input data should contain at least two elements: 'drug_pairs' and 'response'. "
            f"Missing: {missing_tables}"
        )

    drug_pairs = data['drug_pairs'].copy()
    response = data['response'].copy()

    errors = []
    if 'block_id' not in drug_pairs.columns:
        errors.append("Column 'block_id' not found in drug_pairs")
    required = ['block_id', 'response', 'response_origin']
    missing_cols = [col for col in required if col not in response.columns]
    if missing_cols:
        errors.append(f'Missing required columns in response: {missing_cols}')
    concs = conc_columns(response)
    if len(concs) < 2:
        errors.append(f"At least 2 'conc<i>' columns are required in response, got {concs}")
    if len(response) == 0:
        errors.append('The response table is empty')
    if errors:
        raise InputShapeError(f'Input validation failed: {errors}')

    if (response[concs] < 0).any().any():
        raise InputShapeError('Concentrations must be non-negative')
    missing_blocks = set(response['block_id']) - set(drug_pairs['block_id'])
    if missing_blocks:
        raise InputShapeError(f'Blocks missing from drug_pairs: {sorted(missing_blocks, key=str)}')

    if 'replicate' not in drug_pairs.columns:
        replicate = detect_replicates(response)
        drug_pairs['replicate'] = drug_pairs['block_id'].map(replicate).fillna(False).astype(bool)

    return drug_pairs, response


def select_response(response: pd.DataFrame, adjusted: bool = True) -> pd.DataFrame:
    """
    Keeps the response column used for scoring under the name 'response'.

    Args:
        response: Response table with 'response' and/or 'response_origin'.
        adjusted: If True, use 'response'; otherwise use 'response_origin'.
    Returns:
        Response table with a single 'response' column.
    """
    if adjusted:
        return response.drop(columns=['response_origin'], errors='ignore')
    return response.drop(columns=['response']).rename(columns={'response_origin': 'response'})


def split_blocks(response: pd.DataFrame) -> Dict[Any, pd.DataFrame]:
    """
    Splits a response table into per-block tables without the 'block_id' column.

    Concentration columns that are entirely missing within a block belong to
    drugs that block does not use, and are dropped.
    """
    blocks = {}
    for block_id in response['block_id'].unique():
        block = response[response['block_id'] == block_id].drop(columns=['block_id'])
        unused = [col for col in conc_columns(block) if block[col].isna().all()]
        blocks[block_id] = block.drop(columns=unused).reset_index(drop=True)
    return blocks


def extract_single_drug(response: pd.DataFrame) -> Dict[int, pd.DataFrame]:
    """
    Extracts the single-drug dose-response curves from a combination block.

    Args:
        response: One block's response table with 'conc<i>' and 'response'.
    Returns:
        dict mapping drug number to a DataFrame with 'dose' and 'response'
        columns (rows where every other drug is at dose 0).
    """
    concs = conc_columns(response)
    conc_sum = response[concs].sum(axis=1)
    single_drug = {}
    for drug, conc in zip(drug_ids(response), concs):
        index = response[conc] == conc_sum
        single_drug[drug] = pd.DataFrame({
            'dose': response.loc[index, conc].to_numpy(dtype=float),
            'response': response.loc[index, 'response'].to_numpy(dtype=float),
        })
    return single_drug
