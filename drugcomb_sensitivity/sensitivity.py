# Sensitivity scores for drug combinations
"""
Calculates the sensitivity scores of drug combination blocks.

For every block this module reports:
1. The relative IC50 of each drug (ic50_<i>)
2. The Relative Inhibition of each drug (ri_<i>)
3. The CSS of each drug with one other drug fixed at its IC50 (css<i>_ic50<j>)
4. The overall CSS of the block (css)

Blocks with replicates are bootstrapped, and the statistics of every score
across iterations are returned in a second table.
"""

# imports
## batteries
import logging
from dataclasses import dataclass, field, replace
from functools import partial
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Any, Dict, List, Mapping, Optional, Tuple

## 3rd party
import numpy as np
import pandas as pd
from tqdm import tqdm

## package
from drugcomb_sensitivity.logger import init_custom_logger
from drugcomb_sensitivity.errors import SensitivityError
from drugcomb_sensitivity.baseline import BASELINE_METHODS, correct_baseline
from drugcomb_sensitivity.curves.ic50 import estimate_ic50
from drugcomb_sensitivity.curves.scoring import calculate_ri
from drugcomb_sensitivity.css import DrugPair, calculate_css, css_field, directed_pairs
from drugcomb_sensitivity.data import drug_ids, extract_single_drug, select_response, split_blocks, validate_input
from drugcomb_sensitivity.stats.bootstrap import bootstrap_block, iteration_rng
from drugcomb_sensitivity.stats.core import SensitivityStatistics, summarize_iterations

# Initialize logger
_logger = init_custom_logger(__name__)


# =============================================================================
# Configuration and results
# =============================================================================

@dataclass
class SensitivityConfig:
    """
    Configuration for sensitivity score calculation.

    Attributes
    ----------
    adjusted : bool
        Use the adjusted 'response' column if True, the raw 'response_origin'
        column if False. Default is True.
    correct_baseline : str
        Baseline correction method: "non", "part" or "all". Default is "non".
    iteration : int
        Number of bootstrap iterations for blocks with replicates. Default is 10.
    seed : int or None
        Seed for the bootstrap draws. None draws fresh entropy, so results
        are not reproducible. Default is 123.
    threads : int
        Number of worker processes across blocks. Default is 1 (sequential).
    show_progress : bool
        Show a progress bar over bootstrap iterations. Default is True.
    """

    adjusted: bool = True
    correct_baseline: str = "non"
    iteration: int = 10
    seed: Optional[int] = 123
    threads: int = 1
    show_progress: bool = True

    def __post_init__(self):
        """Validate configuration values."""
        if self.correct_baseline not in BASELINE_METHODS:
            raise ValueError(f"correct_baseline must be one of {BASELINE_METHODS}, "
                             f"got '{self.correct_baseline}'")
        if not isinstance(self.iteration, (int, np.integer)) or self.iteration < 1:
            raise ValueError(f"iteration must be a positive integer, got {self.iteration}")
        if self.seed is not None and (not isinstance(self.seed, (int, np.integer)) or self.seed < 0):
            raise ValueError(f"seed must be a non-negative integer or None, got {self.seed}")
        if self.threads < 1:
            raise ValueError(f"threads must be at least 1, got {self.threads}")


def ic50_field(drug: int) -> str:
    return f"ic50_{drug}"


def ri_field(drug: int) -> str:
    return f"ri_{drug}"


@dataclass
class SensitivityResult:
    """
    Sensitivity scores of one block.

    Attributes
    ----------
    block_id : Any
        Block the scores belong to.
    ic50 : dict
        Relative IC50 per drug number.
    ri : dict
        Relative Inhibition per drug number.
    css_pairs : dict
        CSS per (varied drug, drug fixed at its IC50).
    css : float
        Mean of all `css_pairs` values.
    fault : str, optional
        Error message if the block could not be scored.
    """

    block_id: Any
    ic50: Dict[int, float] = field(default_factory=dict)
    ri: Dict[int, float] = field(default_factory=dict)
    css_pairs: Dict[DrugPair, float] = field(default_factory=dict)
    css: float = np.nan
    fault: Optional[str] = None

    def to_dict(self) -> Dict[str, float]:
        """Score fields in output order: ic50_<i>, ri_<i>, css<i>_ic50<j>, css."""
        record = {ic50_field(drug): value for drug, value in self.ic50.items()}
        record.update({ri_field(drug): value for drug, value in self.ri.items()})
        record.update({css_field(*pair): value for pair, value in self.css_pairs.items()})
        record["css"] = self.css
        return record

    @classmethod
    def from_dict(cls, block_id: Any, record: Mapping[str, float], drugs: List[int]) -> "SensitivityResult":
        """Rebuild a result from a record produced by `to_dict` (or its means)."""
        return cls(
            block_id=block_id,
            ic50={drug: record[ic50_field(drug)] for drug in drugs},
            ri={drug: record[ri_field(drug)] for drug in drugs},
            css_pairs={pair: record[css_field(*pair)] for pair in directed_pairs(drugs)},
            css=record["css"],
        )

    @classmethod
    def failed(cls, block_id: Any, drugs: List[int], fault: str) -> "SensitivityResult":
        """A result with every score NaN, recording why the block failed."""
        return cls(
            block_id=block_id,
            ic50={drug: np.nan for drug in drugs},
            ri={drug: np.nan for drug in drugs},
            css_pairs={pair: np.nan for pair in directed_pairs(drugs)},
            fault=fault,
        )


# =============================================================================
# Per-block pipeline
# =============================================================================

def score_block(block_id: Any, response: pd.DataFrame, baseline_method: str = "non") -> SensitivityResult:
    """
    Scores one block of (non-replicated) dose-response data.

    Parameters
    ----------
    block_id : Any
        Identifier of the block.
    response : pd.DataFrame
        The block's response table with 'conc<i>' and 'response' columns.
    baseline_method : str
        Baseline correction method passed to `correct_baseline`.

    Returns
    -------
    SensitivityResult
    """
    response = correct_baseline(response, method=baseline_method)
    single_drug_data = extract_single_drug(response)

    ri = {drug: calculate_ri(curve) for drug, curve in single_drug_data.items()}
    ic50 = {drug: estimate_ic50(curve) for drug, curve in single_drug_data.items()}
    css_pairs, css = calculate_css(response, ic50=ic50)

    return SensitivityResult(block_id=block_id, ic50=ic50, ri=ri, css_pairs=css_pairs, css=css)


def bootstrap_scores(block_id: Any, response: pd.DataFrame, config: SensitivityConfig,
                     seed: int) -> Tuple[SensitivityResult, SensitivityStatistics]:
    """
    Scores a replicated block by bootstrapping its replicates.

    Parameters
    ----------
    block_id : Any
        Identifier of the block.
    response : pd.DataFrame
        The block's response table, with repeated dose combinations.
    config : SensitivityConfig
        Provides the iteration count and baseline correction method.
    seed : int
        Run-level seed; every iteration derives its own stream from it.

    Returns
    -------
    tuple
        (SensitivityResult holding the mean of every score, SensitivityStatistics)
    """
    iterations = range(config.iteration)
    if config.show_progress:
        iterations = tqdm(iterations, desc=f"Bootstrapping block {block_id}", leave=False)

    records = []
    for i in iterations:
        response_boot = bootstrap_block(response, iteration_rng(seed, block_id, i))
        records.append(score_block(block_id, response_boot, config.correct_baseline).to_dict())

    statistics = summarize_iterations(block_id, records)
    mean_result = SensitivityResult.from_dict(block_id, statistics.means, drug_ids(response))
    return mean_result, statistics


def _process_block(task: Tuple[Any, pd.DataFrame, bool], config: SensitivityConfig,
                   seed: int) -> Tuple[SensitivityResult, Optional[SensitivityStatistics]]:
    block_id, response, replicate = task
    try:
        if replicate:
            return bootstrap_scores(block_id, response, config, seed)
        return score_block(block_id, response, config.correct_baseline), None
    except (SensitivityError, ArithmeticError) as e:
        _logger.error(f"Failed to calculate sensitivity scores for block {block_id}: {e}")
        return SensitivityResult.failed(block_id, drug_ids(response), f"{type(e).__name__}: {e}"), None


# =============================================================================
# Main entry point
# =============================================================================

def calculate_sensitivity(data: Dict[str, pd.DataFrame], config: Optional[SensitivityConfig] = None,
                          **kwargs) -> Dict[str, pd.DataFrame]:
    """
    Calculates the sensitivity scores for every block of drug combination data.

    Parameters
    ----------
    data : dict
        Preprocessed data with 'drug_pairs' (block_id, replicate) and
        'response' (block_id, conc1..concN, response, response_origin) tables.
    config : SensitivityConfig, optional
        Calculation settings. Keyword arguments override its fields (or build
        a config on their own when `config` is None).

    Returns
    -------
    dict
        A copy of `data` whose 'drug_pairs' table gains the columns
        ic50_<i>, ri_<i>, css<i>_ic50<j>, css and fault. When any block has
        replicates, 'sensitivity_scores_statistics' holds the bootstrap
        statistics per block.

    Raises
    ------
    InputShapeError
        If required tables or columns are missing.

    Examples
    --------
    >>> results = calculate_sensitivity(data, iteration=20, seed=1)
    >>> results["drug_pairs"][["block_id", "ri_1", "ri_2", "css"]]
    """
    if config is None:
        config = SensitivityConfig(**kwargs)
    elif kwargs:
        config = replace(config, **kwargs)

    drug_pairs, response = validate_input(data)
    response = select_response(response, adjusted=config.adjusted)

    # one seed for the whole run; unseeded runs still share one entropy pool
    seed = config.seed if config.seed is not None else np.random.SeedSequence().entropy
    replicate = dict(zip(drug_pairs["block_id"], drug_pairs["replicate"].astype(bool)))
    blocks = split_blocks(response)
    tasks = [(block_id, block, replicate[block_id]) for block_id, block in blocks.items()]

    results: Dict[Any, Tuple[SensitivityResult, Optional[SensitivityStatistics]]] = {}
    if config.threads == 1 or len(tasks) == 1:
        func = partial(_process_block, config=config, seed=seed)
        for task in tasks:
            _logger.info(f"Calculating sensitivity scores for block {task[0]} ...")
            results[task[0]] = func(task)
    else:
        # workers report through the block progress bar only
        func = partial(_process_block, config=replace(config, show_progress=False), seed=seed)
        desc = "Calculating sensitivity scores..."
        with ProcessPoolExecutor(max_workers=config.threads) as executor:
            logging.disable(logging.INFO)
            futures = {executor.submit(func, task): task[0] for task in tasks}
            try:
                for future in tqdm(as_completed(futures), total=len(futures), desc=desc,
                                   disable=not config.show_progress):
                    results[futures[future]] = future.result()
            finally:
                logging.disable(logging.NOTSET)

    # assemble in block order
    scores = []
    statistics = []
    for block_id, _, _ in tasks:
        result, stats = results[block_id]
        scores.append({"block_id": block_id, **result.to_dict(), "fault": result.fault})
        if stats is not None:
            statistics.append(stats.to_dict())
    scores = pd.DataFrame(scores)

    output = dict(data)
    output.pop("sensitivity_scores_statistics", None)
    keep_cols = [col for col in drug_pairs.columns if col == "block_id" or col not in scores.columns]
    output["drug_pairs"] = drug_pairs[keep_cols].merge(scores, on="block_id", how="left")
    if statistics:
        output["sensitivity_scores_statistics"] = pd.DataFrame(statistics)
    return output
