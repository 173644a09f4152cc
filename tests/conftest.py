import pandas as pd
import pytest
from drugcomb_sensitivity.logger import package_loggers, set_verbosity
from drugcomb_sensitivity.stats.test_utils import (
    generate_combination_block,
    generate_dose_response_curve,
    generate_screening_data,
)

@pytest.fixture
def noiseless_curve():
    """
    Single-drug curve from known LL4 parameters (b=-1, c=0, d=100, e=3)
    """
    return generate_dose_response_curve()

@pytest.fixture
def two_drug_block():
    """
    Noiseless 6x6 two-drug block without replicates
    """
    block, _ = generate_combination_block()
    return block

@pytest.fixture
def screening_data():
    """
    Three noiseless two-drug blocks without replicates
    """
    data, _ = generate_screening_data(n_blocks=3)
    return data

@pytest.fixture
def replicated_data():
    """
    Two noisy two-drug blocks with three replicates per dose combination
    """
    data, _ = generate_screening_data(n_blocks=2, n_replicates=3, noise_sd=2.0)
    return data

@pytest.fixture
def package_log(caplog):
    """
    Captures records of the package loggers, which do not propagate to root
    """
    set_verbosity(quiet=False)
    loggers = package_loggers()
    for logger in loggers:
        logger.addHandler(caplog.handler)
    yield caplog
    for logger in loggers:
        logger.removeHandler(caplog.handler)

@pytest.fixture
def reference_curve():
    """
    Measured single-drug curve with a partial response over six doses
    """
    return pd.DataFrame({'dose': [0, 0.1954, 0.7812, 3.125, 12.5, 50],
                         'response': [2.95, 3.76, 18.13, 28.69, 46.66, 58.82]})
