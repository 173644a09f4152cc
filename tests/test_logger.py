# imports
import logging
import pytest
from drugcomb_sensitivity.logger import init_custom_logger, package_loggers, set_verbosity

@pytest.fixture(autouse=True)
def restore_verbosity():
    yield
    set_verbosity(quiet=False)

def console_handlers(logger):
    return [handler for handler in logger.handlers if isinstance(handler, logging.StreamHandler)]

# Test logger setup
def test_init_custom_logger_reuses_handler():
    """
    Re-initializing a module logger does not duplicate its console output
    """
    logger = init_custom_logger('drugcomb_sensitivity.demo_module')
    again = init_custom_logger('drugcomb_sensitivity.demo_module')
    assert again is logger
    assert len(console_handlers(logger)) == 1
    assert logger.propagate is False
    assert logger.level == logging.INFO

def test_init_custom_logger_format():
    logger = init_custom_logger('drugcomb_sensitivity.demo_format', fmt='%(levelname)s: %(message)s')
    record = logging.LogRecord(logger.name, logging.WARNING, __file__, 1, 'low signal', None, None)
    assert console_handlers(logger)[0].format(record) == 'WARNING: low signal'

def test_package_loggers():
    """
    Only loggers under the package namespace are listed
    """
    init_custom_logger('drugcomb_sensitivity.demo_listed')
    logging.getLogger('drugcomb_sensitivity_other.demo')
    names = [logger.name for logger in package_loggers()]
    assert 'drugcomb_sensitivity.demo_listed' in names
    assert 'drugcomb_sensitivity_other.demo' not in names

# Test verbosity
def test_set_verbosity():
    """
    Quiet mode applies to existing loggers and to loggers created afterwards
    """
    existing = init_custom_logger('drugcomb_sensitivity.demo_existing')
    set_verbosity(quiet=True)
    later = init_custom_logger('drugcomb_sensitivity.demo_later')
    assert existing.level == logging.WARNING
    assert later.level == logging.WARNING
    assert not later.isEnabledFor(logging.INFO)
    set_verbosity(quiet=False)
    assert existing.isEnabledFor(logging.INFO)
    assert later.isEnabledFor(logging.INFO)
