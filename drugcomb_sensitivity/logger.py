import logging
from typing import List

PACKAGE_NAME = 'drugcomb_sensitivity'
LOG_FORMAT = '%(message)s'

# verbosity shared by every package logger, including ones created later
_package_level = logging.INFO


class _ConsoleHandler(logging.StreamHandler):
    """Console handler owned by a package logger."""


def package_loggers() -> List[logging.Logger]:
    """
    Lists the loggers created under the package namespace.
    Returns:
        The package loggers, in creation order.
    """
    return [logger for name, logger in list(logging.Logger.manager.loggerDict.items())
            if isinstance(logger, logging.Logger)
            and (name == PACKAGE_NAME or name.startswith(PACKAGE_NAME + '.'))]


def init_custom_logger(name: str, fmt: str = LOG_FORMAT) -> logging.Logger:
    """
    Returns the console logger of a scoring module.
    Args:
        name: The name of the logger (usually the module's __name__).
        fmt: Format of the console messages.
    Returns:
        The logger, at the current package verbosity. Repeated calls reuse
        its console handler.
    """
    logger = logging.getLogger(name)
    logger.setLevel(_package_level)
    if not any(isinstance(handler, _ConsoleHandler) for handler in logger.handlers):
        handler = _ConsoleHandler()
        handler.setFormatter(logging.Formatter(fmt))
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def set_verbosity(quiet: bool = False) -> None:
    """
    Toggles INFO messages for every logger in the package.
    Args:
        quiet: If True, only warnings and errors are shown.
    """
    global _package_level
    _package_level = logging.WARNING if quiet else logging.INFO
    for logger in package_loggers():
        logger.setLevel(_package_level)
