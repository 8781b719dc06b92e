import logging
import sys

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
_HANDLER_NAME = "trade-matcher-stdout"


def setup_logging(level: int = logging.INFO) -> None:
    """Send log records to stdout; calling it again does not add a second handler."""
    root_logger = logging.getLogger()
    if not any(handler.get_name() == _HANDLER_NAME for handler in root_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Set lower log levels for some noisy libraries
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)
