import logging, json, sys, time, os

_FORMAT = json.dumps({
    "ts": "%(asctime)s",
    "level": "%(levelname)s",
    "name": "%(name)s",
    "msg": "%(message)s"
})


def get_logger(name="aaas", level=None, to_file=None):
    """
    Unified structured logger for all ledger components.

    Level and optional file sink default to AAAS_LOG_LEVEL / AAAS_LOG_FILE.
    Handlers are attached once per logger name; records still propagate so
    host applications (and pytest's caplog) see them.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level or os.getenv("AAAS_LOG_LEVEL", "INFO").upper())
    to_file = to_file or os.getenv("AAAS_LOG_FILE")

    if not logger.handlers:
        formatter = logging.Formatter(fmt=_FORMAT, datefmt="%Y-%m-%dT%H:%M:%SZ")
        formatter.converter = time.gmtime  # UTC timestamps

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        if to_file:
            os.makedirs(os.path.dirname(to_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(to_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
