import logging, json, sys, time, os

ROOT_LOGGER = "PROV"


def _formatter() -> logging.Formatter:
    formatter = logging.Formatter(
        fmt=json.dumps({
            "ts": "%(asctime)s",
            "level": "%(levelname)s",
            "name": "%(name)s",
            "msg": "%(message)s"
        }),
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    formatter.converter = time.gmtime  # Use UTC timestamps
    return formatter


def get_logger(name=ROOT_LOGGER, level=logging.INFO, to_file=None):
    """Unified structured logger for all provisioner components."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(_formatter())
        logger.addHandler(handler)

    if to_file:
        # Ensure the directory exists before writing
        os.makedirs(os.path.dirname(to_file) or ".", exist_ok=True)
        target = os.path.abspath(to_file)
        if not any(getattr(h, "baseFilename", None) == target for h in logger.handlers):
            file_handler = logging.FileHandler(to_file)
            file_handler.setFormatter(_formatter())
            logger.addHandler(file_handler)

    return logger


def configure_logging(config):
    """
    Apply the process-wide logging settings from a ProvisionerConfig.

    Component loggers are children of ``PROV`` and keep their own stdout
    handler; the shared log file is attached to each of them here.
    """
    level = logging.getLevelName(str(config.log_level).upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {config.log_level}")

    log_file = os.path.join(config.log_dir, "provisioner.log")
    root = get_logger(ROOT_LOGGER, level=level, to_file=log_file)
    for name, existing in list(logging.Logger.manager.loggerDict.items()):
        if name.startswith(ROOT_LOGGER + ".") and isinstance(existing, logging.Logger):
            get_logger(name, level=level, to_file=log_file)
    return root
