import json
import logging

import gtfs_to_geojson.settings as settings


class JsonlFormatter(logging.Formatter):
    def format(self, record) -> str:
        return json.dumps(self.get_log_entry(record))

    def get_log_entry(self, record) -> dict:
        return {
            "timestamp": self.formatTime(record),
            "levelname": record.levelname,
            "name": f"{record.name}|{record.funcName}:{record.lineno}",
            "message": record.getMessage(),
            **record.__dict__.get("extra", {}),
        }


class RunLoggerAdapter(logging.LoggerAdapter):
    """
    Logger bound to one pipeline run

    The adapter context (agency key, ...) is attached to each record under `extra`,
    which is where `JsonlFormatter` looks for it.
    Records below WARNING are dropped when the run is not verbose.
    """

    def __init__(self, logger: logging.Logger, verbose: bool = True, extra: dict | None = None):
        super().__init__(logger, extra or {})
        self.verbose = verbose

    def process(self, msg, kwargs):
        kwargs["extra"] = {"extra": {**self.extra, **kwargs.get("extra", {})}}
        return msg, kwargs

    def log(self, level, msg, *args, **kwargs):
        if level < logging.WARNING and not self.verbose:
            return
        # Report the caller of the adapter, not this override
        kwargs.setdefault("stacklevel", 2)
        super().log(level, msg, *args, **kwargs)

    def bind(self, **extra) -> "RunLoggerAdapter":
        return RunLoggerAdapter(self.logger, self.verbose, {**self.extra, **extra})


def get_run_logger(verbose: bool = True, name: str = "gtfs_to_geojson", **extra) -> RunLoggerAdapter:
    return RunLoggerAdapter(logging.getLogger(name), verbose=verbose, extra=extra)


def setup_logger(
    level: int = settings.LOGGER_LEVEL,
    datefmt: str = "%Y-%m-%d %H:%M:%S",
    format: str = "%(asctime)s - %(levelname)s - %(name)s|%(funcName)s:%(lineno)d - %(message)s",
    name: str = "main",
):
    """Global logger configuration"""
    # Use root logger if no specified name
    logger = logging.getLogger() if name == "main" else logging.getLogger(name)
    logger.setLevel(level)

    # Avoid handler duplication
    if logger.hasHandlers():
        return logger

    # console
    log_console = logging.StreamHandler()
    log_console.setFormatter(logging.Formatter(format))
    logger.addHandler(log_console)

    # plain text file
    log_handler = logging.FileHandler(settings.LOG_FILE, encoding="utf-8")
    log_handler.setFormatter(logging.Formatter(format, datefmt=datefmt))
    logger.addHandler(log_handler)

    # JsonL file
    jsonl_handler = logging.FileHandler(settings.LOG_JSONL_FILE, encoding="utf-8")
    jsonl_handler.setFormatter(JsonlFormatter(datefmt=datefmt))
    logger.addHandler(jsonl_handler)

    return logger
