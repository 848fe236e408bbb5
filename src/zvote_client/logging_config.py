import logging
import logging.config


def setup_structured_logging(level: str = "INFO", json_logs: bool = True):
    """
    Configures Python's logging for the client.

    JSON output is meant for log aggregation when the client runs unattended;
    plain text is friendlier at an interactive terminal. Handlers write to
    stderr so command output on stdout stays clean.
    """
    formatter = "json" if json_logs else "plain"
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "class": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s"
            },
            "plain": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": formatter
            }
        },
        "root": {
            "handlers": ["default"],
            "level": level.upper()
        },
        "loggers": {
            # request-level noise at DEBUG
            "web3": {"level": "WARNING"},
            "httpx": {"level": "WARNING"}
        }
    }
    logging.config.dictConfig(config)
