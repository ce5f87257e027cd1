# saas_starter/core/logging_config.py
import logging
import logging.config

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Install one console handler for the `saas_starter` logger tree."""
    global _configured
    if _configured:
        logging.getLogger("saas_starter").setLevel(level)
        return

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "saas_starter": {
                    "handlers": ["console"],
                    "level": level,
                    "propagate": True,
                },
            },
        }
    )
    _configured = True
