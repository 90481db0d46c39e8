import logging
import logging.config
from pathlib import Path
from learnhub.core.config import settings

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "formatter": "default",
            "stream": "ext://sys.stdout"
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "INFO",
            "formatter": "default",
            "filename": "logs/app.log",
            "maxBytes": 10485760,
            "backupCount": 5
        },
        "error_file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "ERROR",
            "formatter": "default",
            "filename": "logs/error.log",
            "maxBytes": 10485760,
            "backupCount": 5
        }
    },
    "root": {
        "level": "INFO",
        "handlers": ["console", "file", "error_file"]
    },
    "loggers": {
        "learnhub": {
            "level": "INFO",
            "handlers": ["console", "file", "error_file"],
            "propagate": False
        },
        "learnhub.middleware.logging": {
            "level": "INFO",
            "handlers": ["console", "file"],
            "propagate": False
        },
        "uvicorn.access": {
            "level": "WARNING",
            "handlers": ["console"],
            "propagate": False
        }
    }
}


def _console_only(config: dict) -> dict:
    config["handlers"] = {"console": config["handlers"]["console"]}
    config["root"]["handlers"] = ["console"]
    for logger_config in config["loggers"].values():
        logger_config["handlers"] = ["console"]
    return config


def configure_logging():
    config = {**LOGGING_CONFIG, "handlers": dict(LOGGING_CONFIG["handlers"]),
              "root": dict(LOGGING_CONFIG["root"]),
              "loggers": {k: dict(v) for k, v in LOGGING_CONFIG["loggers"].items()}}

    if settings.LOG_DIR:
        log_path = Path(settings.LOG_DIR)
        log_path.mkdir(exist_ok=True)
        for name in ("file", "error_file"):
            handler = dict(config["handlers"][name])
            handler["filename"] = str(log_path / Path(handler["filename"]).name)
            config["handlers"][name] = handler
    else:
        config = _console_only(config)

    config["root"]["level"] = settings.LOG_LEVEL
    config["loggers"]["learnhub"]["level"] = settings.LOG_LEVEL
    logging.config.dictConfig(config)
