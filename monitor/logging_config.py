import json
import logging
import os
from logging.handlers import RotatingFileHandler

from monitor import config


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
        }
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def setup_logging(level=None, log_dir=None, fmt=None):
    """Configure the root logger with a console and a rotating file handler."""
    level = level or config.LOG_LEVEL
    log_dir = config.LOG_DIR if log_dir is None else log_dir
    fmt = config.LOG_FORMAT if fmt is None else fmt

    root = logging.getLogger()
    root.setLevel(level)
    # Clear existing handlers to avoid duplicate logs on reload
    root.handlers = []

    if fmt.lower() == "json":
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir:
        # Rotating file handler (5 MB, keep 3 backups)
        try:
            os.makedirs(log_dir, exist_ok=True)
            fh = RotatingFileHandler(os.path.join(log_dir, "monitor.log"),
                                     maxBytes=5 * 1024 * 1024, backupCount=3)
            fh.setFormatter(formatter)
            root.addHandler(fh)
        except OSError:
            root.warning("Could not attach rotating file handler; continuing with console only")
    return root


def log_config():
    """Log the effective configuration."""
    logger = logging.getLogger("monitor")
    logger.info("=== Crypto Monitor configuration ===")
    for key in ("DATA_URL", "PROXY_URL", "POLL_INTERVAL", "REQUEST_TIMEOUT",
                "DEFAULT_COIN", "DEFAULT_HOURS", "DISPLAY_TIMEZONE"):
        logger.info("%s: %s", key, getattr(config, key))
