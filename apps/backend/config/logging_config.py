"""
Environment-specific logging profiles.

Extraction degrades field by field and logs each miss at DEBUG, so the
profiles mostly differ in how much of that chatter reaches the console.
"""
import logging
import os
from typing import Any, Dict, Optional

# Loggers that are noisy on real-world decks
EXTRACTION_LOGGERS = [
    "services.conversion.safe_extract",
    "services.conversion.shape_detector",
    "services.conversion.shape_extractor",
    "services.conversion.effect_extractor",
    "services.conversion.smart_art_extractor",
    "services.conversion.assets",
]

PROFILES: Dict[str, Dict[str, Any]] = {
    "production": {
        "default_level": "WARNING",
        "console_format": "%(levelname)s - %(name)s - %(message)s",
        # Request lifecycle lines are noise in production
        "quiet_loggers": EXTRACTION_LOGGERS + ["pptx", "api.middleware", "uvicorn.access"],
    },
    "development": {
        "default_level": "INFO",
        "console_format": "%(asctime)s - %(levelname)s - %(message)s",
        "quiet_loggers": ["pptx"],
    },
    "debug": {
        "default_level": "DEBUG",
        "console_format": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
        "quiet_loggers": [],
    },
}


def current_environment() -> str:
    if os.getenv("DEBUG", "false").lower() == "true":
        return "debug"
    env = (os.getenv("ENVIRONMENT") or os.getenv("ENV") or "development").lower()
    return "production" if env == "production" else "development"


def get_logging_config() -> Dict[str, Any]:
    """Profile for the current environment (DEBUG=true wins over ENV)"""
    environment = current_environment()
    return dict(PROFILES[environment], environment=environment)


def apply_logging_config(config: Dict[str, Any] = None, level: Optional[str] = None):
    """Install a profile on the root logger; `level` overrides the profile default"""
    if config is None:
        config = get_logging_config()

    root_level = getattr(logging, (level or config["default_level"]).upper(), logging.INFO)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(config["console_format"]))

    root_logger = logging.getLogger()
    root_logger.handlers = [console_handler]
    root_logger.setLevel(root_level)

    for name in config.get("quiet_loggers", []):
        logging.getLogger(name).setLevel(logging.WARNING)

    return config
