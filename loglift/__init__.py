"""Checkpointed incremental harvesting of rotated remote log files."""

from loglift.api_objects import CycleSummary
from loglift.config import AppConfig, load_config
from loglift.constants import APP_NAME
from loglift.models import Checkpoint

__all__ = [
    "APP_NAME",
    "AppConfig",
    "Checkpoint",
    "CycleSummary",
    "__version__",
    "load_config",
]
__version__ = "0.1.0"
