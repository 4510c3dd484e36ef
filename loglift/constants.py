"""Package-wide constants and defaults."""

from __future__ import annotations

APP_NAME = "loglift"

ENV_LOG_LEVEL = "LOGLIFT_LOG_LEVEL"

DEFAULT_LOG_LEVEL = "INFO"

DEFAULT_POLLING_INTERVAL_SECONDS = 600
DEFAULT_NUMBER_OF_LINES = 10_000

# Cursor token handed to the source for files that have never been read.
DEFAULT_CURSOR = "0"

SINCEDB_PREFIX = ".sincedb_"

CYCLE_OK = "ok"
CYCLE_SOURCE_ERROR = "source_error"

JSON_PARSE_FAILURE_TAG = "_jsonparsefailure"
