from loglift.api_objects.types import CycleSummary, SkippedFile

__all__ = [
    "CycleSummary",
    "SkippedFile",
]
