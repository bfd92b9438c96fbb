"""
EVTC Analytics

Processing pipeline for arcdps combat logs: binary decoding, model
reconstruction, encounter and result determination, statistics and
skill rotations.
"""

__version__ = "0.1.0"
__author__ = "EVTC Analytics Team"

from .config.settings import ParserSettings
from .processing.pipeline import ProcessedLog, process_log

__all__ = ["ParserSettings", "ProcessedLog", "process_log"]
