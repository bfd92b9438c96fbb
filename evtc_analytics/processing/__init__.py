"""
Pipeline entry points for single logs and batches.
"""

from .pipeline import ProcessedLog, process_log
from .batch import BatchProcessor, BatchResult, PipelineFailure

__all__ = [
    "ProcessedLog",
    "process_log",
    "BatchProcessor",
    "BatchResult",
    "PipelineFailure",
]
