from .file_monitor import TestFileMonitor
from .incremental_executor import IncrementalExecutor
from .result_aggregator import ResultAggregator
from .step_executor import StepExecutor
from .test_runner import TextTestRunner, shallow_summary

__all__ = [
    "IncrementalExecutor",
    "ResultAggregator",
    "StepExecutor",
    "TestFileMonitor",
    "TextTestRunner",
    "shallow_summary",
]
