"""Utility modules"""

from .logger import get_logger, setup_pipeline_logging, PerformanceLogger, timed_operation
from .exceptions import (
    PipelineError, ConfigurationError, ExtractionError, SchemaMismatchError,
    ValidationError, ProcessingError, AggregationError, LoaderError,
    handle_pipeline_exception, ErrorCollector
)
