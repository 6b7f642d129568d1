# bikeshare_analysis/utils/exceptions.py
"""
Custom exceptions for the bike-share rider analysis pipeline
"""

from typing import Optional, Dict, Any, Type


class PipelineError(Exception):
    """
    Base exception for all pipeline errors

    Carries a machine-readable error code and context so failures can be
    logged as structured records
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize pipeline error

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code for categorization
            context: Additional context information
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context,
            'cause': str(self.cause) if self.cause else None
        }

    def __str__(self) -> str:
        base_msg = f"{self.error_code}: {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" (Context: {context_str})"
        if self.cause:
            base_msg += f" (Caused by: {self.cause})"
        return base_msg


class ConfigurationError(PipelineError):
    """
    Raised when there are configuration issues

    Examples:
    - Invalid output table format
    - Malformed month range on the command line
    - Non-positive worker count or ride duration cap
    """
    pass


class ExtractionError(PipelineError):
    """
    Raised when a raw trip batch cannot be obtained

    Examples:
    - Monthly archive download failures
    - Archives without any CSV member
    - Unreadable or unsupported batch files
    """
    pass


class SchemaMismatchError(PipelineError):
    """
    Raised by the merger when batches disagree on columns or column types

    The offending batch and column are available as attributes so callers
    can report exactly which monthly file broke the union.
    """

    def __init__(self, message: str, batch_name: str, column: str, **kwargs):
        context = kwargs.pop('context', None) or {}
        context.update({'batch': batch_name, 'column': column})
        super().__init__(message, context=context, **kwargs)
        self.batch_name = batch_name
        self.column = column


class ValidationError(PipelineError):
    """
    Raised when a field cannot be parsed into its declared type

    Rows dropped by the cleaning rules are not validation errors; this is
    reserved for structural failures such as unparsable timestamps or a
    missing timestamp column.
    """
    pass


class ProcessingError(PipelineError):
    """
    Raised during data processing operations

    Examples:
    - Merge requested with no batches
    - Batch operations that collected errors
    """
    pass


class AggregationError(PipelineError):
    """Raised when one or more summary views fail to compute"""
    pass


class LoaderError(PipelineError):
    """
    Raised when output tables cannot be written

    Examples:
    - Output directory not writable
    - Parquet engine failures
    """
    pass


def handle_pipeline_exception(
    func_name: str,
    exception: Exception,
    context: Optional[Dict[str, Any]] = None
) -> PipelineError:
    """
    Convert generic exceptions to pipeline-specific exceptions

    Args:
        func_name: Name of the function where error occurred
        exception: Original exception
        context: Additional context information

    Returns:
        Appropriate PipelineError subclass
    """
    if isinstance(exception, PipelineError):
        return exception

    error_context = {
        'function': func_name,
        **(context or {})
    }

    if isinstance(exception, (ConnectionError, TimeoutError)):
        return ExtractionError(
            f"Network error in {func_name}: {str(exception)}",
            error_code="NETWORK_ERROR",
            context=error_context,
            cause=exception
        )

    elif isinstance(exception, FileNotFoundError):
        return ExtractionError(
            f"File not found in {func_name}: {str(exception)}",
            error_code="FILE_NOT_FOUND",
            context=error_context,
            cause=exception
        )

    elif isinstance(exception, PermissionError):
        return LoaderError(
            f"Permission denied in {func_name}: {str(exception)}",
            error_code="PERMISSION_DENIED",
            context=error_context,
            cause=exception
        )

    elif isinstance(exception, (ValueError, TypeError)):
        return ValidationError(
            f"Data validation error in {func_name}: {str(exception)}",
            error_code="VALIDATION_ERROR",
            context=error_context,
            cause=exception
        )

    elif isinstance(exception, MemoryError):
        return ProcessingError(
            f"Memory error in {func_name}: {str(exception)}",
            error_code="MEMORY_ERROR",
            context=error_context,
            cause=exception
        )

    return PipelineError(
        f"Unexpected error in {func_name}: {str(exception)}",
        error_code="UNKNOWN_ERROR",
        context=error_context,
        cause=exception
    )


class ErrorCollector:
    """
    Collects errors across a batch operation so every failure is reported
    together instead of stopping at the first one
    """

    def __init__(self):
        self.errors = []
        self.warnings = []

    def add_error(self, error: Exception, context: Optional[Dict[str, Any]] = None):
        """Add an error to the collection"""
        if isinstance(error, PipelineError):
            if context:
                error.context.update(context)
            self.errors.append(error)
        else:
            self.errors.append(handle_pipeline_exception("batch_operation", error, context))

    def add_warning(self, message: str, context: Optional[Dict[str, Any]] = None):
        """Add a warning to the collection"""
        self.warnings.append({
            'message': message,
            'context': context or {}
        })

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of collected errors and warnings"""
        return {
            'error_count': self.error_count,
            'warning_count': self.warning_count,
            'errors': [error.to_dict() for error in self.errors],
            'warnings': self.warnings
        }

    def raise_if_errors(
        self,
        message: str = "Batch operation failed",
        error_class: Type[PipelineError] = ProcessingError
    ):
        """
        Raise a single exception if any errors were collected

        Args:
            message: Prefix for the raised error message
            error_class: PipelineError subclass to raise
        """
        if self.has_errors:
            raise error_class(
                f"{message} with {self.error_count} errors",
                error_code="BATCH_ERRORS",
                context=self.get_summary(),
                cause=self.errors[0]
            )

    def clear(self):
        """Clear all collected errors and warnings"""
        self.errors.clear()
        self.warnings.clear()
