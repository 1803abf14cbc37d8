from typing import Optional


class AnalysisError(Exception):
    """Base class for every failure raised inside the analysis pipeline."""

    # Pinned classification code; None lets the classifier decide from the message.
    code: Optional[str] = None


class ConfigurationError(AnalysisError):
    """A required credential or model identifier is missing or unusable."""

    code = "SERVER_ERROR"


class FetchError(AnalysisError):
    """The target page could not be retrieved."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(AnalysisError):
    """The retrieved document could not be parsed."""

    code = "PARSE_ERROR"


class RequestTimeoutError(AnalysisError):
    """An outbound request exceeded its time budget."""

    code = "TIMEOUT"


class RemoteServiceError(AnalysisError):
    """An upstream service answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteJobError(AnalysisError):
    """Base for failures of the asynchronous text-generation job."""


class RemoteJobTimeout(RemoteJobError):
    code = "TIMEOUT"


class RemoteJobFailed(RemoteJobError):
    pass


class RemoteJobCanceled(RemoteJobError):
    code = "SERVER_ERROR"


class UnparsableResponse(AnalysisError):
    """No repair strategy could turn the text-generation output into JSON."""

    code = "PARSE_ERROR"


class PerformanceFetchError(AnalysisError):
    """Raised inside the performance client only; always absorbed into fallbacks."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
