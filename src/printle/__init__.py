"""Print-job transformation and IPP submission pipeline."""

from .base_transport import (
    ContentKind,
    OutcomeStatus,
    PrintRequest,
    PrintTransport,
    SubmissionOutcome,
    TransportResponse,
)
from .dispatcher import PrintDispatcher, get_print_transport
from .errors import (
    MalformedRangeError,
    MissingInputError,
    PrintingError,
    PrintJobCancelledError,
    TransformError,
    TransportError,
)
from .job_attributes import build_job_attributes, resolve_document_format
from .page_selection import DuplexDirective, resolve_page_range

__all__ = [
    "PrintDispatcher",
    "PrintRequest",
    "PrintTransport",
    "SubmissionOutcome",
    "TransportResponse",
    "ContentKind",
    "OutcomeStatus",
    "DuplexDirective",
    "get_print_transport",
    "build_job_attributes",
    "resolve_document_format",
    "resolve_page_range",
    "PrintingError",
    "MissingInputError",
    "MalformedRangeError",
    "TransformError",
    "TransportError",
    "PrintJobCancelledError",
]
