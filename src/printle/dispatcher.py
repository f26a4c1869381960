"""Print dispatcher: turns one upload into one submitted print job."""

from __future__ import annotations

import logging
import tempfile
import threading
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from .base_transport import (
    ContentKind,
    OutcomeStatus,
    PrintRequest,
    PrintTransport,
    SubmissionOutcome,
)
from .errors import MissingInputError, PrintJobCancelledError, TransportError
from .job_attributes import build_job_attributes, resolve_document_format
from .page_selection import DuplexDirective, compose_page_indices, resolve_page_range
from .pdf_splitter import PDFSplitter
from .transports.ipp_transport import IPPTransport

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    IDLE = "idle"
    TRANSFORMING = "transforming"
    SUBMITTING = "submitting"
    ACCEPTED = "accepted"
    DEVICE_REJECTED = "device_rejected"
    TRANSPORT_FAILURE = "transport_failure"


def get_print_transport(config=None) -> PrintTransport:
    """Factory for the default transport, configured from `config` if given."""
    if config is None:
        return IPPTransport()
    return IPPTransport(
        timeout=float(getattr(config, "IPP_TIMEOUT", 30.0)),
        requesting_user=getattr(config, "REQUESTING_USER", "PrintLe-User"),
        verify_tls=bool(getattr(config, "IPP_VERIFY_TLS", True)),
    )


class PrintDispatcher:
    """
    Facade used by the HTTP layer for printing.

    Holds no per-job state: one instance serves any number of concurrent
    submit() calls.

    Manual duplex is two calls. The first, with MANUAL_ODD, answers with
    `needs_second_phase`; the caller then has the user flip the stack and
    calls again with MANUAL_EVEN and the original, untouched upload.
    """

    def __init__(
        self,
        transport: Optional[PrintTransport] = None,
        splitter: Optional[PDFSplitter] = None,
        staging_dir: Optional[str] = None,
    ):
        self.transport = transport or get_print_transport()
        self.splitter = splitter or PDFSplitter()
        self.staging_dir = staging_dir

    def submit(
        self,
        request: PrintRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> SubmissionOutcome:
        """
        Transform and send one print job.

        Raises MissingInputError, MalformedRangeError or TransformError before
        the device is contacted, and PrintJobCancelledError when
        `cancel_event` is set before the transport call starts. Once the job
        has been handed to the transport it can no longer be withdrawn: the
        device may print it even if the caller gives up waiting.
        """
        job = request.original_name
        if not request.content or not request.printer_url:
            raise MissingInputError("Missing file or printerUrl")
        self._check_cancelled(job, cancel_event)

        self._transition(job, JobState.IDLE, JobState.TRANSFORMING)
        logger.info(
            "Job %s: [duplex=%s] [pages=%s] [grayscale=%s]",
            job,
            request.duplex.value,
            request.page_range or "all",
            request.grayscale,
        )
        with self._staged_content(request) as staged_path:
            payload, page_count, ignored, even_side = self._transform(request, staged_path)
            attributes = build_job_attributes(request.grayscale, request.duplex)
            document_format = resolve_document_format(request.mime_type)
            self._check_cancelled(job, cancel_event)

            self._transition(job, JobState.TRANSFORMING, JobState.SUBMITTING)
            try:
                response = self.transport.submit(
                    request.printer_url,
                    job,
                    document_format,
                    attributes,
                    payload,
                )
            except TransportError as exc:
                self._transition(job, JobState.SUBMITTING, JobState.TRANSPORT_FAILURE)
                logger.error("Job %s: transport failure: %s", job, exc)
                return SubmissionOutcome(
                    status=OutcomeStatus.TRANSPORT_FAILURE,
                    detail=str(exc),
                    ignored_directives=ignored,
                    page_count=page_count,
                )

        if not response.successful:
            self._transition(job, JobState.SUBMITTING, JobState.DEVICE_REJECTED)
            logger.warning(
                "Job %s: printer rejected job: %s (%s)",
                job,
                response.status_name,
                response.status_message or "no status-message",
            )
            return SubmissionOutcome(
                status=OutcomeStatus.DEVICE_REJECTED,
                protocol_status=response.status_name,
                detail=response.status_message,
                ignored_directives=ignored,
                page_count=page_count,
            )

        self._transition(job, JobState.SUBMITTING, JobState.ACCEPTED)
        needs_second_phase = (
            request.duplex == DuplexDirective.MANUAL_ODD and request.content_kind == ContentKind.PDF
        )
        even_pass_empty = needs_second_phase and not even_side
        if needs_second_phase:
            logger.info(
                "Job %s: odd pages sent, waiting for the even pass%s",
                job,
                " (no even pages)" if even_pass_empty else "",
            )
        return SubmissionOutcome(
            status=OutcomeStatus.ACCEPTED,
            job_id=response.job_id,
            protocol_status=response.status_name,
            needs_second_phase=needs_second_phase,
            even_pass_empty=even_pass_empty,
            ignored_directives=ignored,
            page_count=page_count,
        )

    def _transform(
        self,
        request: PrintRequest,
        staged_path: Path,
    ) -> Tuple[bytes, Optional[int], Tuple[str, ...], bool]:
        """Return (payload, page count, ignored directives, has even side)."""
        if request.content_kind != ContentKind.PDF:
            ignored: List[str] = []
            if request.page_range:
                ignored.append("pages")
            if request.duplex.is_manual:
                ignored.append("duplex")
            if ignored:
                logger.warning(
                    "Job %s: %s is not paginated, ignoring %s",
                    request.original_name,
                    request.mime_type,
                    ", ".join(ignored),
                )
            return staged_path.read_bytes(), None, tuple(ignored), False

        doc = self.splitter.open(staged_path)
        try:
            total = self.splitter.page_count(doc)
            range_indices = resolve_page_range(request.page_range, total)
            selected = range_indices if range_indices is not None else list(range(total))
            page_indices = compose_page_indices(total, range_indices, request.duplex)
            has_even_side = len(selected) > 1

            if page_indices == list(range(total)):
                return staged_path.read_bytes(), total, (), has_even_side

            out = self.splitter.extract_pages(doc, page_indices)
            try:
                payload = self.splitter.serialize(out)
            finally:
                out.close()
            logger.debug(
                "Job %s: kept pages %s of %d",
                request.original_name,
                [idx + 1 for idx in page_indices],
                total,
            )
            return payload, len(page_indices), (), has_even_side
        finally:
            doc.close()

    @contextmanager
    def _staged_content(self, request: PrintRequest) -> Iterator[Path]:
        name = "upload.pdf" if request.content_kind == ContentKind.PDF else "upload.bin"
        with tempfile.TemporaryDirectory(prefix="printle-", dir=self.staging_dir) as tmp:
            staged_path = Path(tmp) / name
            staged_path.write_bytes(request.content)
            yield staged_path

    @staticmethod
    def _check_cancelled(job: str, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Job %s: cancelled before submission", job)
            raise PrintJobCancelledError(f"Job {job!r} was cancelled before it was sent.")

    @staticmethod
    def _transition(job: str, old: JobState, new: JobState) -> None:
        logger.debug("Job %s: %s -> %s", job, old.value, new.value)
