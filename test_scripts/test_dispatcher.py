# -*- coding: utf-8 -*-
"""End-to-end checks for the print dispatcher with an in-memory transport."""

from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import List, Mapping, Optional
from unittest.mock import patch

import fitz
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from printle.base_transport import (
    ContentKind,
    OutcomeStatus,
    PrintRequest,
    PrintTransport,
    TransportResponse,
)
from printle.dispatcher import PrintDispatcher
from printle.errors import (
    MalformedRangeError,
    MissingInputError,
    PrintJobCancelledError,
    TransformError,
    TransportError,
)
from printle.page_selection import DuplexDirective
from printle.pdf_splitter import PDFSplitter
from printle.transports.ipp_transport import IPPTransport

PRINTER = "ipp://printer.local/ipp/print"


class RecordingTransport(PrintTransport):
    def __init__(self, response: Optional[TransportResponse] = None, error: Optional[Exception] = None):
        self.response = response or TransportResponse(0x0000, "successful-ok", job_id=101)
        self.error = error
        self.calls: List[dict] = []

    @property
    def name(self) -> str:
        return "recording"

    def submit(
        self,
        printer_url: str,
        job_name: str,
        document_format: str,
        attributes: Mapping[str, str],
        payload: bytes,
    ) -> TransportResponse:
        self.calls.append(
            {
                "printer_url": printer_url,
                "job_name": job_name,
                "document_format": document_format,
                "attributes": dict(attributes),
                "payload": payload,
            }
        )
        if self.error is not None:
            raise self.error
        return self.response


def _norm(text: str) -> str:
    return "".join((text or "").split()).lower()


def _build_pdf(pages: int) -> bytes:
    doc = fitz.open()
    try:
        for idx in range(pages):
            page = doc.new_page(width=595, height=842)
            page.insert_text((72, 80), f"PAGE-{idx + 1}", fontsize=18, fontname="helv")
        return doc.tobytes()
    finally:
        doc.close()


def _labels(payload: bytes) -> list[str]:
    doc = fitz.open(stream=payload, filetype="pdf")
    try:
        return [_norm(page.get_text("text")) for page in doc]
    finally:
        doc.close()


def _pdf_request(pages: int = 10, **kwargs) -> PrintRequest:
    values = dict(
        content=_build_pdf(pages),
        original_name="report.pdf",
        mime_type="application/pdf",
        printer_url=PRINTER,
    )
    values.update(kwargs)
    return PrintRequest.create(**values)


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    path = tmp_path / "staging"
    path.mkdir()
    return path


def _dispatcher(transport: PrintTransport, staging_dir: Path) -> PrintDispatcher:
    return PrintDispatcher(transport=transport, staging_dir=str(staging_dir))


def test_manual_odd_with_range_and_grayscale(staging_dir: Path) -> None:
    transport = RecordingTransport()
    outcome = _dispatcher(transport, staging_dir).submit(
        _pdf_request(10, page_range="2-4", duplex="odd", grayscale="true")
    )

    assert outcome.status == OutcomeStatus.ACCEPTED
    assert outcome.needs_second_phase
    assert not outcome.even_pass_empty
    assert outcome.kind == "needs_second_phase"
    assert outcome.job_id == 101
    assert outcome.page_count == 2

    (call,) = transport.calls
    assert call["attributes"] == {"print-color-mode": "monochrome"}
    assert call["document_format"] == "application/pdf"
    assert call["job_name"] == "report.pdf"
    assert call["printer_url"] == PRINTER
    assert _labels(call["payload"]) == ["page-2", "page-4"]


def test_manual_even_phase_uses_original_content(staging_dir: Path) -> None:
    transport = RecordingTransport()
    dispatcher = _dispatcher(transport, staging_dir)
    request = _pdf_request(10, page_range="2-4", duplex="odd")

    first = dispatcher.submit(request)
    assert first.needs_second_phase

    second = dispatcher.submit(
        PrintRequest.create(
            content=request.content,
            original_name=request.original_name,
            mime_type=request.mime_type,
            printer_url=request.printer_url,
            page_range=request.page_range,
            duplex="even",
        )
    )
    assert second.accepted
    assert not second.needs_second_phase
    assert second.kind == "accepted"
    assert _labels(transport.calls[1]["payload"]) == ["page-3"]


def test_full_document_is_sent_unchanged(staging_dir: Path) -> None:
    transport = RecordingTransport()
    request = _pdf_request(3)
    outcome = _dispatcher(transport, staging_dir).submit(request)

    assert outcome.accepted
    assert outcome.page_count == 3
    assert transport.calls[0]["payload"] == request.content
    assert transport.calls[0]["attributes"] == {}


def test_hardware_duplex_sets_sides(staging_dir: Path) -> None:
    transport = RecordingTransport()
    outcome = _dispatcher(transport, staging_dir).submit(_pdf_request(4, duplex="auto"))

    assert outcome.accepted
    assert not outcome.needs_second_phase
    assert transport.calls[0]["attributes"] == {"sides": "two-sided-long-edge"}


def test_single_page_odd_pass_reports_empty_even_pass(staging_dir: Path) -> None:
    transport = RecordingTransport()
    outcome = _dispatcher(transport, staging_dir).submit(_pdf_request(5, page_range="3", duplex="odd"))

    assert outcome.accepted
    assert outcome.needs_second_phase
    assert outcome.even_pass_empty
    assert outcome.kind == "needs_second_phase"
    assert outcome.to_dict()["evenPassEmpty"] is True
    assert _labels(transport.calls[0]["payload"]) == ["page-3"]


def test_even_pass_with_nothing_to_print_is_a_transform_error(staging_dir: Path) -> None:
    transport = RecordingTransport()
    with pytest.raises(TransformError):
        _dispatcher(transport, staging_dir).submit(_pdf_request(1, duplex="even"))
    assert transport.calls == []


def test_device_rejection_carries_status_and_no_job_id(staging_dir: Path) -> None:
    transport = RecordingTransport(
        response=TransportResponse(
            0x040B,
            "client-error-attributes-or-values-not-supported",
            job_id=None,
            status_message="print-color-mode unsupported",
        )
    )
    outcome = _dispatcher(transport, staging_dir).submit(_pdf_request(2, grayscale=True))

    assert outcome.status == OutcomeStatus.DEVICE_REJECTED
    assert outcome.protocol_status == "client-error-attributes-or-values-not-supported"
    assert outcome.detail == "print-color-mode unsupported"
    assert outcome.job_id is None
    assert "jobId" not in outcome.to_dict()
    assert len(transport.calls) == 1


def test_rejected_odd_pass_does_not_ask_for_second_phase(staging_dir: Path) -> None:
    transport = RecordingTransport(response=TransportResponse(0x0506, "server-error-not-accepting-jobs"))
    outcome = _dispatcher(transport, staging_dir).submit(_pdf_request(4, duplex="odd"))

    assert outcome.status == OutcomeStatus.DEVICE_REJECTED
    assert not outcome.needs_second_phase


def test_transport_failure_carries_detail(staging_dir: Path) -> None:
    transport = RecordingTransport(error=TransportError("Printer connection failed: refused"))
    outcome = _dispatcher(transport, staging_dir).submit(_pdf_request(2, duplex="odd"))

    assert outcome.status == OutcomeStatus.TRANSPORT_FAILURE
    assert "refused" in outcome.detail
    assert outcome.job_id is None
    assert not outcome.needs_second_phase


def test_unparseable_printer_address_is_a_transport_failure(staging_dir: Path) -> None:
    dispatcher = PrintDispatcher(transport=IPPTransport(timeout=1.0), staging_dir=str(staging_dir))
    with patch("printle.transports.ipp_transport.requests.post") as post:
        outcome = dispatcher.submit(_pdf_request(2, printer_url="ipp://[fe80::1/ipp/print"))

    post.assert_not_called()
    assert outcome.status == OutcomeStatus.TRANSPORT_FAILURE
    assert "fe80::1" in outcome.detail
    assert list(staging_dir.iterdir()) == []


@pytest.mark.parametrize(
    "overrides",
    [{"content": b""}, {"content": None}, {"printer_url": ""}, {"printer_url": "   "}],
)
def test_missing_input_never_reaches_transport(staging_dir: Path, overrides) -> None:
    transport = RecordingTransport()
    with pytest.raises(MissingInputError):
        _dispatcher(transport, staging_dir).submit(_pdf_request(2, **overrides))
    assert transport.calls == []


def test_range_outside_document_is_reported(staging_dir: Path) -> None:
    transport = RecordingTransport()
    with pytest.raises(MalformedRangeError):
        _dispatcher(transport, staging_dir).submit(_pdf_request(3, page_range="999"))
    assert transport.calls == []
    assert list(staging_dir.iterdir()) == []


def test_corrupt_pdf_is_a_transform_error(staging_dir: Path) -> None:
    transport = RecordingTransport()
    request = PrintRequest.create(
        content=b"%PDF-1.7 truncated garbage",
        original_name="broken.pdf",
        mime_type="application/pdf",
        printer_url=PRINTER,
    )
    with pytest.raises(TransformError):
        _dispatcher(transport, staging_dir).submit(request)
    assert transport.calls == []
    assert list(staging_dir.iterdir()) == []


def test_opaque_content_passes_through_and_reports_ignored_directives(staging_dir: Path) -> None:
    transport = RecordingTransport()
    request = PrintRequest.create(
        content=b"\x89PNG raw image bytes",
        original_name="photo.png",
        mime_type="image/png",
        printer_url=PRINTER,
        page_range="1-2",
        duplex="odd",
        grayscale="true",
    )
    assert request.content_kind == ContentKind.OPAQUE

    outcome = _dispatcher(transport, staging_dir).submit(request)

    assert outcome.accepted
    assert outcome.ignored_directives == ("pages", "duplex")
    assert not outcome.needs_second_phase
    assert outcome.page_count is None
    call = transport.calls[0]
    assert call["payload"] == request.content
    assert call["document_format"] == "application/octet-stream"
    assert call["attributes"] == {"print-color-mode": "monochrome"}


def test_staging_directory_is_released_on_every_path(staging_dir: Path) -> None:
    for transport in (
        RecordingTransport(),
        RecordingTransport(response=TransportResponse(0x0500, "server-error-internal-error")),
        RecordingTransport(error=TransportError("unreachable")),
    ):
        _dispatcher(transport, staging_dir).submit(_pdf_request(4, page_range="1-2"))
        assert list(staging_dir.iterdir()) == []


def test_unexpected_transport_exception_still_releases_staging(staging_dir: Path) -> None:
    transport = RecordingTransport(error=RuntimeError("bug in transport"))
    with pytest.raises(RuntimeError):
        _dispatcher(transport, staging_dir).submit(_pdf_request(2))
    assert list(staging_dir.iterdir()) == []


def test_cancelled_submission_never_contacts_device(staging_dir: Path) -> None:
    transport = RecordingTransport()
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(PrintJobCancelledError):
        _dispatcher(transport, staging_dir).submit(_pdf_request(2), cancel_event=cancel)
    assert transport.calls == []
    assert list(staging_dir.iterdir()) == []


def test_cancel_after_transform_never_contacts_device(staging_dir: Path) -> None:
    cancel = threading.Event()

    class CancellingSplitter(PDFSplitter):
        @staticmethod
        def serialize(doc) -> bytes:
            cancel.set()
            return PDFSplitter.serialize(doc)

    transport = RecordingTransport()
    dispatcher = PrintDispatcher(transport=transport, splitter=CancellingSplitter(), staging_dir=str(staging_dir))
    with pytest.raises(PrintJobCancelledError):
        dispatcher.submit(_pdf_request(4, page_range="1-2"), cancel_event=cancel)
    assert cancel.is_set()
    assert transport.calls == []
    assert list(staging_dir.iterdir()) == []


@pytest.mark.parametrize(
    "original_name",
    ["Dr. Smith letter " + "x" * 300, "scan\x00.pdf", "../../etc/passwd", "report.tar.gz.pdf"],
)
def test_uploaded_file_name_does_not_shape_staging(staging_dir: Path, original_name: str) -> None:
    transport = RecordingTransport()
    outcome = _dispatcher(transport, staging_dir).submit(
        _pdf_request(3, original_name=original_name, page_range="2")
    )

    assert outcome.accepted
    assert _labels(transport.calls[0]["payload"]) == ["page-2"]
    assert list(staging_dir.iterdir()) == []


def test_concurrent_submissions_are_independent(staging_dir: Path) -> None:
    transport = RecordingTransport()
    dispatcher = _dispatcher(transport, staging_dir)
    outcomes = {}
    requests = {page: _pdf_request(6, page_range=str(page)) for page in range(1, 7)}

    def worker(page: int) -> None:
        outcomes[page] = dispatcher.submit(requests[page])

    threads = [threading.Thread(target=worker, args=(page,)) for page in range(1, 7)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert all(outcome.accepted for outcome in outcomes.values())
    sent = sorted(label for call in transport.calls for label in _labels(call["payload"]))
    assert sent == [f"page-{n}" for n in range(1, 7)]
    assert list(staging_dir.iterdir()) == []


def test_request_create_normalizes_form_values() -> None:
    request = PrintRequest.create(
        content=b"x",
        original_name="  ",
        mime_type="Application/PDF",
        printer_url=f"  {PRINTER} ",
        page_range=None,
        grayscale="false",
        duplex="EVEN",
    )
    assert request.content_kind == ContentKind.PDF
    assert request.original_name == "document"
    assert request.mime_type == "application/pdf"
    assert request.printer_url == PRINTER
    assert request.page_range == ""
    assert request.grayscale is False
    assert request.duplex == DuplexDirective.MANUAL_EVEN
