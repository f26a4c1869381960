"""Abstract print transport contract and shared request/outcome models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .job_attributes import is_pdf_mime_type, normalize_mime_type
from .page_selection import DuplexDirective, normalize_duplex


class ContentKind(str, Enum):
    PDF = "pdf"
    OPAQUE = "opaque"  # not paginated; sent to the device untouched


@dataclass(frozen=True, slots=True)
class PrintRequest:
    """One submission as handed over by the file receiver."""

    content: bytes
    content_kind: ContentKind
    original_name: str
    mime_type: str
    printer_url: str
    page_range: str = ""
    grayscale: bool = False
    duplex: DuplexDirective = DuplexDirective.NONE

    @classmethod
    def create(
        cls,
        content: bytes | None,
        original_name: str | None,
        mime_type: str | None,
        printer_url: str | None,
        page_range: str | None = None,
        grayscale: bool | str | None = False,
        duplex: str | DuplexDirective | None = None,
    ) -> "PrintRequest":
        """Build a request from loosely typed form values."""
        if isinstance(grayscale, str):
            grayscale = grayscale.strip().lower() == "true"
        mime = normalize_mime_type(mime_type) or "application/octet-stream"
        return cls(
            content=bytes(content or b""),
            content_kind=ContentKind.PDF if is_pdf_mime_type(mime) else ContentKind.OPAQUE,
            original_name=(original_name or "").strip() or "document",
            mime_type=mime,
            printer_url=(printer_url or "").strip(),
            page_range=(page_range or "").strip(),
            grayscale=bool(grayscale),
            duplex=normalize_duplex(duplex),
        )


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """Protocol-level answer of the device to one job submission."""

    status_code: int
    status_name: str
    job_id: Optional[int] = None
    status_message: Optional[str] = None

    @property
    def successful(self) -> bool:
        # successful-ok, successful-ok-ignored-or-substituted-attributes, ...
        return 0x0000 <= self.status_code <= 0x00FF


class OutcomeStatus(str, Enum):
    ACCEPTED = "accepted"
    DEVICE_REJECTED = "device_rejected"
    TRANSPORT_FAILURE = "transport_failure"


@dataclass(frozen=True, slots=True)
class SubmissionOutcome:
    """Normalized result of one orchestrator invocation."""

    status: OutcomeStatus
    job_id: Optional[int] = None
    protocol_status: Optional[str] = None
    detail: Optional[str] = None
    needs_second_phase: bool = False
    even_pass_empty: bool = False
    ignored_directives: Tuple[str, ...] = ()
    page_count: Optional[int] = None

    @property
    def accepted(self) -> bool:
        return self.status == OutcomeStatus.ACCEPTED

    @property
    def kind(self) -> str:
        if self.accepted and self.needs_second_phase:
            return "needs_second_phase"
        return self.status.value

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.accepted,
            "status": self.kind,
            "needsSecondPhase": self.needs_second_phase,
            "ignored": list(self.ignored_directives),
        }
        if self.needs_second_phase:
            data["evenPassEmpty"] = self.even_pass_empty
        if self.job_id is not None:
            data["jobId"] = self.job_id
        if self.protocol_status is not None:
            data["ippStatus"] = self.protocol_status
        if self.detail:
            data["details"] = self.detail
        if self.page_count is not None:
            data["pages"] = self.page_count
        return data


class PrintTransport(ABC):
    """Delivers a finished payload to a printing device."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Transport display name."""

    @abstractmethod
    def submit(
        self,
        printer_url: str,
        job_name: str,
        document_format: str,
        attributes: Mapping[str, str],
        payload: bytes,
    ) -> TransportResponse:
        """
        Send one print job.

        Returns the device's protocol answer, successful or not. Raises
        TransportError when no answer could be obtained.
        """
