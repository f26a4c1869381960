"""Mapping from print intent to IPP job attributes."""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Mapping

from .page_selection import DuplexDirective

PDF_MIME_TYPE = "application/pdf"
GENERIC_MIME_TYPE = "application/octet-stream"

COLOR_MODE_ATTRIBUTE = "print-color-mode"
SIDES_ATTRIBUTE = "sides"


def normalize_mime_type(value: str | None) -> str:
    # 'Application/PDF; charset=binary' -> 'application/pdf'
    return (value or "").split(";", 1)[0].strip().lower()


def is_pdf_mime_type(value: str | None) -> bool:
    return normalize_mime_type(value) == PDF_MIME_TYPE


def resolve_document_format(mime_type: str | None) -> str:
    """IPP document-format for an upload; unknown types go as generic binary."""
    return PDF_MIME_TYPE if is_pdf_mime_type(mime_type) else GENERIC_MIME_TYPE


def build_job_attributes(grayscale: bool, duplex: DuplexDirective) -> Mapping[str, str]:
    """
    Job attributes for one submission.

    Only attributes the request needs are present; a missing key leaves the
    device default in place. Manual duplex is two one-sided jobs, so it never
    sets `sides`.
    """
    attributes: Dict[str, str] = {}
    if grayscale:
        attributes[COLOR_MODE_ATTRIBUTE] = "monochrome"
    if duplex == DuplexDirective.AUTO:
        attributes[SIDES_ATTRIBUTE] = "two-sided-long-edge"
    return MappingProxyType(attributes)
