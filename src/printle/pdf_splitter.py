"""PDF page extraction for the print pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence, Union

import fitz

from .errors import TransformError
from .page_selection import DuplexDirective, parity_indices

logger = logging.getLogger(__name__)


class PDFSplitter:
    """
    Page-level document operations on top of PyMuPDF.

    Every extraction builds a new document with `insert_pdf`, so the page
    content streams are copied as-is and the source document is never
    modified.
    """

    @staticmethod
    def open(source: Union[str, Path, bytes]) -> fitz.Document:
        try:
            if isinstance(source, (bytes, bytearray)):
                doc = fitz.open(stream=bytes(source), filetype="pdf")
            else:
                doc = fitz.open(str(source), filetype="pdf")
        except Exception as exc:
            raise TransformError(f"Failed to open PDF: {exc}") from exc

        if doc.needs_pass:
            doc.close()
            raise TransformError("PDF is password protected.")
        if len(doc) == 0:
            # MuPDF may "repair" garbage into an empty document.
            doc.close()
            raise TransformError("PDF has no pages.")
        return doc

    @staticmethod
    def page_count(doc: fitz.Document) -> int:
        return len(doc)

    @staticmethod
    def extract_pages(doc: fitz.Document, page_indices: Sequence[int]) -> fitz.Document:
        """Copy the given pages, in the given order, into a new document."""
        total = len(doc)
        out = fitz.open()
        try:
            for page_index in page_indices:
                if page_index < 0 or page_index >= total:
                    raise TransformError(
                        f"Invalid page index {page_index} for doc with {total} pages."
                    )
                out.insert_pdf(doc, from_page=page_index, to_page=page_index)
        except TransformError:
            out.close()
            raise
        except Exception as exc:
            out.close()
            raise TransformError(f"Failed to extract PDF pages: {exc}") from exc
        logger.debug("Extracted %d of %d pages", len(out), total)
        return out

    @classmethod
    def extract_parity(cls, doc: fitz.Document, parity: DuplexDirective) -> fitz.Document:
        """Keep one side of a manual duplex pass (odd: indices 0, 2, 4...)."""
        if not parity.is_manual:
            raise ValueError(f"Not a manual duplex parity: {parity.value!r}")
        return cls.extract_pages(doc, parity_indices(len(doc), parity))

    @staticmethod
    def serialize(doc: fitz.Document) -> bytes:
        if len(doc) == 0:
            raise TransformError("Page selection left no pages to print.")
        try:
            return doc.tobytes(garbage=3, deflate=True)
        except Exception as exc:
            raise TransformError(f"Failed to write PDF: {exc}") from exc
