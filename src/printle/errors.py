"""Print pipeline exceptions."""


class PrintingError(RuntimeError):
    """Base error for the print pipeline."""


class MissingInputError(PrintingError):
    """Raised when the document content or the printer address is absent."""


class MalformedRangeError(PrintingError):
    """Raised when a page-range expression selects no page of the document."""

    def __init__(self, expression: str, total_pages: int):
        super().__init__(
            f"Page range {expression!r} selects no pages of a {total_pages}-page document."
        )
        self.expression = expression
        self.total_pages = total_pages


class TransformError(PrintingError):
    """Raised when the document cannot be parsed, split or re-encoded."""


class TransportError(PrintingError):
    """Raised when the printing device cannot be reached or talked to."""


class PrintJobCancelledError(PrintingError):
    """Raised when a submission is abandoned before the device was contacted."""
