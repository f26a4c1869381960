"""IPP print transport over HTTP(S)."""

from __future__ import annotations

import itertools
import logging
from typing import Mapping, Tuple
from urllib.parse import urlsplit, urlunsplit

import requests

from ..base_transport import PrintTransport, TransportResponse
from ..errors import TransportError
from .ipp_codec import IPPDecodeError, build_print_job_request, decode_response

logger = logging.getLogger(__name__)

IPP_DEFAULT_PORT = 631

# ipps defaults to 443 (RFC 7472); ipp to 631.
_SCHEME_MAP = {
    "ipp": ("http", IPP_DEFAULT_PORT),
    "ipps": ("https", 443),
    "http": ("http", None),
    "https": ("https", None),
}

_request_ids = itertools.count(1)


def printer_http_url(printer_url: str) -> Tuple[str, str]:
    """
    Split a printer address into (http endpoint, ipp printer-uri).

    'ipp://host/ipp/print' -> ('http://host:631/ipp/print', 'ipp://host/ipp/print')
    """
    try:
        parts = urlsplit(printer_url.strip())
        port = parts.port
    except ValueError as exc:
        raise TransportError(f"Invalid printer address {printer_url!r}: {exc}") from exc
    scheme = parts.scheme.lower()
    if scheme not in _SCHEME_MAP or not parts.hostname:
        raise TransportError(f"Unsupported printer address: {printer_url!r}")

    http_scheme, default_port = _SCHEME_MAP[scheme]
    netloc = parts.netloc
    if port is None and default_port is not None:
        netloc = f"{netloc}:{default_port}"
    path = parts.path or "/"
    endpoint = urlunsplit((http_scheme, netloc, path, parts.query, ""))

    if scheme in ("http", "https"):
        printer_uri = urlunsplit(("ipps" if scheme == "https" else "ipp", parts.netloc, path, parts.query, ""))
    else:
        printer_uri = printer_url.strip()
    return endpoint, printer_uri


class IPPTransport(PrintTransport):
    """Sends Print-Job requests straight to an IPP printer."""

    def __init__(
        self,
        timeout: float = 30.0,
        requesting_user: str = "PrintLe-User",
        verify_tls: bool = True,
    ):
        self.timeout = timeout
        self.requesting_user = requesting_user
        self.verify_tls = verify_tls

    @property
    def name(self) -> str:
        return "ipp"

    def submit(
        self,
        printer_url: str,
        job_name: str,
        document_format: str,
        attributes: Mapping[str, str],
        payload: bytes,
    ) -> TransportResponse:
        endpoint, printer_uri = printer_http_url(printer_url)
        request_id = next(_request_ids)
        body = build_print_job_request(
            request_id=request_id,
            printer_uri=printer_uri,
            requesting_user=self.requesting_user,
            job_name=job_name,
            document_format=document_format,
            job_attributes=attributes,
            document=payload,
        )
        logger.info(
            "Print-Job #%d to %s (%s, %d bytes, attributes=%s)",
            request_id,
            endpoint,
            document_format,
            len(payload),
            dict(attributes),
        )

        try:
            reply = requests.post(
                endpoint,
                data=body,
                headers={"Content-Type": "application/ipp"},
                timeout=self.timeout,
                verify=self.verify_tls,
            )
        except requests.Timeout as exc:
            raise TransportError(
                f"Printer at {endpoint} did not answer within {self.timeout:g}s: {exc}"
            ) from exc
        except requests.RequestException as exc:
            raise TransportError(f"Printer connection failed ({endpoint}): {exc}") from exc

        if reply.status_code != 200:
            raise TransportError(
                f"Printer at {endpoint} answered HTTP {reply.status_code} {reply.reason or ''}".rstrip()
            )

        try:
            decoded = decode_response(reply.content)
        except IPPDecodeError as exc:
            raise TransportError(f"Invalid IPP reply from {endpoint}: {exc}") from exc

        job_id = decoded.first("job", "job-id")
        response = TransportResponse(
            status_code=decoded.status_code,
            status_name=decoded.status_name,
            job_id=job_id if isinstance(job_id, int) else None,
            status_message=decoded.first("operation", "status-message"),
        )
        logger.info("Print-Job #%d -> %s (job-id=%s)", request_id, response.status_name, response.job_id)
        return response
