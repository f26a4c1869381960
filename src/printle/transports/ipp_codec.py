"""Minimal IPP/1.1 message encoding and decoding (RFC 8010)."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Mapping, Optional, Tuple

IPP_VERSION = (1, 1)


class IPPTag(IntEnum):
    # delimiters
    OPERATION_ATTRIBUTES = 0x01
    JOB_ATTRIBUTES = 0x02
    END_OF_ATTRIBUTES = 0x03
    PRINTER_ATTRIBUTES = 0x04
    UNSUPPORTED_ATTRIBUTES = 0x05

    # values
    INTEGER = 0x21
    BOOLEAN = 0x22
    ENUM = 0x23
    TEXT_WITHOUT_LANGUAGE = 0x41
    NAME_WITHOUT_LANGUAGE = 0x42
    KEYWORD = 0x44
    URI = 0x45
    CHARSET = 0x47
    NATURAL_LANGUAGE = 0x48
    MIME_MEDIA_TYPE = 0x49


class IPPOperation(IntEnum):
    PRINT_JOB = 0x0002
    VALIDATE_JOB = 0x0004
    GET_PRINTER_ATTRIBUTES = 0x000B


STATUS_NAMES: Dict[int, str] = {
    0x0000: "successful-ok",
    0x0001: "successful-ok-ignored-or-substituted-attributes",
    0x0002: "successful-ok-conflicting-attributes",
    0x0400: "client-error-bad-request",
    0x0401: "client-error-forbidden",
    0x0402: "client-error-not-authenticated",
    0x0403: "client-error-not-authorized",
    0x0404: "client-error-not-possible",
    0x0405: "client-error-timeout",
    0x0406: "client-error-not-found",
    0x0407: "client-error-gone",
    0x0408: "client-error-request-entity-too-large",
    0x0409: "client-error-request-value-too-long",
    0x040A: "client-error-document-format-not-supported",
    0x040B: "client-error-attributes-or-values-not-supported",
    0x040C: "client-error-uri-scheme-not-supported",
    0x040D: "client-error-charset-not-supported",
    0x040E: "client-error-conflicting-attributes",
    0x040F: "client-error-compression-not-supported",
    0x0410: "client-error-compression-error",
    0x0411: "client-error-document-format-error",
    0x0412: "client-error-document-access-error",
    0x0500: "server-error-internal-error",
    0x0501: "server-error-operation-not-supported",
    0x0502: "server-error-service-unavailable",
    0x0503: "server-error-version-not-supported",
    0x0504: "server-error-device-error",
    0x0505: "server-error-temporary-error",
    0x0506: "server-error-not-accepting-jobs",
    0x0507: "server-error-busy",
    0x0508: "server-error-job-canceled",
    0x0509: "server-error-multiple-document-jobs-not-supported",
}

_GROUP_NAMES = {
    IPPTag.OPERATION_ATTRIBUTES: "operation",
    IPPTag.JOB_ATTRIBUTES: "job",
    IPPTag.PRINTER_ATTRIBUTES: "printer",
    IPPTag.UNSUPPORTED_ATTRIBUTES: "unsupported",
}

_INTEGER_TAGS = (IPPTag.INTEGER, IPPTag.ENUM)
_TEXT_TAG_RANGE = range(0x40, 0x60)


class IPPDecodeError(ValueError):
    """Raised when a reply is not a well-formed IPP message."""


def status_name(code: int) -> str:
    return STATUS_NAMES.get(code, f"0x{code:04x}")


Attribute = Tuple[IPPTag, str, Any]


def _encode_value(tag: IPPTag, value: Any) -> bytes:
    if tag in _INTEGER_TAGS:
        return struct.pack(">i", int(value))
    if tag == IPPTag.BOOLEAN:
        return b"\x01" if value else b"\x00"
    return str(value).encode("utf-8")


def _encode_attribute(tag: IPPTag, name: str, value: Any) -> bytes:
    raw_name = name.encode("ascii")
    raw_value = _encode_value(tag, value)
    return (
        struct.pack(">BH", tag, len(raw_name))
        + raw_name
        + struct.pack(">H", len(raw_value))
        + raw_value
    )


def encode_request(
    operation: IPPOperation,
    request_id: int,
    operation_attributes: List[Attribute],
    job_attributes: Optional[List[Attribute]] = None,
    data: bytes = b"",
) -> bytes:
    """Serialize an IPP request; `data` is appended after end-of-attributes."""
    parts = [struct.pack(">BBHI", IPP_VERSION[0], IPP_VERSION[1], operation, request_id)]
    parts.append(struct.pack(">B", IPPTag.OPERATION_ATTRIBUTES))
    for tag, name, value in operation_attributes:
        parts.append(_encode_attribute(tag, name, value))
    if job_attributes:
        parts.append(struct.pack(">B", IPPTag.JOB_ATTRIBUTES))
        for tag, name, value in job_attributes:
            parts.append(_encode_attribute(tag, name, value))
    parts.append(struct.pack(">B", IPPTag.END_OF_ATTRIBUTES))
    parts.append(data)
    return b"".join(parts)


def build_print_job_request(
    request_id: int,
    printer_uri: str,
    requesting_user: str,
    job_name: str,
    document_format: str,
    job_attributes: Mapping[str, str],
    document: bytes,
) -> bytes:
    operation_attributes: List[Attribute] = [
        (IPPTag.CHARSET, "attributes-charset", "utf-8"),
        (IPPTag.NATURAL_LANGUAGE, "attributes-natural-language", "en-us"),
        (IPPTag.URI, "printer-uri", printer_uri),
        (IPPTag.NAME_WITHOUT_LANGUAGE, "requesting-user-name", requesting_user),
        (IPPTag.NAME_WITHOUT_LANGUAGE, "job-name", job_name),
        (IPPTag.MIME_MEDIA_TYPE, "document-format", document_format),
    ]
    keywords: List[Attribute] = [
        (IPPTag.KEYWORD, name, value) for name, value in job_attributes.items()
    ]
    return encode_request(
        IPPOperation.PRINT_JOB,
        request_id,
        operation_attributes,
        keywords,
        document,
    )


@dataclass(slots=True)
class IPPResponse:
    """Decoded IPP reply; attribute groups map name -> list of values."""

    version: Tuple[int, int]
    status_code: int
    request_id: int
    groups: Dict[str, Dict[str, List[Any]]] = field(default_factory=dict)

    @property
    def status_name(self) -> str:
        return status_name(self.status_code)

    def first(self, group: str, name: str) -> Any:
        values = self.groups.get(group, {}).get(name)
        return values[0] if values else None


def _decode_value(tag: int, raw: bytes) -> Any:
    if tag in _INTEGER_TAGS and len(raw) == 4:
        return struct.unpack(">i", raw)[0]
    if tag == IPPTag.BOOLEAN and len(raw) == 1:
        return raw != b"\x00"
    if tag in _TEXT_TAG_RANGE:
        return raw.decode("utf-8", errors="replace")
    return raw


def decode_response(data: bytes) -> IPPResponse:
    if len(data) < 8:
        raise IPPDecodeError(f"IPP reply too short ({len(data)} bytes).")
    major, minor, status, request_id = struct.unpack(">BBHI", data[:8])
    response = IPPResponse(version=(major, minor), status_code=status, request_id=request_id)

    offset = 8
    current: Optional[Dict[str, List[Any]]] = None
    last_name: Optional[str] = None
    while offset < len(data):
        tag = data[offset]
        offset += 1
        if tag == IPPTag.END_OF_ATTRIBUTES:
            return response
        if tag < 0x10:
            group = _GROUP_NAMES.get(tag, f"group-{tag:#04x}")
            current = response.groups.setdefault(group, {})
            last_name = None
            continue
        if current is None:
            raise IPPDecodeError("Attribute value before any attribute group.")
        try:
            (name_len,) = struct.unpack_from(">H", data, offset)
            offset += 2
            name = data[offset:offset + name_len].decode("utf-8", errors="replace")
            offset += name_len
            (value_len,) = struct.unpack_from(">H", data, offset)
            offset += 2
        except struct.error as exc:
            raise IPPDecodeError(f"Truncated IPP attribute: {exc}") from exc
        raw = data[offset:offset + value_len]
        if len(raw) != value_len:
            raise IPPDecodeError("Truncated IPP attribute value.")
        offset += value_len

        if name_len == 0:
            # additional value of the previous attribute (1setOf)
            if last_name is None:
                raise IPPDecodeError("Additional value without an attribute name.")
            name = last_name
        last_name = name
        current.setdefault(name, []).append(_decode_value(tag, raw))

    raise IPPDecodeError("IPP reply has no end-of-attributes tag.")
