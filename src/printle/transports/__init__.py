"""Print transports."""

from .ipp_transport import IPPTransport

__all__ = [
    "IPPTransport",
]
