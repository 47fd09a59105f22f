"""Remote sync backends."""

from .base import Transport, TransportError, TransportResult
from .gist import GistTransport
from .webdav import WebDAVTransport

__all__ = ["Transport", "TransportError", "TransportResult", "GistTransport", "WebDAVTransport"]
