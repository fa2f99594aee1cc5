"""DevTools transport, socket session and connection adapter."""

from pagegather.devtools.connection import DevtoolsConnection
from pagegather.devtools.session import CdpSession
from pagegather.devtools.transport import HttpTransport, Transport

__all__ = ["CdpSession", "DevtoolsConnection", "HttpTransport", "Transport"]
