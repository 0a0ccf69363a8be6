"""
Process-wide Langfuse client for turnloop.

Tracing is strictly optional. The client switches itself off, and every
operation becomes a no-op, when the ``langfuse`` package is missing, when
no key pair is configured, or when the server rejects the keys.
"""

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

_langfuse_available = False
_langfuse_error: Optional[str] = None

try:
    from langfuse import Langfuse

    _langfuse_available = True
except ImportError as e:
    _langfuse_error = f"langfuse package not installed: {e}"
    Langfuse = None  # type: ignore


def _host_looks_valid(host: str) -> bool:
    return not host or host.startswith(("http://", "https://"))


class TracingClient:
    """Holds the Langfuse client used by request tracing contexts.

    Construction never raises; check ``enabled`` and ``error`` instead.
    """

    def __init__(
        self,
        public_key: str = "",
        secret_key: str = "",
        host: str = "",
        debug: bool = False,
    ):
        self._client: Optional["Langfuse"] = None
        self._error: Optional[str] = None

        reason = self._precondition_failure(public_key, secret_key)
        if reason:
            self._disable(reason, logging.DEBUG)
            return

        if not _host_looks_valid(host):
            logger.warning(
                "LANGFUSE_HOST '%s' has no http:// or https:// scheme", host
            )

        options: dict[str, Any] = {
            "public_key": public_key,
            "secret_key": secret_key,
            "debug": debug,
        }
        if host:
            options["host"] = host
        try:
            self._client = Langfuse(**options)
        except Exception as e:
            self._disable(f"Failed to initialize Langfuse client: {e}")
            return

        reason = self._verify_credentials()
        if reason:
            self._disable(reason)
            return

        logger.info("Langfuse tracing enabled (host: %s)", host or "default")

    @staticmethod
    def _precondition_failure(public_key: str, secret_key: str) -> Optional[str]:
        if not _langfuse_available:
            return _langfuse_error
        if not (public_key and secret_key):
            return "Langfuse credentials not configured"
        return None

    def _verify_credentials(self) -> Optional[str]:
        try:
            if self._client.auth_check():
                return None
        except Exception as e:
            return f"Langfuse connectivity check failed: {e}"
        return "Langfuse auth_check() failed - check LANGFUSE_HOST and keys"

    def _disable(self, reason: str, level: int = logging.WARNING) -> None:
        self._client = None
        self._error = reason
        logger.log(level, "Tracing disabled: %s", reason)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    @property
    def error(self) -> Optional[str]:
        """Why tracing is disabled, if it is."""
        return self._error

    @property
    def client(self) -> Optional["Langfuse"]:
        return self._client

    def _invoke(self, method: str) -> bool:
        if self._client is None:
            return False
        try:
            getattr(self._client, method)()
        except Exception as e:
            logger.warning("Langfuse %s() failed: %s", method, e)
            return False
        return True

    def flush(self) -> None:
        """Send buffered events now."""
        self._invoke("flush")

    def shutdown(self) -> None:
        """Flush and stop the background exporter."""
        if self._invoke("shutdown"):
            logger.info("Langfuse tracing client shut down")


_tracing_client: Optional[TracingClient] = None


def init_tracing_client(
    public_key: str = "",
    secret_key: str = "",
    host: str = "",
    debug: bool = False,
) -> TracingClient:
    """Create the process-wide client, replacing any previous one."""
    global _tracing_client
    _tracing_client = TracingClient(public_key, secret_key, host, debug)
    return _tracing_client


def get_tracing_client() -> Optional[TracingClient]:
    return _tracing_client


def shutdown_tracing() -> None:
    """Shut down and forget the process-wide client."""
    global _tracing_client
    client, _tracing_client = _tracing_client, None
    if client is not None:
        client.shutdown()
