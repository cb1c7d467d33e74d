"""Single-shot authenticated HTTP requests against the OPNsense API."""

import base64
import logging
import socket
import ssl
import threading
import time
from typing import Any, Dict, Iterator, Mapping, NamedTuple, Optional

import requests
import urllib3

from .exceptions import (
    ConnectionRefusedByHostError,
    DnsResolutionError,
    ForbiddenError,
    HttpError,
    InvalidMethodError,
    NetworkError,
    NotFoundError,
    RequestTimeoutError,
    TlsError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

# disable insecure HTTPS warnings (appliances ship self-signed certs)
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

ALLOWED_METHODS = ("GET", "POST", "PATCH", "PUT")

_TLS_TYPES = (requests.exceptions.SSLError, urllib3.exceptions.SSLError, ssl.SSLError)
_DNS_TYPES = (urllib3.exceptions.NameResolutionError, socket.gaierror)
# NewConnectionError subclasses ConnectTimeoutError in urllib3 2.x, so connect
# failures must be matched before any timeout type.
_CONNECT_TYPES = (urllib3.exceptions.NewConnectionError, ConnectionRefusedError)
_TIMEOUT_TYPES = (
    requests.exceptions.Timeout,
    urllib3.exceptions.ConnectTimeoutError,
    urllib3.exceptions.ReadTimeoutError,
    socket.timeout,
)


class ApiCredentials(NamedTuple):
    key: str
    secret: str

    def __repr__(self) -> str:
        return f"ApiCredentials(key={self.key[:4]}..., secret=***)"


def basic_auth_value(credentials: ApiCredentials) -> str:
    """Return the base64 part of an HTTP Basic header for ``key:secret``."""
    raw = f"{credentials.key}:{credentials.secret}".encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def mask_secret(value: str) -> str:
    """Keep only the first 6 and last 4 characters, enough to tell keys apart in logs."""
    if len(value) <= 10:
        return "*" * len(value)
    return f"{value[:6]}...{value[-4:]}"


def _iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """Walk the exception chain, including urllib3's ``MaxRetryError.reason``."""
    seen = set()
    stack = [exc]
    while stack:
        current = stack.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        stack.append(current.__cause__)
        stack.append(current.__context__)
        reason = getattr(current, "reason", None)
        if isinstance(reason, BaseException):
            stack.append(reason)
        for arg in getattr(current, "args", ()):
            if isinstance(arg, BaseException):
                stack.append(arg)


def _timeout_error(url: str, original_error: Optional[BaseException] = None) -> RequestTimeoutError:
    return RequestTimeoutError(
        f"Connection timed out: Server at {url} is unreachable or not responding",
        url=url,
        original_error=original_error,
    )


def classify_transport_error(exc: requests.RequestException, url: str) -> NetworkError:
    """Map a requests/urllib3 failure onto the NetworkError taxonomy by exception type."""
    chain = list(_iter_causes(exc))

    def caused_by(types) -> bool:
        return any(isinstance(e, types) for e in chain)

    if caused_by(_TLS_TYPES):
        return TlsError(
            f"SSL/TLS error: There was a problem with the server's security certificate at {url}",
            url=url,
            original_error=exc,
        )

    if caused_by(_DNS_TYPES):
        return DnsResolutionError(
            f"DNS resolution error: Could not resolve hostname in URL {url}",
            url=url,
            original_error=exc,
        )

    if caused_by(_CONNECT_TYPES):
        return ConnectionRefusedByHostError(
            f"Connection error: Unable to connect to server at {url}. "
            "Check your network and firewall settings",
            url=url,
            original_error=exc,
        )

    if caused_by(_TIMEOUT_TYPES):
        return _timeout_error(url, exc)

    if isinstance(exc, requests.exceptions.ConnectionError):
        return ConnectionRefusedByHostError(
            f"Connection error: Unable to connect to server at {url}. "
            "Check your network and firewall settings",
            url=url,
            original_error=exc,
        )

    return NetworkError(f"Request to {url} failed: {exc}", url=url, original_error=exc, detail=str(exc))


def _abort_connection(response: requests.Response) -> None:
    """Shut the response socket down so a blocked read returns immediately."""
    connection = getattr(response.raw, "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        response.close()
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as exc:
        logger.debug("Socket shutdown after deadline failed: %s", exc)


def read_body_within_deadline(response: requests.Response, deadline: Optional[float], url: str) -> None:
    """
    Read the whole (streamed) body into ``response.content`` before ``deadline``.

    ``deadline`` is a ``time.monotonic()`` value; None means no limit. A timer
    shuts the socket down when the deadline passes, so a slowly trickling body
    cannot hold the call open past it.
    """
    if deadline is None:
        response.content  # reads the whole stream
        return

    remaining = deadline - time.monotonic()
    if remaining <= 0:
        response.close()
        raise _timeout_error(url)

    expired = threading.Event()

    def expire() -> None:
        expired.set()
        _abort_connection(response)

    timer = threading.Timer(remaining, expire)
    timer.daemon = True
    timer.start()
    try:
        response.content  # reads the whole stream
    except requests.RequestException as exc:
        response.close()
        if expired.is_set():
            raise _timeout_error(url, exc) from exc
        raise
    finally:
        timer.cancel()

    # Without Content-Length a shut-down socket just looks like end of body.
    if expired.is_set():
        response.close()
        raise _timeout_error(url)


def classify_http_error(status: int, body: str, url: str) -> HttpError:
    """Map a non-2xx status onto the HttpError taxonomy."""
    if status == 401:
        return UnauthorizedError(
            "Authentication failed (HTTP 401): Your API key or secret is incorrect",
            status=status,
            body=body,
            url=url,
        )
    if status == 403:
        return ForbiddenError(
            "Permission denied (HTTP 403): Your API credentials don't have sufficient permissions",
            status=status,
            body=body,
            url=url,
        )
    if status == 404:
        return NotFoundError(
            "API endpoint not found (HTTP 404): Check your firewall URL and port",
            status=status,
            body=body,
            url=url,
        )
    return HttpError(f"Request to {url} failed with status {status}: {body}", status=status, body=body, url=url)


class HttpGateway:
    """
    Issues one HTTP request per call and turns every failure into an OPNsenseError.

    No session, cookies or retries are kept between calls; each request is
    attempted exactly once. TLS certificate validation is always disabled
    because OPNsense appliances normally present self-signed certificates.

    ``timeout_seconds`` is a deadline for the whole exchange: connect and
    response headers are bounded by the client timeout, and the body must be
    fully received before the deadline expires.
    """

    verify_tls = False

    def issue(
        self,
        method: str,
        url: str,
        payload: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout_seconds: Optional[float] = None,
        credentials: Optional[ApiCredentials] = None,
    ) -> requests.Response:
        """
        Send a request and return the successful (2xx) response undecoded.

        The body has already been read into memory (``response.content``), so
        ``.json()``/``.text`` on the result do no further I/O.

        Raises:
            InvalidMethodError: method is not GET/POST/PATCH/PUT (nothing is sent)
            NetworkError: transport failure (timeout, refused, DNS, TLS, other)
            HttpError: the appliance answered with a non-2xx status
        """
        logger.info("Making a %s request to %s", method, url)

        if method not in ALLOWED_METHODS:
            message = f"Invalid request type {method!r} (expected one of {', '.join(ALLOWED_METHODS)})"
            logger.error(message)
            raise InvalidMethodError(message, url=url)

        request_headers: Dict[str, str] = {}
        if credentials is not None:
            auth = basic_auth_value(credentials)
            request_headers["Authorization"] = f"Basic {auth}"
            logger.debug("Using auth header: Basic %s", mask_secret(auth))
        if headers:
            request_headers.update(headers)

        deadline = time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        try:
            response = requests.request(
                method,
                url,
                json=payload,
                headers=request_headers,
                timeout=timeout_seconds,
                verify=self.verify_tls,
                stream=True,
            )
            read_body_within_deadline(response, deadline, url)
        except RequestTimeoutError as error:
            logger.error("%s", error.message)
            raise
        except requests.RequestException as exc:
            error = classify_transport_error(exc, url)
            logger.error("%s", error.message)
            raise error from exc

        if 200 <= response.status_code < 300:
            logger.info("Request to %s successful", url)
            return response

        error = classify_http_error(response.status_code, response.text, url)
        logger.error("%s", error.message)
        raise error
