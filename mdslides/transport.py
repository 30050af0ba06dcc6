"""HTTP transport to the LLM provider."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import requests

from .cancellation import CancellationToken
from .errors import Cancelled

logger = logging.getLogger(__name__)

USER_AGENT = "mdslides/0.1.0"


@dataclass
class HttpResponse:
    """Provider response reduced to what classification needs."""

    status_code: int
    text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.headers = {k.lower(): v for k, v in self.headers.items()}

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


class Transport(Protocol):
    def send(
        self,
        method: str,
        url: str,
        *,
        headers: Dict[str, str],
        json: Optional[Dict[str, Any]] = None,
        timeout: float,
        cancel_token: Optional[CancellationToken] = None,
    ) -> HttpResponse:
        """Perform one HTTP exchange.

        Raises ``requests.exceptions.RequestException`` on transport failure
        and ``Cancelled`` when the token fires first.
        """
        ...


class RequestsTransport:
    """Transport backed by ``requests``.

    With a cancellation token the call runs on a worker thread so the caller
    can stop waiting as soon as the token fires. ``requests`` cannot abort a
    socket mid-read, so the abandoned worker finishes (or times out) on its
    own and its result is discarded.
    """

    def __init__(self, user_agent: str = USER_AGENT, verify_ssl: bool = True):
        self.user_agent = user_agent
        self.verify_ssl = verify_ssl

    def _perform(self, method, url, headers, json, timeout) -> HttpResponse:
        all_headers = {"User-Agent": self.user_agent}
        all_headers.update(headers)
        response = requests.request(
            method,
            url,
            headers=all_headers,
            json=json,
            timeout=timeout,
            verify=self.verify_ssl,
        )
        return HttpResponse(
            status_code=response.status_code,
            text=response.text,
            headers=dict(response.headers),
        )

    def send(
        self,
        method: str,
        url: str,
        *,
        headers: Dict[str, str],
        json: Optional[Dict[str, Any]] = None,
        timeout: float,
        cancel_token: Optional[CancellationToken] = None,
    ) -> HttpResponse:
        if cancel_token is None:
            return self._perform(method, url, headers, json, timeout)

        cancel_token.raise_if_cancelled()
        done = threading.Event()
        outcome: Dict[str, Any] = {}

        def worker():
            try:
                outcome["response"] = self._perform(method, url, headers, json, timeout)
            except Exception as e:
                outcome["error"] = e
            finally:
                done.set()

        cancel_token.add_callback(done.set)
        try:
            # cancel() may have fired after the check above
            cancel_token.raise_if_cancelled()
            threading.Thread(target=worker, name="mdslides-http", daemon=True).start()
            done.wait()
        finally:
            cancel_token.remove_callback(done.set)

        if cancel_token.cancelled:
            logger.debug(f"Abandoning in-flight {method} {url} after cancellation")
            raise Cancelled()
        if "error" in outcome:
            raise outcome["error"]
        return outcome["response"]
