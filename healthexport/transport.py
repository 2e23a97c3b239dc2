"""
Payload delivery over HTTP.

A single POST per run. The request body is fully serialized before the
request starts, so a cancelled run either sends nothing or sends the whole
payload.
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import httpx

from .exceptions import delivery_error


logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


def destination_url(destination: str) -> str:
    """Build the POST URL; bare destinations are sent over https."""
    destination = destination.strip()
    if destination.startswith(("http://", "https://")):
        return destination
    return f"https://{destination}"


class PayloadTransport(ABC):
    """Delivers a serialized payload to the export destination"""

    @abstractmethod
    def deliver(self, destination: str, body: str) -> None:
        """
        Send ``body`` to ``destination``.

        Raises:
            DeliveryError: On transport failure or a non-success response
        """
        pass

    def close(self) -> None:
        pass


class HttpTransport(PayloadTransport):
    """httpx-based JSON POST transport"""

    def __init__(self, client: Optional[httpx.Client] = None,
                 headers: Optional[Dict[str, str]] = None,
                 timeout: Optional[float] = None):
        self._owns_client = client is None
        if client is None:
            client = httpx.Client(timeout=httpx.Timeout(timeout) if timeout else httpx.Timeout(5.0))
        self.client = client
        self.headers = dict(headers or {})

    def deliver(self, destination: str, body: str) -> None:
        url = destination_url(destination)
        headers = {**self.headers, "Content-Type": JSON_CONTENT_TYPE}

        try:
            response = self.client.post(url, content=body.encode("utf-8"), headers=headers)
            response.raise_for_status()

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            text = e.response.text.strip() or e.response.reason_phrase
            logger.error(f"❌ Export rejected by {url}: HTTP {status}")
            raise delivery_error(f"HTTP {status}: {text}", status_code=status)

        except httpx.RequestError as e:
            logger.error(f"❌ Export request to {url} failed: {e}")
            raise delivery_error(f"Request failed: {e}") from e

        logger.info(f"✅ Delivered {len(body)} chars to {url} (HTTP {response.status_code})")

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
