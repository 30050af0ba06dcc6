"""Process-wide convenience access to a configured ``SlideClient``.

Prefer constructing a ``SlideClient`` and passing it to call sites. The
holder here exists for scripts and simple front ends: the client is built
lazily from environment settings on first use and can be replaced at any
time. Reassignment is a plain reference swap (last writer wins); it is not
safe to race reconfiguration against concurrent reads from other threads.
"""

import logging
from typing import Optional

from .client import SlideClient
from .models import ClientConfig

logger = logging.getLogger(__name__)


class DefaultClientHolder:
    """Lazily initialized, explicitly reconfigurable client reference."""

    def __init__(self):
        self._client: Optional[SlideClient] = None

    def get(self) -> SlideClient:
        """Return the held client, creating one from settings if needed."""
        if self._client is None:
            logger.debug("Initializing default slide client from settings")
            self._client = SlideClient(ClientConfig.from_settings())
        return self._client

    def peek(self) -> Optional[SlideClient]:
        """Return the held client without initializing one."""
        return self._client

    def set(self, client: SlideClient) -> SlideClient:
        self._client = client
        return client

    def configure(self, config: ClientConfig, **client_kwargs) -> SlideClient:
        """Replace the held client with one built from ``config``."""
        return self.set(SlideClient(config, **client_kwargs))

    def reset(self) -> None:
        self._client = None


default_holder = DefaultClientHolder()


def get_default_client() -> SlideClient:
    return default_holder.get()


def set_default_client(client: SlideClient) -> SlideClient:
    return default_holder.set(client)


def initialize_default_client(api_key: str, **overrides) -> SlideClient:
    """Configure the default client with ``api_key`` on top of the settings."""
    return default_holder.configure(ClientConfig.from_settings(credential=api_key, **overrides))
