"""
The boundary to the remote streaming service.

oggify does not speak the service's wire protocol itself. A concrete
`RemoteSession` is supplied through the `session_factory` setting, a
'package.module:callable' path whose callable receives the validated
configuration and returns a session.
"""

import asyncio
import importlib
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Callable

import aiohttp

from oggify.core.identifier import ItemIdentifier
from oggify.exceptions import ConfigurationError, RemoteError
from oggify.models.catalog import AudioItem, CatalogEntity

if TYPE_CHECKING:
    from oggify.models.config import OggifyConfig

log = logging.getLogger(__name__)


class RemoteSession(ABC):
    """
    An authenticated connection to the remote streaming service.

    Implementations raise `RemoteError` (or `KeyDeniedError` for refused
    decryption keys) on failure. Transport exceptions from aiohttp are also
    tolerated and wrapped by callers via `remote_call`.
    """

    async def connect(self) -> None:
        """
        Establishes the session.

        Raises:
            AuthenticationError: If the credentials are rejected.
        """

    async def close(self) -> None:
        """Releases any resources held by the session."""

    @abstractmethod
    async def lookup(self, identifier: ItemIdentifier) -> CatalogEntity:
        """Fetches a playlist, album, or show and its member identifiers."""

    @abstractmethod
    async def get_audio_item(self, identifier: ItemIdentifier) -> AudioItem:
        """Fetches the audio descriptor of a track or episode."""

    @abstractmethod
    def open_file(self, file_id: str, bytes_per_second: int) -> AsyncIterator[bytes]:
        """Streams the encrypted bytes of one audio file."""

    @abstractmethod
    async def get_decryption_key(self, track_id: ItemIdentifier, file_id: str) -> bytes:
        """
        Requests the key for one (track, file) pair.

        Raises:
            KeyDeniedError: If the service refuses to hand out the key.
        """

    async def __aenter__(self) -> "RemoteSession":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


@asynccontextmanager
async def remote_call(description: str):
    """Converts transport-level exceptions into `RemoteError`."""
    try:
        yield
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise RemoteError(f"{description} failed: {e}") from e


SessionFactory = Callable[["OggifyConfig"], RemoteSession]


def load_session_factory(path: str) -> SessionFactory:
    """
    Resolves a 'package.module:callable' path to a session factory.

    Raises:
        ConfigurationError: If the path is empty, the module cannot be
        imported, or the attribute is missing or not callable.
    """
    if not path:
        raise ConfigurationError(
            "No session factory configured. Run 'oggify init <module:callable>'."
        )
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ConfigurationError(f"Invalid session factory path: '{path}'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(
            f"Cannot import session factory module '{module_name}': {e}"
        ) from e

    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ConfigurationError(
            f"Session factory '{attr}' not found or not callable in '{module_name}'"
        )
    log.debug(f"Loaded session factory {path}")
    return factory


def create_session(config: "OggifyConfig") -> RemoteSession:
    """Builds the configured session. Connection happens on `connect()`."""
    factory = load_session_factory(config.session_factory)
    session = factory(config)
    if not isinstance(session, RemoteSession):
        raise ConfigurationError(
            f"Session factory '{config.session_factory}' returned "
            f"{type(session).__name__}, not a RemoteSession"
        )
    return session
