"""
Expands a typed identifier into the items it stands for and the group they belong to.
"""

import logging
from typing import Optional

from rich.markup import escape

from oggify.api.session import RemoteSession, remote_call
from oggify.utils.path import group_key

from .identifier import ItemIdentifier, ItemKind

log = logging.getLogger(__name__)

TRACKS_GROUP = "tracks"
EPISODES_GROUP = "episodes"

# Collection kinds that need a remote lookup, and the folder they land in
COLLECTION_PREFIXES = {
    ItemKind.PLAYLIST: "playlists",
    ItemKind.ALBUM: "albums",
    ItemKind.SHOW: "shows",
}


class CatalogResolver:
    """Turns one identifier into a (group key, members) pair."""

    def __init__(self, session: RemoteSession):
        self.session = session

    async def resolve(
        self, identifier: ItemIdentifier
    ) -> Optional[tuple[str, list[ItemIdentifier]]]:
        """
        Resolves an identifier.

        Tracks and episodes resolve to themselves without a remote call.
        Playlists, albums, and shows are looked up remotely.

        Returns:
            The group key and its members, or None for unsupported kinds.

        Raises:
            RemoteError: If a remote lookup fails.
        """
        if identifier.kind is ItemKind.TRACK:
            return TRACKS_GROUP, [identifier]
        if identifier.kind is ItemKind.EPISODE:
            return EPISODES_GROUP, [identifier]

        prefix = COLLECTION_PREFIXES.get(identifier.kind)
        if prefix is None:
            log.warning(
                f"[yellow]Unknown/unsupported item type: {identifier.kind.value}[/yellow]"
            )
            return None

        async with remote_call(f"Lookup of {identifier.uri}"):
            entity = await self.session.lookup(identifier)

        key = group_key(prefix, entity.name)
        log.info(
            f"Resolved {identifier.kind.value} [bold]{escape(entity.name)}[/bold] "
            f"({len(entity.items)} items)"
        )
        return key, list(entity.items)
