"""
Parses free-text lines into typed catalog identifiers.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from oggify.exceptions import InvalidIdentifierError


BASE62_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
BASE62_LENGTH = 22
MAX_ID_VALUE = (1 << 128) - 1

IDENTIFIER_PATTERN = re.compile(
    r"(?P<kind>playlist|track|album|episode|show)[/:](?P<id>[a-zA-Z0-9]+)"
)


class ItemKind(Enum):
    """Kinds of catalog items a line can refer to."""

    TRACK = "track"
    ALBUM = "album"
    PLAYLIST = "playlist"
    SHOW = "show"
    EPISODE = "episode"
    UNKNOWN = "unknown"

    @classmethod
    def from_token(cls, token: str) -> "ItemKind":
        """Maps a kind token to its enum member. Matching is case-sensitive."""
        for kind in cls:
            if kind.value == token and kind is not cls.UNKNOWN:
                return kind
        return cls.UNKNOWN


@dataclass(frozen=True)
class ItemIdentifier:
    """
    A typed catalog identifier.

    The opaque base62 text is decoded into its 128-bit value, so two textual
    spellings of the same item compare and hash equal.
    """

    kind: ItemKind
    value: int

    @classmethod
    def from_base62(cls, kind: ItemKind, text: str) -> "ItemIdentifier":
        """
        Decodes a base62 catalog ID.

        Raises:
            InvalidIdentifierError: If the text is empty, too long, contains
            characters outside the alphabet, or overflows 128 bits.
        """
        if not text or len(text) > BASE62_LENGTH:
            raise InvalidIdentifierError(f"Invalid base62 ID length: '{text}'")

        value = 0
        for char in text:
            digit = BASE62_ALPHABET.find(char)
            if digit < 0:
                raise InvalidIdentifierError(
                    f"Invalid character '{char}' in base62 ID '{text}'"
                )
            value = value * 62 + digit

        if value > MAX_ID_VALUE:
            raise InvalidIdentifierError(f"Base62 ID '{text}' exceeds 128 bits")
        return cls(kind, value)

    @classmethod
    def from_hex(cls, kind: ItemKind, text: str) -> "ItemIdentifier":
        try:
            value = int(text, 16)
        except ValueError as e:
            raise InvalidIdentifierError(f"Invalid hex ID: '{text}'") from e
        if value > MAX_ID_VALUE:
            raise InvalidIdentifierError(f"Hex ID '{text}' exceeds 128 bits")
        return cls(kind, value)

    def to_base62(self) -> str:
        """Encodes the ID as a zero-padded, 22 character base62 string."""
        chars = []
        value = self.value
        for _ in range(BASE62_LENGTH):
            value, digit = divmod(value, 62)
            chars.append(BASE62_ALPHABET[digit])
        return "".join(reversed(chars))

    @property
    def hex(self) -> str:
        return f"{self.value:032x}"

    @property
    def uri(self) -> str:
        return f"spotify:{self.kind.value}:{self.to_base62()}"

    def __str__(self) -> str:
        return self.uri


def parse_item_identifier(line: str) -> Optional[ItemIdentifier]:
    """
    Extracts the first (kind, id) pair from a line of text.

    Accepts URIs (`spotify:track:<id>`) as well as web links
    (`open.spotify.com/album/<id>`).

    Returns:
        The parsed identifier, or None if the line holds no recognized token.

    Raises:
        InvalidIdentifierError: If a token is found but its ID cannot be decoded.
    """
    match = IDENTIFIER_PATTERN.search(line)
    if not match:
        return None

    kind = ItemKind.from_token(match.group("kind"))
    return ItemIdentifier.from_base62(kind, match.group("id"))
