"""
Mapping between external item ids and tuner guide numbers.
"""
import re
from typing import Iterable, Optional

from hdhr_gateway.config import get_settings

# Major channel, optionally followed by a sub-channel ("7", "7.1", "702-3")
GUIDE_NUMBER_PATTERN = re.compile(r"\d+(?:[.-]\d+)?")


class IdentifierMapper:
    """Encodes guide numbers as `<prefix><guideNumber>` ids within one item type."""

    def __init__(self, prefix: str = "hdhr_", item_type: str = "tv", aliases: Iterable[str] = ("channel",)):
        self.prefix = prefix
        self.canonical_type = item_type
        self.aliases = tuple(a for a in aliases if a != item_type)

    def accepts_type(self, item_type: Optional[str]) -> bool:
        return item_type == self.canonical_type or item_type in self.aliases

    @staticmethod
    def is_valid_guide_number(guide_number: str) -> bool:
        return bool(GUIDE_NUMBER_PATTERN.fullmatch(guide_number))

    def to_external_id(self, guide_number: str) -> str:
        return f"{self.prefix}{guide_number}"

    def from_external_id(self, item_id: str, item_type: Optional[str] = None) -> Optional[str]:
        """
        Decode an external id.

        Returns None (not an error) for ids outside this namespace so the
        same client can query other providers with ids this gateway doesn't own.
        """
        if item_type is not None and not self.accepts_type(item_type):
            return None
        if not item_id or not item_id.startswith(self.prefix):
            return None
        guide_number = item_id[len(self.prefix):]
        if not self.is_valid_guide_number(guide_number):
            return None
        return guide_number


def get_identifier_mapper() -> IdentifierMapper:
    """Build the mapper from current settings."""
    settings = get_settings()
    return IdentifierMapper(settings.id_prefix, settings.item_type, settings.type_aliases)
