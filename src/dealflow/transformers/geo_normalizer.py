"""
Geo Name Normalizer

Normalizes area names and property types so every component matches them the
same way: lowercase, trimmed, separators collapsed, well-known aliases mapped
to one canonical name. Two areas match when either normalized form contains
the other; a property type matches only when it equals, or is contained in,
an accepted type.
"""
import re
from typing import Iterable, Optional


class GeoNormalizer:
    """
    Shared area/type normalization.

    Aliases apply to the whole normalized value only, so "jvc" maps to
    "jumeirah village circle" but "jvc district 12" is left as is and still
    matches through containment.
    """

    AREA_ALIASES = {
        'jvc': 'jumeirah village circle',
        'jvt': 'jumeirah village triangle',
        'jlt': 'jumeirah lake towers',
        'marina': 'dubai marina',
        'downtown': 'downtown dubai',
        'business bay dubai': 'business bay',
        'palm': 'palm jumeirah',
        'the palm': 'palm jumeirah',
        'dubai hills': 'dubai hills estate',
    }

    _SEPARATORS = re.compile(r"[\s_\-/]+")

    def __init__(self, aliases: Optional[dict] = None):
        self.aliases = dict(self.AREA_ALIASES)
        if aliases:
            self.aliases.update({self._clean(k): self._clean(v) for k, v in aliases.items()})

    def _clean(self, value: str) -> str:
        return self._SEPARATORS.sub(" ", value.strip().lower()).strip()

    def normalize(self, value: Optional[str]) -> str:
        """
        Normalize an area name or property type.

        Args:
            value: Raw name (None allowed)

        Returns:
            Canonical lowercase name, or "" when empty
        """
        if not value or not isinstance(value, str):
            return ""
        cleaned = self._clean(value)
        return self.aliases.get(cleaned, cleaned)

    def matches(self, left: Optional[str], right: Optional[str]) -> bool:
        """True when either normalized value contains the other."""
        a = self.normalize(left)
        b = self.normalize(right)
        if not a or not b:
            return False
        return a in b or b in a

    def matches_any(self, value: Optional[str], candidates: Iterable[str]) -> bool:
        return any(self.matches(value, candidate) for candidate in candidates)

    def contained_in(self, value: Optional[str], candidates: Iterable[str]) -> bool:
        """True when the normalized value equals or is contained in one of the candidates."""
        needle = self.normalize(value)
        if not needle:
            return False
        return any(needle in self.normalize(candidate) for candidate in candidates)

