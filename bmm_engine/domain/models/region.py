"""Region domain model.

Member data arrives with several spellings of the same region ("Central",
"Central Region", "central region"). The spelling is normalised once, at
the boundary, through Region.parse; every downstream comparison uses the
enum and never re-matches strings.
"""

from __future__ import annotations

from enum import Enum


class Region(Enum):
    """Canonical meeting region.

    Regions:
        NORTHERN: Northern Region
        CENTRAL: Central Region
        SOUTHERN: Southern Region
    """

    NORTHERN = "NORTHERN"
    CENTRAL = "CENTRAL"
    SOUTHERN = "SOUTHERN"

    @property
    def label(self) -> str:
        """Human-readable label used in member communications."""
        return f"{self.value.title()} Region"

    @classmethod
    def parse(cls, raw: str | Region) -> Region:
        """Normalise a region spelling to the canonical enum.

        Accepts the enum itself, its value, or its name with an optional
        trailing "Region", in any case and with surrounding whitespace.

        Args:
            raw: Region as supplied by import data or an API caller.

        Returns:
            The canonical Region.

        Raises:
            ValueError: If the spelling does not name a known region.
        """
        if isinstance(raw, Region):
            return raw

        normalised = " ".join(str(raw).split()).upper()
        if normalised.endswith(" REGION"):
            normalised = normalised[: -len(" REGION")]

        try:
            return cls(normalised)
        except ValueError:
            raise ValueError(f"Unknown region: {raw!r}") from None


# Regions whose members may apply for a special vote
SPECIAL_VOTE_REGIONS: frozenset[Region] = frozenset({Region.CENTRAL, Region.SOUTHERN})
