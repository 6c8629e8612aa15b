"""
Application constants and algorithm configuration.

These are values that don't change based on environment but may need
to be referenced across the codebase (storage key namespaces, scoring
defaults).
"""

from dataclasses import dataclass


# =============================================================================
# Storage Key Namespaces
# =============================================================================

@dataclass(frozen=True)
class KeySpace:
    """
    Storage key layout.

    Every key is ``<prefix><namespace>:<id>``. The short namespaces are the
    on-disk format; changing them orphans existing Redis data.
    """

    prefix: str = ""

    MEMBER_ATTRIBUTES: str = "hma"     # hash: attribute -> 1
    ATTRIBUTE_MEMBERS: str = "zma"     # posting list: member -> 1.0
    MEMBER_INTERESTS: str = "hmi"      # hash: attribute -> raw weight
    MEMBER_NORMALIZED: str = "hmn"     # hash: attribute -> normalized weight
    ATTRIBUTE_INTEREST: str = "zmi"    # posting list: member -> normalized weight
    SCRATCH: str = "scratch"           # per-query scratch namespace

    def member_attributes(self, member_id: str) -> str:
        return f"{self.prefix}{self.MEMBER_ATTRIBUTES}:{member_id}"

    def presence(self, attribute: str) -> str:
        return f"{self.prefix}{self.ATTRIBUTE_MEMBERS}:{attribute}"

    def raw_interest(self, member_id: str) -> str:
        return f"{self.prefix}{self.MEMBER_INTERESTS}:{member_id}"

    def normalized_interest(self, member_id: str) -> str:
        return f"{self.prefix}{self.MEMBER_NORMALIZED}:{member_id}"

    def interest(self, attribute: str) -> str:
        return f"{self.prefix}{self.ATTRIBUTE_INTEREST}:{attribute}"

    def scratch(self, query_id: str, stage: str) -> str:
        return f"{self.prefix}{self.SCRATCH}:{query_id}:{stage}"


DEFAULT_KEY_SPACE = KeySpace()


# =============================================================================
# Scoring
# =============================================================================

# Reciprocal scores must be strictly greater than this to be returned
DEFAULT_RECIPROCAL_THRESHOLD = 0.01

# Score written to presence posting lists and member attribute hashes
PRESENCE_SCORE = 1.0

# Tolerance for the normalized-interest sum invariant
NORMALIZATION_TOLERANCE = 1e-9
