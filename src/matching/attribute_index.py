"""
Attribute presence index.

For every attribute, a posting list of the members holding it (score 1.0),
and for every member, a hash of the attributes it holds. The two are written
together in one transaction so a concurrent reader never sees a member with
only part of a batch applied.

Invariant: member M is in presence(A) iff A is in M's attribute hash.
"""

from typing import Any, List, Sequence, Set

from config.constants import DEFAULT_KEY_SPACE, KeySpace, PRESENCE_SCORE
from core.logging import LoggerMixin
from core.utils import dedupe_preserving_order
from matching.validation import require_attributes, require_identifier
from storage import PostingStore, Transaction


class AttributeIndex(LoggerMixin):
    """Add-only index of which members hold which attributes."""

    def __init__(self, store: PostingStore, key_space: KeySpace = DEFAULT_KEY_SPACE):
        self._store = store
        self._keys = key_space

    def add_attributes(self, member_id: Any, attributes: Sequence[str]) -> List[str]:
        """
        Record that a member holds the given attributes.

        Idempotent and order independent. Duplicates within one call are
        collapsed.

        Args:
            member_id: Member identifier (str, or int for numeric ids)
            attributes: Non-empty sequence of attribute ids

        Returns:
            The distinct attributes written, in call order

        Raises:
            InvalidArgument: If member_id or attributes are empty/malformed
        """
        member_id = require_identifier(member_id)
        distinct = dedupe_preserving_order(require_attributes(attributes))

        def write(tx: Transaction) -> None:
            tx.hset(
                self._keys.member_attributes(member_id),
                {attribute: PRESENCE_SCORE for attribute in distinct},
            )
            for attribute in distinct:
                tx.zadd(self._keys.presence(attribute), {member_id: PRESENCE_SCORE})

        self._store.transaction(write)
        self.logger.info("Attributes added", member_id=member_id, attributes=len(distinct))
        return distinct

    def attributes_of(self, member_id: Any) -> Set[str]:
        """Attributes held by a member (empty for unknown members)."""
        member_id = require_identifier(member_id)
        return set(self._store.hgetall(self._keys.member_attributes(member_id)))

    def members_with(self, attribute: str) -> Set[str]:
        """Members whose presence list for ``attribute`` contains them."""
        return {member for member, _ in self._store.zitems(self._keys.presence(attribute))}

    def has_attribute(self, member_id: Any, attribute: str) -> bool:
        member_id = require_identifier(member_id)
        return self._store.zscore(self._keys.presence(attribute), member_id) is not None
