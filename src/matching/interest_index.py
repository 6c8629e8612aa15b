"""
Interest index.

Each member (actor) accumulates raw interest weights per attribute. After
every change the whole raw map is renormalized so the weights sum to 1, and
each normalized weight is published into the attribute's interest posting
list (member -> weight). The read-modify-write of one actor's map runs as a
single transaction watching that actor's raw hash; different actors never
contend.
"""

from typing import Any, Dict, Mapping, Sequence

import numpy as np

from config.constants import DEFAULT_KEY_SPACE, KeySpace
from core.errors import InvalidArgument
from core.logging import LoggerMixin
from core.utils import convert_numpy, is_finite_number
from matching.validation import require_attributes, require_identifier
from storage import PostingStore, Transaction


def normalize_weights(raw: Mapping[str, float]) -> Dict[str, float]:
    """
    Scale raw weights so they sum to 1.

    Attributes with a zero raw weight are left out. Returns an empty dict
    when the total is zero (the caller then skips publication).
    """
    if not raw:
        return {}
    attributes = list(raw)
    values = np.fromiter((raw[a] for a in attributes), dtype=np.float64, count=len(attributes))
    # numpy's pairwise summation keeps the total stable for long histories
    total = values.sum()
    if total == 0:
        return {}
    weights = values / total
    return convert_numpy({
        attribute: weight
        for attribute, weight, value in zip(attributes, weights, values)
        if value != 0
    })


class InterestIndex(LoggerMixin):
    """Raw and normalized interest weights, plus the per-attribute interest lists."""

    def __init__(self, store: PostingStore, key_space: KeySpace = DEFAULT_KEY_SPACE):
        self._store = store
        self._keys = key_space

    def record_interest(self, actor_id: Any, delta: float, attributes: Sequence[str]) -> Dict[str, float]:
        """
        Add ``delta`` to the actor's raw interest in each attribute and
        republish the actor's normalized interest.

        An attribute repeated in ``attributes`` is incremented once per
        occurrence.

        Args:
            actor_id: Member expressing interest
            delta: Non-negative, finite increment
            attributes: Non-empty sequence of attribute ids

        Returns:
            The normalized interest map published by this call, or an empty
            dict when the total raw weight is zero and publication was skipped

        Raises:
            InvalidArgument: On an empty id or attribute list, or a negative
                or non-finite delta
        """
        actor_id = require_identifier(actor_id, "actor_id")
        attributes = require_attributes(attributes)
        if not is_finite_number(delta):
            raise InvalidArgument(f"delta must be a finite number, got {delta!r}")
        if delta < 0:
            raise InvalidArgument(f"delta must be >= 0, got {delta!r}")
        delta = float(delta)
        raw_key = self._keys.raw_interest(actor_id)

        def update(tx: Transaction) -> Dict[str, float]:
            raw = tx.hgetall(raw_key)
            changed: Dict[str, float] = {}
            for attribute in attributes:
                raw[attribute] = raw.get(attribute, 0.0) + delta
                changed[attribute] = raw[attribute]
            normalized = normalize_weights(raw)

            tx.hset(raw_key, changed)
            if normalized:
                tx.hset(self._keys.normalized_interest(actor_id), normalized)
                for attribute, weight in normalized.items():
                    tx.zadd(self._keys.interest(attribute), {actor_id: weight})
            return normalized

        normalized = self._store.transaction(update, raw_key)
        if normalized:
            self.logger.info("Interest recorded", actor_id=actor_id, delta=delta,
                             attributes=len(attributes), tracked=len(normalized))
        else:
            self.logger.info("Interest recorded, zero total, publication skipped",
                             actor_id=actor_id, attributes=len(attributes))
        return normalized

    def raw_interest(self, member_id: Any) -> Dict[str, float]:
        member_id = require_identifier(member_id)
        return self._store.hgetall(self._keys.raw_interest(member_id))

    def normalized_interest(self, member_id: Any) -> Dict[str, float]:
        member_id = require_identifier(member_id)
        return self._store.hgetall(self._keys.normalized_interest(member_id))

    def interest_in(self, attribute: str) -> Dict[str, float]:
        """Members interested in ``attribute`` and their normalized weights."""
        return dict(self._store.zitems(self._keys.interest(attribute)))
