"""
Matching service.

Facade over the attribute index, the interest index and the recommendation
engine, all sharing one posting-list store. This is what the API layer
talks to.

Usage:
    service = get_matching_service()

    service.add_attributes("131523112", ["orientation:straight", "gender:f"])
    service.record_interest("5", 1.0, ["orientation:straight", "gender:f"])
    matches = service.recommend_for_member("5", or_filters=["orientation:straight"])
"""

from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence, Union

from config.constants import KeySpace
from config.database import get_store
from config.settings import Settings, get_settings
from core.errors import InvalidQuery
from core.logging import LoggerMixin
from matching.attribute_index import AttributeIndex
from matching.engine import RecommendationEngine
from matching.interest_index import InterestIndex
from matching.models import Match, MemberProfile, RecommendQuery
from matching.validation import require_identifier
from storage import PostingStore


class MatchingService(LoggerMixin):
    """
    The three engine operations plus profile reads.

    Args:
        store: Posting-list store shared by all components
        settings: Settings (defaults to get_settings())
    """

    def __init__(self, store: PostingStore, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._store = store
        key_space = KeySpace(prefix=self._settings.key_prefix)
        self.attributes = AttributeIndex(store, key_space)
        self.interests = InterestIndex(store, key_space)
        self.engine = RecommendationEngine(
            store,
            key_space,
            threshold=self._settings.reciprocal_threshold,
            scratch_ttl_seconds=self._settings.scratch_ttl_seconds,
        )

    @property
    def store(self) -> PostingStore:
        return self._store

    # =========================================================
    # Ingestion
    # =========================================================

    def add_attributes(self, member_id: Any, attributes: Sequence[str]) -> List[str]:
        return self.attributes.add_attributes(member_id, attributes)

    def record_interest(self, actor_id: Any, delta: float, attributes: Sequence[str]) -> Dict[str, float]:
        return self.interests.record_interest(actor_id, delta, attributes)

    # =========================================================
    # Queries
    # =========================================================

    def recommend(self, query: Union[RecommendQuery, Dict[str, Any]]) -> List[Match]:
        """
        Run the recommendation pipeline.

        Accepts a RecommendQuery or a dict of its fields. A dict without a
        cardinality (or with None) gets default_cardinality.

        Raises:
            InvalidQuery: If the query is malformed or asks for more than
                max_cardinality matches
        """
        if isinstance(query, dict):
            fields = dict(query)
            if fields.get("cardinality") is None:
                fields["cardinality"] = self._settings.default_cardinality
            query = RecommendQuery.create(**fields)
        if not isinstance(query, RecommendQuery):
            raise InvalidQuery(f"Expected RecommendQuery, got {type(query).__name__}")
        if query.cardinality > self._settings.max_cardinality:
            raise InvalidQuery(
                f"cardinality {query.cardinality} exceeds the maximum of {self._settings.max_cardinality}"
            )
        return self.engine.recommend(query)

    def recommend_from_args(self, args: Sequence[str]) -> List[Match]:
        """Run a query given in the flat, count-prefixed argument form."""
        return self.recommend(RecommendQuery.from_args(args))

    def recommend_for_member(
        self,
        member_id: Any,
        or_filters: Sequence[str],
        and_filters: Sequence[str] = (),
        cardinality: Optional[int] = None,
    ) -> List[Match]:
        """
        Recommend for a member using the attributes and normalized interest
        stored for them, rather than caller-supplied ones.

        The member is never returned as their own match.
        """
        member_id = require_identifier(member_id)
        query = RecommendQuery.create(
            member_id=member_id,
            cardinality=self._settings.default_cardinality if cardinality is None else cardinality,
            or_filters=list(or_filters),
            and_filters=list(and_filters),
            my_attributes=sorted(self.attributes.attributes_of(member_id)),
            my_interests=self.interests.normalized_interest(member_id),
        )
        return self.recommend(query)

    def profile(self, member_id: Any) -> MemberProfile:
        member_id = require_identifier(member_id)
        return MemberProfile(
            member_id=member_id,
            attributes=sorted(self.attributes.attributes_of(member_id)),
            raw_interest=self.interests.raw_interest(member_id),
            normalized_interest=self.interests.normalized_interest(member_id),
        )


@lru_cache(maxsize=1)
def get_matching_service() -> MatchingService:
    """
    Get the singleton matching service over the configured store.

    Call get_matching_service.cache_clear() to rebuild it (useful for testing).
    """
    return MatchingService(get_store(), get_settings())
