"""
Reciprocal recommendation pipeline.

Given a querying member's attributes and interest weights, find the
candidates who are most mutually compatible:

    1. pool      union of presence(a) for a in or_filters             (weight 1)
    2. filter    intersection of pool and presence(a) for a in
                 and_filters                                           (weight 0)
    3. received  union of interest(a) for a in my_attributes           (weight 1)
                 -> how interested each candidate is in me
    4. given     union of presence(a) for a in my_interests            (weight = my weight)
                 -> how interested I am in each candidate
    5. combined  intersection of filter, received, given               (weight 1)
    6. score     harmonic mean of given and received, kept if > threshold
    7. top-N     descending score, ties by member id ascending

All unions/intersections aggregate with SUM. Because the filter stage has
weight 0, combined[m] = received[m] + given[m], so received is recovered as
combined[m] - given[m].

The harmonic mean punishes one-sided interest: a high score in one
direction cannot make up for a near-zero score in the other.
"""

from typing import List, Optional

from config.constants import DEFAULT_KEY_SPACE, DEFAULT_RECIPROCAL_THRESHOLD, KeySpace
from core.errors import InvalidQuery
from core.logging import LoggerMixin, log_context
from matching.models import Match, RecommendQuery
from matching.scratch import ScratchSpace
from storage import Aggregate, PostingStore, WeightedSource, sources_with_weight


def reciprocal_score(given: float, received: float) -> Optional[float]:
    """
    Harmonic mean of the two one-way scores.

    Returns None when either side is zero or negative (the mean is
    undefined or meaningless there), so callers exclude the pair instead of
    dividing by zero.
    """
    if given <= 0 or received <= 0:
        return None
    return 2.0 / (1.0 / given + 1.0 / received)


def score_candidate(given: float, received: float, threshold: float) -> Optional[float]:
    """Reciprocal score if it is strictly above ``threshold``, else None."""
    score = reciprocal_score(given, received)
    if score is None or score <= threshold:
        return None
    return score


class RecommendationEngine(LoggerMixin):
    """Runs the pipeline against a PostingStore. Reads indices, writes only scratch keys."""

    def __init__(
        self,
        store: PostingStore,
        key_space: KeySpace = DEFAULT_KEY_SPACE,
        threshold: float = DEFAULT_RECIPROCAL_THRESHOLD,
        scratch_ttl_seconds: Optional[int] = None,
    ):
        self._store = store
        self._keys = key_space
        self._threshold = threshold
        self._scratch_ttl = scratch_ttl_seconds

    @property
    def threshold(self) -> float:
        return self._threshold

    def recommend(self, query: RecommendQuery) -> List[Match]:
        """
        Top ``query.cardinality`` reciprocal matches, best first.

        Raises:
            InvalidQuery: If ``query`` is not a RecommendQuery
            StorageUnavailable: If the store fails
        """
        if not isinstance(query, RecommendQuery):
            raise InvalidQuery(f"Expected RecommendQuery, got {type(query).__name__}")
        if not query.or_filters or query.cardinality == 0:
            return []

        with ScratchSpace(self._store, self._keys, self._scratch_ttl) as scratch:
            with log_context(query_id=scratch.query_id):
                matches = self._run(query, scratch)
                self.logger.info("Recommendation complete", member_id=query.member_id,
                                 requested=query.cardinality, returned=len(matches))
                return matches

    def _stage(self, name: str, size: int) -> None:
        self.logger.debug("Stage complete", stage=name, size=size)

    def _run(self, query: RecommendQuery, scratch: ScratchSpace) -> List[Match]:
        store = self._store
        keys = self._keys

        # 1. Candidate pool
        pool = scratch.key("pool")
        size = store.union_store(
            pool,
            sources_with_weight([keys.presence(a) for a in query.or_filters], 1.0),
            Aggregate.SUM,
        )
        scratch.touch(pool)
        self._stage("pool", size)
        if size == 0:
            return []

        # 2. Hard filter; weight 0 keeps membership only
        filtered = scratch.key("filter")
        size = store.intersect_store(
            filtered,
            [WeightedSource(pool, 0.0)]
            + sources_with_weight([keys.presence(a) for a in query.and_filters], 0.0),
            Aggregate.SUM,
        )
        scratch.touch(filtered)
        self._stage("filter", size)
        if size == 0:
            return []

        # 3. Interest received: candidates' interest in my attributes
        received = scratch.key("received")
        size = store.union_store(
            received,
            sources_with_weight([keys.interest(a) for a in query.my_attributes], 1.0),
            Aggregate.SUM,
        )
        scratch.touch(received)
        self._stage("received", size)
        if size == 0:
            return []

        # 4. Interest given: my weighted interest in candidates' attributes
        given = scratch.key("given")
        size = store.union_store(
            given,
            [WeightedSource(keys.presence(a), w) for a, w in query.my_interests.items()],
            Aggregate.SUM,
        )
        scratch.touch(given)
        self._stage("given", size)
        if size == 0:
            return []

        # 5. Mutual candidates
        combined = scratch.key("combined")
        size = store.intersect_store(
            combined,
            sources_with_weight([filtered, received, given], 1.0),
            Aggregate.SUM,
        )
        scratch.touch(combined)
        self._stage("combined", size)
        if size == 0:
            return []

        # 6. Reciprocal scores
        # given is read in one pass; received = combined - given
        given_scores = dict(store.zitems(given))
        scores = {}
        for member_id, total in store.zitems(combined):
            if member_id == query.member_id:
                continue
            score_given = given_scores.get(member_id, 0.0)
            score_received = total - score_given
            score = score_candidate(score_given, score_received, self._threshold)
            if score is not None:
                scores[member_id] = score
        self._stage("scored", len(scores))
        if not scores:
            return []

        # 7. Top-N
        scored = scratch.key("scored")
        store.zadd(scored, scores)
        scratch.touch(scored)
        return [
            Match(member_id, score)
            for member_id, score in store.top(scored, query.cardinality, min_score=self._threshold)
        ]
