"""
Reciprocal-compatibility matching.

Quick start::

    from matching import MatchingService, RecommendQuery
    from storage import InMemoryPostingStore

    service = MatchingService(InMemoryPostingStore())
    service.add_attributes("131523112", ["orientation:straight", "gender:f"])
    service.record_interest("5", 1.0, ["orientation:straight", "gender:f"])

    matches = service.recommend(RecommendQuery(
        cardinality=10,
        or_filters=["orientation:straight"],
        my_attributes=["gender:m"],
        my_interests={"orientation:straight": 0.5, "gender:f": 0.5},
    ))
"""

from matching.attribute_index import AttributeIndex
from matching.engine import RecommendationEngine, reciprocal_score, score_candidate
from matching.interest_index import InterestIndex, normalize_weights
from matching.models import Match, MemberProfile, RecommendQuery
from matching.scratch import ScratchSpace
from matching.service import MatchingService, get_matching_service

__all__ = [
    "AttributeIndex",
    "InterestIndex",
    "RecommendationEngine",
    "MatchingService",
    "get_matching_service",
    "Match",
    "MemberProfile",
    "RecommendQuery",
    "ScratchSpace",
    "normalize_weights",
    "reciprocal_score",
    "score_candidate",
]
