"""
Recommendation routes.

- POST /api/recommend: explicit query (attributes and interests supplied by
  the caller)
- POST /api/members/{member_id}/recommend: query built from the member's
  stored attributes and normalized interest
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from matching.models import Match
from matching.service import MatchingService, get_matching_service


router = APIRouter(prefix="/api", tags=["Recommendations"])


# =============================================================================
# Request/Response Models
# =============================================================================

class RecommendRequest(BaseModel):
    """Explicit recommend query."""
    cardinality: Optional[int] = Field(
        default=None,
        ge=0,
        description="Maximum number of matches (default_cardinality when omitted)"
    )
    or_filters: List[str] = Field(default_factory=list, description="Candidate pool attributes (any)")
    and_filters: List[str] = Field(default_factory=list, description="Required attributes (all)")
    my_attributes: List[str] = Field(default_factory=list, description="The querying member's attributes")
    my_interests: Dict[str, float] = Field(default_factory=dict, description="The querying member's interest weights")
    member_id: Optional[str] = Field(default=None, description="Querying member, excluded from results")


class MemberRecommendRequest(BaseModel):
    """Recommend query for a stored member."""
    cardinality: Optional[int] = Field(
        default=None,
        ge=0,
        description="Maximum number of matches (default_cardinality when omitted)"
    )
    or_filters: List[str] = Field(..., description="Candidate pool attributes (any)")
    and_filters: List[str] = Field(default_factory=list, description="Required attributes (all)")


class ArgsRecommendRequest(BaseModel):
    """Recommend query in the flat, count-prefixed argument form."""
    args: List[str] = Field(..., description="N k1 or.. k2 and.. k3 attr.. k4 (interest weight)..")


class MatchResponse(BaseModel):
    member_id: str
    score: float


class RecommendResponse(BaseModel):
    matches: List[MatchResponse]
    count: int


def _format_matches(matches: List[Match]) -> RecommendResponse:
    return RecommendResponse(
        matches=[MatchResponse(member_id=m.member_id, score=m.score) for m in matches],
        count=len(matches),
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/recommend", response_model=RecommendResponse)
def recommend(
    request: RecommendRequest,
    service: MatchingService = Depends(get_matching_service),
) -> RecommendResponse:
    """Top-N reciprocal matches for an explicit query."""
    return _format_matches(service.recommend(request.model_dump()))


@router.post("/recommend/args", response_model=RecommendResponse)
def recommend_from_args(
    request: ArgsRecommendRequest,
    service: MatchingService = Depends(get_matching_service),
) -> RecommendResponse:
    """Top-N reciprocal matches for a query in flat argument form."""
    return _format_matches(service.recommend_from_args(request.args))


@router.post("/members/{member_id}/recommend", response_model=RecommendResponse)
def recommend_for_member(
    member_id: str,
    request: MemberRecommendRequest,
    service: MatchingService = Depends(get_matching_service),
) -> RecommendResponse:
    """Top-N reciprocal matches using the member's stored profile."""
    matches = service.recommend_for_member(
        member_id,
        or_filters=request.or_filters,
        and_filters=request.and_filters,
        cardinality=request.cardinality,
    )
    return _format_matches(matches)
