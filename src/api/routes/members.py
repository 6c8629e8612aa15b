"""
Member ingestion routes.

Endpoints for recording a member's attributes and expressed interest, and
for reading back what the indices hold about a member.

NOTE: Routes use `def` (not `async def`) because the store client is
synchronous. FastAPI runs sync handlers in a thread pool.
"""

from typing import Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from matching.models import MemberProfile
from matching.service import MatchingService, get_matching_service


router = APIRouter(prefix="/api/members", tags=["Members"])


# =============================================================================
# Request/Response Models
# =============================================================================

class AddAttributesRequest(BaseModel):
    """Attributes a member holds (self-declared or computed)."""
    attributes: List[str] = Field(
        ...,
        description="Attribute ids, e.g. ['orientation:straight', 'gender:f']"
    )


class AddAttributesResponse(BaseModel):
    member_id: str
    attributes: List[str]


class RecordInterestRequest(BaseModel):
    """Interest a member (actor) expressed in another member's attributes."""
    delta: float = Field(default=1.0, description="Amount added to each attribute's raw weight")
    attributes: List[str] = Field(..., description="Attributes of the member the actor engaged with")


class RecordInterestResponse(BaseModel):
    member_id: str
    normalized_interest: Dict[str, float]
    published: bool


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/{member_id}/attributes", response_model=AddAttributesResponse)
def add_attributes(
    member_id: str,
    request: AddAttributesRequest,
    service: MatchingService = Depends(get_matching_service),
) -> AddAttributesResponse:
    """Add attributes to a member's profile and the presence index."""
    written = service.add_attributes(member_id, request.attributes)
    return AddAttributesResponse(member_id=member_id, attributes=written)


@router.post("/{member_id}/interests", response_model=RecordInterestResponse)
def record_interest(
    member_id: str,
    request: RecordInterestRequest,
    service: MatchingService = Depends(get_matching_service),
) -> RecordInterestResponse:
    """
    Increment the member's interest in the given attributes and republish
    their normalized interest.

    `published` is false when the member's total raw weight is zero.
    """
    normalized = service.record_interest(member_id, request.delta, request.attributes)
    return RecordInterestResponse(
        member_id=member_id,
        normalized_interest=normalized,
        published=bool(normalized),
    )


@router.get("/{member_id}", response_model=MemberProfile)
def get_member(
    member_id: str,
    service: MatchingService = Depends(get_matching_service),
) -> MemberProfile:
    """Attributes, raw interest and normalized interest for a member."""
    return service.profile(member_id)
