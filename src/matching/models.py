"""
Pydantic models for the matching engine.

RecommendQuery is the typed form of a recommend call. It is validated once
at construction; every failure surfaces as InvalidQuery. The flat,
count-prefixed argument form used by script callers is parsed by
RecommendQuery.from_args.
"""

import math
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.errors import InvalidQuery
from core.utils import dedupe_preserving_order


class Match(NamedTuple):
    """One recommended member and its reciprocal score."""
    member_id: str
    score: float


def _check_attribute_list(values: List[str]) -> List[str]:
    for value in values:
        if not value.strip():
            raise ValueError("attribute ids must be non-empty")
    return dedupe_preserving_order(values)


class RecommendQuery(BaseModel):
    """Parameters of one recommend call."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    cardinality: int = Field(..., ge=0, description="Maximum number of matches to return")
    or_filters: List[str] = Field(
        default_factory=list,
        description="Candidate pool: members holding any of these attributes"
    )
    and_filters: List[str] = Field(
        default_factory=list,
        description="Hard filter: candidates must hold all of these attributes"
    )
    my_attributes: List[str] = Field(
        default_factory=list,
        description="Attributes of the querying member (measures interest received)"
    )
    my_interests: Dict[str, float] = Field(
        default_factory=dict,
        description="Querying member's interest weights (measures interest given)"
    )
    member_id: Optional[str] = Field(
        default=None,
        description="Querying member; never returned as its own match"
    )

    @field_validator("or_filters", "and_filters", "my_attributes")
    @classmethod
    def validate_attribute_list(cls, v: List[str]) -> List[str]:
        return _check_attribute_list(v)

    @field_validator("my_interests")
    @classmethod
    def validate_interests(cls, v: Dict[str, float]) -> Dict[str, float]:
        for attribute, weight in v.items():
            if not attribute.strip():
                raise ValueError("interest attribute ids must be non-empty")
            if not math.isfinite(weight) or weight < 0:
                raise ValueError(f"interest weight for {attribute!r} must be finite and >= 0")
        return v

    @field_validator("member_id", mode="before")
    @classmethod
    def coerce_member_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @classmethod
    def create(cls, **fields: Any) -> "RecommendQuery":
        """
        Build a query, reporting validation failures as InvalidQuery.

        Raises:
            InvalidQuery: If any field is missing or invalid
        """
        try:
            return cls(**fields)
        except ValidationError as e:
            raise InvalidQuery(str(e)) from e

    @classmethod
    def from_args(cls, args: Sequence[str]) -> "RecommendQuery":
        """
        Parse the flat argument form::

            N  k1 or_1..or_k1  k2 and_1..and_k2  k3 attr_1..attr_k3
               k4 interest_1 weight_1 .. interest_k4 weight_k4

        Raises:
            InvalidQuery: On a missing, non-integer or negative count, a
                count larger than the remaining arguments, a non-numeric
                weight, or trailing arguments
        """
        return _FlatArgsParser(args).parse()


class _FlatArgsParser:
    """Single pass over the flat argument list; any inconsistency is fatal."""

    def __init__(self, args: Sequence[str]):
        self._args = [str(arg) for arg in args]
        self._pos = 0

    def _take(self, what: str) -> str:
        if self._pos >= len(self._args):
            raise InvalidQuery(f"Missing {what} at argument {self._pos + 1}")
        value = self._args[self._pos]
        self._pos += 1
        return value

    def _count(self, what: str) -> int:
        token = self._take(what)
        try:
            count = int(token)
        except ValueError:
            raise InvalidQuery(f"{what} must be an integer, got {token!r}") from None
        if count < 0:
            raise InvalidQuery(f"{what} must be >= 0, got {count}")
        return count

    def _list(self, what: str) -> List[str]:
        count = self._count(f"{what} count")
        remaining = len(self._args) - self._pos
        if count > remaining:
            raise InvalidQuery(f"{what} count is {count} but only {remaining} arguments remain")
        return [self._take(what) for _ in range(count)]

    def _weight(self, attribute: str) -> float:
        token = self._take(f"weight for {attribute!r}")
        try:
            return float(token)
        except ValueError:
            raise InvalidQuery(f"Weight for {attribute!r} must be numeric, got {token!r}") from None

    def parse(self) -> RecommendQuery:
        cardinality = self._count("cardinality")
        or_filters = self._list("or filter")
        and_filters = self._list("and filter")
        my_attributes = self._list("attribute")

        interest_count = self._count("interest count")
        remaining = len(self._args) - self._pos
        if interest_count * 2 > remaining:
            raise InvalidQuery(
                f"interest count is {interest_count} but only {remaining} arguments remain "
                f"(each interest needs a name and a weight)"
            )
        my_interests: Dict[str, float] = {}
        for _ in range(interest_count):
            attribute = self._take("interest")
            my_interests[attribute] = self._weight(attribute)

        if self._pos != len(self._args):
            raise InvalidQuery(f"Unexpected trailing arguments: {self._args[self._pos:]}")

        return RecommendQuery.create(
            cardinality=cardinality,
            or_filters=or_filters,
            and_filters=and_filters,
            my_attributes=my_attributes,
            my_interests=my_interests,
        )


class MemberProfile(BaseModel):
    """Everything the indices hold about one member."""
    member_id: str
    attributes: List[str] = Field(default_factory=list)
    raw_interest: Dict[str, float] = Field(default_factory=dict)
    normalized_interest: Dict[str, float] = Field(default_factory=dict)
