"""Candidate selection for rental searches.

``SearchCriteria`` carries the named filters a requester may send.
``SearchCriteria.resolve`` fills the gaps from the requester's stored profile,
``criteria_to_q`` maps the relational part onto a ``Q`` predicate and
``matches_profile`` checks the JSON-backed part (preset locations, weekly
availability) row by row.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional

from django.conf import settings
from django.db.models import F, Q

from users.directory import UserDirectory, get_default_directory
from users.models import User

from . import errors
from .domain import busy_user_ids, weekday_key

logger = logging.getLogger(__name__)


class MatchOutcome(str, Enum):
    EXACT = "exact"
    FALLBACK = "fallback"
    EMPTY = "empty"


def page_bounds(step: Any, limit: Any) -> tuple[int, int]:
    """
    Return (offset, limit) for a 1-based ``step``.

    Both values are clamped to at least 1; unparsable input falls back to 1.
    """
    try:
        step_value = int(step)
    except (TypeError, ValueError):
        step_value = 1
    try:
        limit_value = int(limit)
    except (TypeError, ValueError):
        limit_value = 1
    step_value = max(step_value, 1)
    limit_value = max(limit_value, 1)
    return (step_value - 1) * limit_value, limit_value


@dataclass(frozen=True)
class SearchCriteria:
    city: Optional[str] = None
    age_min: Optional[int] = None
    age_max: Optional[int] = None
    genders: frozenset[str] = field(default_factory=frozenset)
    preset_location_id: Optional[str] = None
    preset_location_name: Optional[str] = None
    booking_date: Optional[date] = None
    booking_hour: Optional[int] = None
    booking_hour_start: Optional[int] = None
    booking_hour_end: Optional[int] = None
    limit: Optional[int] = None
    step: int = 1

    def with_limit(self, limit: int) -> "SearchCriteria":
        return dataclasses.replace(self, limit=limit)

    def resolve(self, requester: Optional[User]) -> "SearchCriteria":
        """Fill city, age range and genders from the requester's profile."""
        city = (self.city or "").strip() or (requester.city.strip() if requester else "")
        if not city:
            raise errors.ValidationError("city required", field="city")

        age_min, age_max = self.age_min, self.age_max
        if age_min is None and age_max is None and requester is not None:
            age_min = requester.preferred_age_min
            age_max = requester.preferred_age_max

        genders = frozenset(g.strip().lower() for g in self.genders if g and g.strip())
        if not genders and requester is not None:
            genders = frozenset(
                str(g).strip().lower() for g in (requester.preferred_gender or []) if str(g).strip()
            )
        # "any" means no gender filter at all.
        if "any" in genders:
            genders = frozenset()

        return dataclasses.replace(
            self,
            city=city,
            age_min=age_min,
            age_max=age_max,
            genders=genders,
        )

    def hours(self) -> Optional[list[int]]:
        """
        Hours to check availability for, in the order they are searched.

        None means the search is not tied to a date/hour at all.
        """
        if self.booking_date is None:
            if any(
                value is not None
                for value in (self.booking_hour, self.booking_hour_start, self.booking_hour_end)
            ):
                raise errors.ValidationError(
                    "booking_date is required with a booking hour", field="booking_date"
                )
            return None

        start, end = self.booking_hour_start, self.booking_hour_end
        if start is not None or end is not None:
            if start is None:
                start = end
            if end is None:
                end = start
            low, high = min(start, end), max(start, end)
            if low < 0 or high > 23:
                raise errors.ValidationError(
                    "booking hours must be between 0 and 23", field="booking_hour_start"
                )
            return list(range(low, high + 1))

        if self.booking_hour is None:
            raise errors.ValidationError(
                "booking_hour or an hour range is required with booking_date",
                field="booking_hour",
            )
        if not 0 <= self.booking_hour <= 23:
            raise errors.ValidationError(
                "booking_hour must be between 0 and 23", field="booking_hour"
            )
        return [self.booking_hour]


@dataclass
class MatchResult:
    candidates: list[dict] = field(default_factory=list)
    outcome: MatchOutcome = MatchOutcome.EMPTY
    # Set when no further city-only pass should run for this page.
    broadened: bool = False

    def __len__(self) -> int:
        return len(self.candidates)


def criteria_to_q(criteria: SearchCriteria) -> Q:
    """Relational part of a resolved search: city, gender set and age range."""
    predicate = Q(city__iexact=criteria.city)
    if criteria.genders:
        gender_q = Q()
        for gender in sorted(criteria.genders):
            gender_q |= Q(gender__iexact=gender)
        predicate &= gender_q
    if criteria.age_min is not None:
        predicate &= Q(age__gte=criteria.age_min)
    if criteria.age_max is not None:
        predicate &= Q(age__lte=criteria.age_max)
    return predicate


def matches_profile(user: User, criteria: SearchCriteria, *, hour: Optional[int] = None) -> bool:
    """JSON-backed part of a search: preset location and weekly availability."""
    if criteria.preset_location_id:
        if not user.has_preset_location(location_id=criteria.preset_location_id):
            return False
    elif criteria.preset_location_name:
        if not user.has_preset_location(name=criteria.preset_location_name):
            return False
    if hour is not None and criteria.booking_date is not None:
        if hour not in user.hours_available_on(weekday_key(criteria.booking_date)):
            return False
    return True


def summarize_candidate(user: User, *, hour: Optional[int] = None) -> dict:
    """Public card for a candidate; never includes contact or credit fields."""
    summary = {
        "user_id": user.pk,
        "name": user.display_name,
        "age": user.age,
        "image": user.primary_image,
        "bio": user.bio or "",
        "interests": list(user.interests or []),
        "preset_locations": [
            {"id": entry.get("id"), "name": entry.get("name")}
            for entry in (user.preset_locations or [])
            if isinstance(entry, dict)
        ],
        "availability": user.availability or {},
        "last_seen": user.last_seen.isoformat() if user.last_seen else None,
    }
    if hour is not None:
        summary["matched_hour"] = hour
    return summary


class MatchFinder:
    """Select and page candidates for a requester, broadening to city-only when needed."""

    EXACT_ORDERING = (F("last_seen").desc(nulls_last=True), "id")

    def __init__(self, directory: UserDirectory | None = None) -> None:
        self.directory = directory or get_default_directory()

    def find_matches(self, requester_id: Any, criteria: SearchCriteria) -> MatchResult:
        requester = None
        if requester_id is not None:
            requester = self.directory.get(requester_id)
            if requester is None:
                raise errors.NotFound("User not found")

        resolved = criteria.resolve(requester)
        limit = resolved.limit or getattr(settings, "MATCHES_TOP_LIMIT", 20)
        offset, limit = page_bounds(resolved.step, limit)
        hours = resolved.hours()

        collected = self._collect_exact(resolved, requester_id, hours, want=offset + limit)
        if collected:
            page = collected[offset : offset + limit]
            if not page:
                # Page lies past the last exact match.
                return MatchResult(candidates=[], outcome=MatchOutcome.EMPTY, broadened=True)
            return MatchResult(candidates=page, outcome=MatchOutcome.EXACT)

        logger.info(
            "matching: no exact matches, falling back to city-only",
            extra={"requester_id": requester_id, "city": resolved.city},
        )
        fallback = self.directory.list_city_users(
            resolved.city, exclude_id=requester_id, limit=limit, offset=offset
        )
        if not fallback:
            return MatchResult(candidates=[], outcome=MatchOutcome.EMPTY, broadened=True)
        return MatchResult(
            candidates=[summarize_candidate(user) for user in fallback],
            outcome=MatchOutcome.FALLBACK,
        )

    def _collect_exact(
        self,
        criteria: SearchCriteria,
        requester_id: Any,
        hours: Optional[list[int]],
        *,
        want: int,
    ) -> list[dict]:
        """
        Gather up to ``want`` unique candidates.

        With hours, each hour is searched in turn and a candidate keeps the first
        hour it qualified for.
        """
        predicate = criteria_to_q(criteria)
        seen: set = set()
        collected: list[dict] = []

        for hour in hours if hours is not None else [None]:
            excluded = set(seen)
            excluded.add(requester_id)
            if hour is not None:
                excluded |= busy_user_ids(criteria.booking_date, hour)
            for user in self.directory.iter_users(
                predicate, exclude_ids=excluded, ordering=self.EXACT_ORDERING
            ):
                if not matches_profile(user, criteria, hour=hour):
                    continue
                seen.add(user.pk)
                collected.append(summarize_candidate(user, hour=hour))
                if len(collected) >= want:
                    return collected
        return collected
