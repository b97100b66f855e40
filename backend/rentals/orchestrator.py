"""Credit-metered entry point for rental searches."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings

from users.directory import UserDirectory, get_default_directory

from . import errors
from .matching import (
    MatchFinder,
    MatchOutcome,
    SearchCriteria,
    page_bounds,
    summarize_candidate,
)

logger = logging.getLogger(__name__)


@dataclass
class InitiateResult:
    matches: list[dict] = field(default_factory=list)
    outcome: MatchOutcome = MatchOutcome.EMPTY
    credits_charged: int = 0


class BookingOrchestrator:
    """
    Turn a search request into a metered MatchFinder call.

    Each returned candidate costs one credit. The number requested is capped by
    the requester's balance and the charge is the number actually returned.
    """

    def __init__(
        self,
        directory: UserDirectory | None = None,
        finder: MatchFinder | None = None,
    ) -> None:
        self.directory = directory or get_default_directory()
        self.finder = finder or MatchFinder(self.directory)

    def initiate(self, requester_id: Any, criteria: SearchCriteria) -> InitiateResult:
        requester = self.directory.get(requester_id)
        if requester is None:
            raise errors.NotFound("User not found")

        balance = requester.credits_balance or 0
        if balance <= 0:
            raise errors.InsufficientCredits(balance=balance)

        default_limit = getattr(settings, "RENTAL_DEFAULT_MATCH_LIMIT", 3)
        requested_limit = min(criteria.limit or default_limit, balance)
        result = self.finder.find_matches(requester.pk, criteria.with_limit(requested_limit))

        matches, outcome = result.candidates, result.outcome
        if outcome == MatchOutcome.EMPTY and not result.broadened:
            resolved_city = criteria.resolve(requester).city
            offset, limit = page_bounds(criteria.step, requested_limit)
            fallback = self.directory.list_city_users(
                resolved_city, exclude_id=requester.pk, limit=limit, offset=offset
            )
            matches = [summarize_candidate(user) for user in fallback]
            if matches:
                outcome = MatchOutcome.FALLBACK

        charged = len(matches)
        if charged and not self.directory.debit_credits(requester.pk, charged):
            fresh = self.directory.get(requester.pk)
            raise errors.InsufficientCredits(
                balance=getattr(fresh, "credits_balance", 0), required=charged
            )

        logger.info(
            "rentals: initiate returned %s candidates (%s)",
            charged,
            outcome.value,
            extra={"requester_id": requester.pk},
        )
        return InitiateResult(matches=matches, outcome=outcome, credits_charged=charged)
