from __future__ import annotations

import logging

from facility_history.core.exceptions import NotFoundError, ValidationError
from facility_history.models import FacilityMatch
from facility_history.store.base import Store

logger = logging.getLogger(__name__)

MIN_SCORE = 0.7
CANDIDATE_LIMIT = 3


class MatchResolver:
    """Resolves a free-text facility name into every facility it plausibly means.

    The store ranks candidates; the resolver keeps the top
    ``candidate_limit`` and drops any below ``min_score``.  Aliased or
    duplicated names routinely clear the cutoff together, so all
    qualifying facilities are returned rather than a single best match.
    """

    def __init__(
        self,
        store: Store,
        *,
        min_score: float = MIN_SCORE,
        candidate_limit: int = CANDIDATE_LIMIT,
    ) -> None:
        self._store = store
        self.min_score = min_score
        self.candidate_limit = candidate_limit

    async def resolve(self, query: str) -> list[FacilityMatch]:
        if not query or not query.strip():
            raise ValidationError("query", "informe o nome da sala")

        candidates = await self._store.search_facilities(
            query.strip(), limit=self.candidate_limit
        )
        matches = [c for c in candidates if c.score >= self.min_score]
        logger.info(
            "Query %r: %d candidate(s), %d above %.2f",
            query,
            len(candidates),
            len(matches),
            self.min_score,
        )
        if not matches:
            raise NotFoundError(query)

        return sorted(
            matches, key=lambda m: (-m.score, m.facility.name, m.facility.id)
        )

    async def resolve_all(self) -> list[FacilityMatch]:
        """Every known facility, for exports that name no facility."""
        facilities = await self._store.list_facilities()
        if not facilities:
            raise NotFoundError(
                "", "Nenhuma sala encontrada com os critérios fornecidos"
            )
        return [FacilityMatch(facility=f, score=1.0) for f in facilities]
