"""TransferComposer: orchestrates the full primary + backup pipeline.

Flow:
    1. Cache lookup (hit → re-analyse the cached pair and return)
    2. Run all six strategies concurrently, each under its own deadline
    3. Drop near-duplicates, score and rank the survivors
    4. Select primary and a strategically distinct backup
    5. Enhance both with instructions, contingency plan and time estimate
    6. Analyse the pair, cache it, return
"""

import asyncio
import logging
import time

from tworoute.config import settings
from tworoute.exceptions import NoRouteFound
from tworoute.services.cache_service import RouteCache
from tworoute.services.transfer.analyzer import analyze_routes
from tworoute.services.transfer.config import ScoringWeights
from tworoute.services.transfer.dedup import deduplicate_routes
from tworoute.services.transfer.enhancer import enhance_route
from tworoute.services.transfer.models import ComposedTransfer, TransferRequest
from tworoute.services.transfer.scoring import rank_routes
from tworoute.services.transfer.selection import select_pair
from tworoute.services.transfer.strategies import STRATEGIES, generate_candidates
from tworoute.services.transport_provider import TransportProvider

logger = logging.getLogger(__name__)


class TransferComposer:
    """Builds a primary and backup route for a transfer request.

    Collaborators are injected; the composer keeps no state of its own
    beyond them, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        provider: TransportProvider,
        cache: RouteCache | None = None,
        strategy_timeout: float | None = None,
        weights: ScoringWeights | None = None,
        strategies=STRATEGIES,
    ):
        self.provider = provider
        self.cache = cache
        self.strategy_timeout = strategy_timeout or settings.strategy_timeout_seconds
        self.weights = weights
        self.strategies = strategies

    async def compose(self, request: TransferRequest, timeout: float | None = None) -> ComposedTransfer:
        """Compose the route pair, optionally under an overall deadline (raises asyncio.TimeoutError)."""
        if timeout is None:
            return await self._compose(request)
        return await asyncio.wait_for(self._compose(request), timeout=timeout)

    async def _compose(self, request: TransferRequest) -> ComposedTransfer:
        start_time = time.monotonic()
        logger.info(
            f"Composing transfer {request.origin.name} -> {request.destination.name} "
            f"({request.context.time_of_day}, {request.context.day_of_week})"
        )

        cached = await self._from_cache(request)
        if cached:
            return cached

        candidates, outcomes = await generate_candidates(
            request, self.provider, self.strategy_timeout, self.strategies
        )
        if not candidates:
            failures = {o.strategy: o.error or "no candidate" for o in outcomes}
            logger.warning(f"No strategy produced a route: {failures}")
            raise NoRouteFound(failures=failures)

        unique = deduplicate_routes(candidates)
        ranked = rank_routes(unique, request, self.weights)
        logger.info(
            f"{len(candidates)} candidates from {len(outcomes)} strategies, "
            f"{len(unique)} after dedup; best {ranked[0].strategy} scored {ranked[0].score}"
        )

        primary, backup = select_pair(ranked, request)
        primary = enhance_route(primary, request, "primary")
        backup = enhance_route(backup, request, "backup")
        analysis = analyze_routes(primary, backup, request)

        if self.cache is not None:
            await self.cache.set_pair(request, primary, backup)

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(
            f"Composed transfer in {elapsed_ms}ms: primary={primary.strategy} backup={backup.strategy}"
        )
        return ComposedTransfer(
            primary=primary,
            backup=backup,
            analysis=analysis,
            candidates_considered=len(unique),
            outcomes=outcomes,
        )

    async def _from_cache(self, request: TransferRequest) -> ComposedTransfer | None:
        if self.cache is None:
            return None
        pair = await self.cache.get_pair(request)
        if pair is None:
            return None
        primary, backup = pair
        logger.info(f"Cache hit for {request.origin.name} -> {request.destination.name}")
        return ComposedTransfer(
            primary=primary,
            backup=backup,
            analysis=analyze_routes(primary, backup, request),
            from_cache=True,
        )
