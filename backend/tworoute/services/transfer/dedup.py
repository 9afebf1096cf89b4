"""Deduplicator: collapses near-identical candidates, keeping the first seen."""

from tworoute.services.transfer.config import DedupTolerances, transfer_config
from tworoute.services.transfer.models import TransferRoute


def _mode_signature(route: TransferRoute, ordered: bool) -> list[str]:
    modes = route.modes
    return modes if ordered else sorted(modes)


def routes_are_similar(
    a: TransferRoute,
    b: TransferRoute,
    tolerances: DedupTolerances | None = None,
) -> bool:
    """Same modes, and duration and cost within tolerance.

    By default modes are compared as a sorted list, so walk+taxi and
    taxi+walk count as the same route.
    """
    tol = tolerances or transfer_config.dedup
    same_modes = _mode_signature(a, tol.ordered_modes) == _mode_signature(b, tol.ordered_modes)
    similar_duration = abs(a.total_duration - b.total_duration) < tol.duration_minutes
    similar_cost = abs(a.total_cost - b.total_cost) < tol.cost
    return same_modes and similar_duration and similar_cost


def deduplicate_routes(
    candidates: list[TransferRoute],
    tolerances: DedupTolerances | None = None,
) -> list[TransferRoute]:
    unique: list[TransferRoute] = []
    for candidate in candidates:
        if not any(routes_are_similar(candidate, existing, tolerances) for existing in unique):
            unique.append(candidate)
    return unique
