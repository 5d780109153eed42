"""Service provider selection for published service requests."""

from __future__ import annotations

from collections.abc import Iterable

from abathwa.client.schemas import Record


def select_provider(providers: Iterable[Record], category: str | None) -> Record | None:
    """Pick the provider to assign to a service request.

    Only verified providers whose category matches exactly are eligible.
    The highest rated one wins; ties keep the input order. Providers
    without a rating rank last.

    Args:
        providers: Candidate provider records.
        category: Service category of the request.

    Returns:
        The chosen provider, or None if nobody is eligible.
    """
    if not category:
        return None
    eligible = [
        p for p in providers
        if p.get("service_category") == category and p.get("is_verified") is True
    ]
    if not eligible:
        return None
    ranked = sorted(eligible, key=lambda p: float(p.get("rating") or 0), reverse=True)
    return ranked[0]
