"""Station name to SL site id resolution."""

from __future__ import annotations

import logging
from typing import Optional

from dashboard.errors import ResolutionError
from dashboard.sl_client import SLClient, Site

logger = logging.getLogger(__name__)


def _normalize(name: Optional[str]) -> str:
    return (name or "").strip().casefold()


def match_site(sites: list[Site], name: str) -> Optional[Site]:
    """
    Pick the site for a station name.

    An exact (normalized) name match wins over a substring match, so a metro
    station is not shadowed by a stop whose name merely starts the same way
    ("Duvbo" vs. "Duvbo torg").
    """
    needle = _normalize(name)
    if not needle:
        return None

    named = [site for site in sites if site.name]
    for site in named:
        if _normalize(site.name) == needle:
            return site
    for site in named:
        if needle in _normalize(site.name):
            return site
    return None


async def resolve_site_id(client: SLClient, name: str) -> int:
    """
    Resolve a station name to its site id.

    Raises FetchError when the site list cannot be fetched and
    ResolutionError when no site matches.
    """
    sites = await client.fetch_sites()
    site = match_site(sites, name)
    if site is None:
        raise ResolutionError(f"Hittade ingen hållplats som heter '{name}'")
    logger.info("Resolved station %r to site %d (%s)", name, site.id, site.name)
    return site.id
