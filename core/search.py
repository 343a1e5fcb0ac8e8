"""Listing search: strategy selection, remote query and local refinement.

The store can filter on one OR group efficiently but two independent
substring groups (location and free text) are not pushed down together.
When both terms are present the location group is applied remotely over a
wider candidate window and the free-text match runs in memory afterwards.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from config import settings
from core.filter import refine_listings
from db.models import Listing, ListingStatus, ListingType
from db.query import Condition, ListingQuery, eq, gte, ieq, ilike, lte
from db.store import StoreError

log = logging.getLogger(__name__)


class RemoteFetchError(Exception):
    """The listings store failed to answer a search."""


class SearchStrategy(Enum):
    RECENT = "recent"
    LOCATION = "location"
    TEXT = "text"
    COMBINED = "combined"


class ListingSource(Protocol):
    async def fetch_listings(self, query: ListingQuery) -> list[Listing]: ...


@dataclass(frozen=True)
class SearchLimits:
    recent: int = 12
    browse: int = 50
    search: int = 50
    candidate_window: int = 200
    featured: int = 6

    @classmethod
    def from_settings(cls) -> "SearchLimits":
        return cls(
            recent=settings.recent_page_size,
            browse=settings.browse_page_size,
            search=settings.search_limit,
            candidate_window=settings.candidate_window,
            featured=settings.featured_limit,
        )


@dataclass
class SearchFilters:
    search: str | None = None
    city: str | None = None
    location: str | None = None
    category: str | None = None
    condition: str | None = None
    listing_type: ListingType | None = None
    min_price: float | None = None
    max_price: float | None = None

    def __post_init__(self) -> None:
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError("min_price cannot exceed max_price")


def normalize_term(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def select_strategy(location_term: str | None, search_term: str | None) -> SearchStrategy:
    if location_term and search_term:
        return SearchStrategy.COMBINED
    if location_term:
        return SearchStrategy.LOCATION
    if search_term:
        return SearchStrategy.TEXT
    return SearchStrategy.RECENT


def location_conditions(term: str) -> tuple[Condition, ...]:
    return ieq("city", term), ilike("location", term)


def text_conditions(term: str) -> tuple[Condition, ...]:
    return ilike("material_name", term), ilike("description", term), ilike("category", term)


def active_listings() -> ListingQuery:
    return ListingQuery().where(eq("status", ListingStatus.ACTIVE))


class QueryComposer:
    def __init__(self, source: ListingSource, limits: SearchLimits | None = None):
        self.source = source
        self.limits = limits or SearchLimits.from_settings()

    def compose(
        self,
        location_term: str | None,
        search_term: str | None,
        recent_limit: int | None = None,
    ) -> tuple[SearchStrategy, ListingQuery]:
        location_term = normalize_term(location_term)
        search_term = normalize_term(search_term)
        strategy = select_strategy(location_term, search_term)

        query = active_listings().order("created_at", descending=True)
        if strategy is SearchStrategy.RECENT:
            query.limit(recent_limit or self.limits.recent)
        elif strategy is SearchStrategy.LOCATION:
            query.any_of(*location_conditions(location_term)).limit(self.limits.search)
        elif strategy is SearchStrategy.TEXT:
            query.any_of(*text_conditions(search_term)).limit(self.limits.search)
        else:
            query.any_of(*location_conditions(location_term)).limit(
                self.limits.candidate_window
            )
        return strategy, query

    async def search(
        self,
        location_term: str | None = None,
        search_term: str | None = None,
        recent_limit: int | None = None,
    ) -> list[Listing]:
        strategy, query = self.compose(location_term, search_term, recent_limit)
        log.debug(f"Search strategy {strategy.value}: location={location_term!r} text={search_term!r}")

        listings = await self._fetch(query)
        if strategy is SearchStrategy.COMBINED:
            return refine_listings(listings, normalize_term(search_term), self.limits.search)  # type: ignore[arg-type]
        return listings

    async def advanced_search(self, filters: SearchFilters) -> list[Listing]:
        query = active_listings()

        city = normalize_term(filters.city)
        location = normalize_term(filters.location)
        if city:
            query.where(ieq("city", city))
        elif location:
            query.where(ilike("location", location))

        if filters.category:
            query.where(eq("category", filters.category))
        if filters.condition:
            query.where(eq("condition", filters.condition))
        if filters.listing_type:
            query.where(eq("listing_type", filters.listing_type))
        if filters.min_price is not None:
            query.where(gte("price", filters.min_price))
        if filters.max_price is not None:
            query.where(lte("price", filters.max_price))

        text = normalize_term(filters.search)
        if text:
            query.any_of(ilike("material_name", text), ilike("description", text))

        query.order("created_at", descending=True).limit(self.limits.browse)
        return await self._fetch(query)

    async def featured(self) -> list[Listing]:
        query = active_listings().order("views_count", descending=True).limit(self.limits.featured)
        return await self._fetch(query)

    async def _fetch(self, query: ListingQuery) -> list[Listing]:
        try:
            return await self.source.fetch_listings(query)
        except StoreError as e:
            raise RemoteFetchError(str(e)) from e
