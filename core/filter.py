from db.models import Listing

TEXT_FIELDS = ("material_name", "description", "category")


def matches_search_term(listing: Listing, term_lower: str) -> bool:
    return any(term_lower in (getattr(listing, name) or "").lower() for name in TEXT_FIELDS)


def sort_newest_first(listings: list[Listing]) -> list[Listing]:
    return sorted(listings, key=lambda item: item.created_at, reverse=True)


def refine_listings(candidates: list[Listing], search_term: str, limit: int) -> list[Listing]:
    """Narrow location-filtered candidates to those matching ``search_term``.

    Keeps a candidate when any of its material name, description or category
    contains the term (case-insensitive substring), re-sorts newest first and
    truncates to ``limit``. A short candidate list simply yields fewer results.
    """
    term_lower = search_term.lower()
    retained = [item for item in candidates if matches_search_term(item, term_lower)]
    return sort_newest_first(retained)[:limit]
