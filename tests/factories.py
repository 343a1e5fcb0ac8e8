import sys
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from db.models import Listing, ListingStatus, ListingType
from db.store import Store

T0 = datetime(2025, 1, 1, 9, 0, 0)


def at(hours: int) -> datetime:
    return T0 + timedelta(hours=hours)


def make_listing(**overrides) -> Listing:
    fields = dict(
        id=f"listing-{overrides.get('material_name', 'x')}",
        owner_id=1,
        material_name="Cotton Scraps",
        category="Textile Waste",
        condition="Recyclable",
        listing_type=ListingType.SELL,
        quantity="500 kg",
        price=15000.0,
        is_exchange_only=False,
        city="Karachi",
        location="Industrial Area",
        description="",
        status=ListingStatus.ACTIVE,
        views_count=0,
        created_at=T0,
        updated_at=T0,
    )
    fields.update(overrides)
    return Listing(**fields)


async def open_store(tmp_path: Path) -> Store:
    store = Store(tmp_path / "saudaghar-test.db")
    await store.connect()
    return store


async def add_listing(
    store: Store,
    material_name: str,
    city: str = "",
    location: str = "",
    category: str = "Other",
    description: str = "",
    hours: int = 0,
    status: ListingStatus = ListingStatus.ACTIVE,
    owner_id: int = 1,
    listing_type: ListingType = ListingType.SELL,
    condition: str = "Used",
    price: float | None = None,
) -> Listing:
    return await store.add_listing(
        owner_id=owner_id,
        material_name=material_name,
        category=category,
        condition=condition,
        listing_type=listing_type,
        price=price,
        city=city,
        location=location,
        description=description,
        status=status,
        created_at=at(hours),
    )
