import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from config import settings
from core.categories import (
    BUSINESS_TYPES,
    MATERIAL_CATEGORIES,
    MATERIAL_CONDITIONS,
    match_choice,
)
from core.search import active_listings
from db.models import (
    Listing,
    ListingStatus,
    ListingType,
    Message,
    Notification,
    NotificationType,
    Profile,
    Transaction,
    TransactionStatus,
)
from db.store import Store

log = logging.getLogger(__name__)


class MarketplaceError(Exception):
    pass


class ListingNotFound(MarketplaceError):
    def __init__(self, listing_id: str):
        super().__init__(f"Listing {listing_id} not found")
        self.listing_id = listing_id


class PermissionDenied(MarketplaceError):
    pass


class InvalidInput(MarketplaceError):
    pass


@dataclass
class MarketplaceStats:
    total_listings: int
    total_views: int
    active_users: int


class Marketplace:
    """Listing management, messaging, ratings and reminders on top of a store."""

    def __init__(self, store: Store):
        self.store = store

    # === Listings ===

    async def create_listing(
        self,
        owner_id: int,
        material_name: str,
        category: str,
        condition: str,
        listing_type: ListingType,
        quantity: str = "",
        price: float | None = None,
        is_exchange_only: bool = False,
        city: str = "",
        location: str = "",
        description: str = "",
        contact_preferences: dict | None = None,
    ) -> Listing:
        material_name = material_name.strip()
        if not material_name:
            raise InvalidInput("Material name is required")

        canonical_category = match_choice(category, MATERIAL_CATEGORIES)
        if not canonical_category:
            raise InvalidInput(f"Unknown category: {category}")
        canonical_condition = match_choice(condition, MATERIAL_CONDITIONS)
        if not canonical_condition:
            raise InvalidInput(f"Unknown condition: {condition}")

        if is_exchange_only:
            price = None
        elif price is not None and price < 0:
            raise InvalidInput("Price cannot be negative")

        listing = await self.store.add_listing(
            owner_id=owner_id,
            material_name=material_name,
            category=canonical_category,
            condition=canonical_condition,
            listing_type=listing_type,
            quantity=quantity.strip(),
            price=price,
            is_exchange_only=is_exchange_only,
            city=city.strip(),
            location=location.strip(),
            description=description.strip(),
            contact_preferences=contact_preferences,
        )
        log.info(f"Listing {listing.id} created by {owner_id}: {listing.material_name}")
        return listing

    async def get_listing(self, listing_id: str) -> Listing:
        listing = await self.store.get_listing(listing_id)
        if not listing:
            raise ListingNotFound(listing_id)
        return listing

    async def view_listing(self, listing_id: str) -> Listing:
        await self.get_listing(listing_id)
        await self.store.increment_views(listing_id)
        return await self.get_listing(listing_id)

    async def _owned_listing(self, listing_id: str, owner_id: int) -> Listing:
        listing = await self.get_listing(listing_id)
        if listing.owner_id != owner_id:
            raise PermissionDenied("Only the owner can change this listing")
        return listing

    async def update_listing(self, listing_id: str, owner_id: int, **fields) -> Listing:
        listing = await self._owned_listing(listing_id, owner_id)
        if "listing_type" in fields:
            try:
                fields["listing_type"] = ListingType(fields["listing_type"])
            except ValueError:
                raise InvalidInput(f"Unknown listing type: {fields['listing_type']}") from None
        if "category" in fields:
            category = match_choice(fields["category"], MATERIAL_CATEGORIES)
            if not category:
                raise InvalidInput(f"Unknown category: {fields['category']}")
            fields["category"] = category
        if "condition" in fields:
            condition = match_choice(fields["condition"], MATERIAL_CONDITIONS)
            if not condition:
                raise InvalidInput(f"Unknown condition: {fields['condition']}")
            fields["condition"] = condition
        if fields.get("is_exchange_only", listing.is_exchange_only):
            fields["price"] = None
        elif fields.get("price") is not None and fields["price"] < 0:
            raise InvalidInput("Price cannot be negative")

        await self.store.update_listing(listing_id, **fields)
        return await self.get_listing(listing_id)

    async def deactivate_listing(self, listing_id: str, owner_id: int) -> Listing:
        await self._owned_listing(listing_id, owner_id)
        await self.store.update_listing(listing_id, status=ListingStatus.INACTIVE)
        log.info(f"Listing {listing_id} deactivated by {owner_id}")
        return await self.get_listing(listing_id)

    async def user_listings(self, owner_id: int) -> list[Listing]:
        return await self.store.get_user_listings(owner_id)

    # === Profiles ===

    async def register_profile(
        self,
        user_id: int,
        full_name: str,
        business_name: str,
        business_type: str,
        phone: str = "",
        city: str = "",
    ) -> Profile:
        if not full_name.strip() or not business_name.strip():
            raise InvalidInput("Full name and business name are required")
        canonical_type = match_choice(business_type, BUSINESS_TYPES)
        if not canonical_type:
            raise InvalidInput(f"Unknown business type: {business_type}")
        return await self.store.upsert_profile(
            user_id=user_id,
            full_name=full_name.strip(),
            business_name=business_name.strip(),
            business_type=canonical_type,
            phone=phone.strip(),
            city=city.strip(),
        )

    async def get_profile(self, user_id: int) -> Profile | None:
        return await self.store.get_profile(user_id)

    # === Messaging ===

    async def send_message(self, listing_id: str, sender_id: int, body: str) -> tuple[int, Listing]:
        body = body.strip()
        if not body:
            raise InvalidInput("Message cannot be empty")

        listing = await self.get_listing(listing_id)
        if listing.owner_id == sender_id:
            raise PermissionDenied("You cannot message your own listing")

        message_id = await self.store.add_message(
            listing_id=listing.id,
            sender_id=sender_id,
            receiver_id=listing.owner_id,
            body=body,
        )
        await self.store.create_notification(
            user_id=listing.owner_id,
            type=NotificationType.NEW_MESSAGE,
            title="New Message",
            message=f'You received a message about "{listing.material_name}"',
            related_id=listing.id,
        )
        log.info(f"Message #{message_id} from {sender_id} on listing {listing.id}")
        return message_id, listing

    async def inbox(self, user_id: int) -> list[Message]:
        return await self.store.get_received_messages(user_id)

    async def mark_message_read(self, message_id: int, user_id: int) -> bool:
        return await self.store.mark_message_read(message_id, user_id)

    async def notifications(self, user_id: int, unread_only: bool = False) -> list[Notification]:
        return await self.store.get_notifications(user_id, unread_only=unread_only)

    async def mark_notification_read(self, notification_id: int, user_id: int) -> bool:
        return await self.store.mark_notification_read(notification_id, user_id)

    # === Ratings ===

    async def rate_seller(
        self,
        listing_id: str,
        rater_id: int,
        score: int,
        comment: str | None = None,
    ) -> float:
        """Rate the owner of a listing and return their new reputation score."""
        if score < 1 or score > 5:
            raise InvalidInput("Rating must be between 1 and 5")

        listing = await self.get_listing(listing_id)
        if listing.owner_id == rater_id:
            raise PermissionDenied("You cannot rate your own listing")

        comment = comment.strip() if comment else None
        comment = comment or None

        await self.store.add_rating(listing.id, rater_id, listing.owner_id, score, comment)

        ratings = await self.store.get_seller_ratings(listing.owner_id)
        reputation = sum(r.score for r in ratings) / len(ratings)
        await self.store.set_reputation(listing.owner_id, reputation)

        await self.store.add_transaction(
            listing_id=listing.id,
            buyer_id=rater_id,
            seller_id=listing.owner_id,
            status=TransactionStatus.COMPLETED,
            notes=comment,
        )
        log.info(f"Seller {listing.owner_id} rated {score} by {rater_id}, reputation {reputation:.2f}")
        return reputation

    async def transactions(self, user_id: int) -> list[Transaction]:
        return await self.store.get_transactions(user_id)

    # === Stats ===

    async def category_counts(self) -> dict[str, int]:
        return await self.store.category_counts()

    async def marketplace_stats(self) -> MarketplaceStats:
        total_listings = await self.store.count_listings(active_listings())
        total_views = await self.store.total_views()
        active_users = await self.store.count_profiles()
        return MarketplaceStats(
            total_listings=total_listings,
            total_views=total_views,
            active_users=active_users,
        )

    # === Reminders ===

    async def remind_stale_listings(self, now: datetime | None = None) -> list[Listing]:
        now = now or datetime.utcnow()
        cutoff = now - timedelta(days=settings.stale_listing_days)
        reminded: list[Listing] = []

        for listing in await self.store.get_stale_listings(cutoff):
            already = await self.store.has_notification(
                listing.owner_id, NotificationType.LISTING_EXPIRY, listing.id
            )
            if already:
                continue

            age_days = (now - listing.created_at).days
            await self.store.create_notification(
                user_id=listing.owner_id,
                type=NotificationType.LISTING_EXPIRY,
                title=f"Listing is {age_days} days old",
                message=(
                    f'"{listing.material_name}" has been listed for {age_days} days. '
                    "Consider updating it to keep it visible to buyers."
                ),
                related_id=listing.id,
            )
            reminded.append(listing)

        if reminded:
            log.info(f"Sent {len(reminded)} stale listing reminders")
        return reminded
