import json
import uuid
from datetime import datetime
from pathlib import Path

import aiosqlite

from config import settings
from db.models import (
    SCHEMA,
    Listing,
    ListingStatus,
    ListingType,
    Message,
    Notification,
    NotificationType,
    Profile,
    Rating,
    Transaction,
    TransactionStatus,
)
from db.query import FOLD_FUNCTION, ListingQuery, eq, fold_text


class StoreError(Exception):
    """A read or write against the listings database failed."""


def _timestamp(value: datetime | None = None) -> str:
    return (value or datetime.utcnow()).isoformat(timespec="microseconds")


class Store:
    def __init__(self, db_path: Path | str | None = None):
        path = db_path or settings.database_path
        self.db_path = Path(path) if isinstance(path, str) else path
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row
        await self._connection.create_function(FOLD_FUNCTION, 1, fold_text, deterministic=True)
        await self._connection.execute("PRAGMA foreign_keys = ON")
        await self._connection.executescript(SCHEMA)
        await self._connection.commit()

    async def close(self) -> None:
        if self._connection:
            await self._connection.close()
            self._connection = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if not self._connection:
            raise StoreError("Database not connected")
        return self._connection

    # === Profiles ===

    async def upsert_profile(
        self,
        user_id: int,
        full_name: str,
        business_name: str,
        business_type: str,
        phone: str = "",
        city: str = "",
    ) -> Profile:
        now = _timestamp()
        await self.conn.execute(
            """
            INSERT INTO profiles
                (user_id, full_name, business_name, business_type, phone, city,
                 created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                full_name = excluded.full_name,
                business_name = excluded.business_name,
                business_type = excluded.business_type,
                phone = excluded.phone,
                city = excluded.city,
                updated_at = excluded.updated_at
            """,
            (user_id, full_name, business_name, business_type, phone, city, now, now),
        )
        await self.conn.commit()
        return await self.get_profile(user_id)  # type: ignore[return-value]

    async def get_profile(self, user_id: int) -> Profile | None:
        cursor = await self.conn.execute("SELECT * FROM profiles WHERE user_id = ?", (user_id,))
        row = await cursor.fetchone()
        return self._row_to_profile(row) if row else None

    async def set_reputation(self, user_id: int, score: float) -> bool:
        cursor = await self.conn.execute(
            "UPDATE profiles SET reputation_score = ?, updated_at = ? WHERE user_id = ?",
            (score, _timestamp(), user_id),
        )
        await self.conn.commit()
        return cursor.rowcount > 0

    async def count_profiles(self) -> int:
        try:
            cursor = await self.conn.execute("SELECT COUNT(*) FROM profiles")
            return (await cursor.fetchone())[0]
        except aiosqlite.Error as e:
            raise StoreError(f"Profile count failed: {e}") from e

    def _row_to_profile(self, row: aiosqlite.Row) -> Profile:
        return Profile(
            user_id=row["user_id"],
            full_name=row["full_name"],
            business_name=row["business_name"],
            business_type=row["business_type"],
            phone=row["phone"],
            city=row["city"],
            verified=bool(row["verified"]),
            reputation_score=row["reputation_score"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # === Listings ===

    async def add_listing(
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
        status: ListingStatus = ListingStatus.ACTIVE,
        created_at: datetime | None = None,
    ) -> Listing:
        listing_id = uuid.uuid4().hex
        created = _timestamp(created_at)
        await self.conn.execute(
            """
            INSERT INTO listings
                (id, owner_id, material_name, category, condition, listing_type,
                 quantity, price, is_exchange_only, city, location, description,
                 contact_preferences, status, views_count, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
            """,
            (
                listing_id,
                owner_id,
                material_name,
                category,
                condition,
                listing_type.value,
                quantity,
                price,
                int(is_exchange_only),
                city,
                location,
                description,
                json.dumps(contact_preferences or {}),
                status.value,
                created,
                created,
            ),
        )
        await self.conn.commit()
        return await self.get_listing(listing_id)  # type: ignore[return-value]

    async def get_listing(self, listing_id: str) -> Listing | None:
        cursor = await self.conn.execute("SELECT * FROM listings WHERE id = ?", (listing_id,))
        row = await cursor.fetchone()
        return self._row_to_listing(row) if row else None

    async def update_listing(self, listing_id: str, **kwargs) -> bool:
        allowed = {
            "material_name", "category", "condition", "listing_type", "quantity", "price",
            "is_exchange_only", "city", "location", "description", "contact_preferences",
            "status",
        }
        updates = {k: v for k, v in kwargs.items() if k in allowed}
        if not updates:
            return False

        if "listing_type" in updates:
            updates["listing_type"] = updates["listing_type"].value
        if "status" in updates:
            updates["status"] = updates["status"].value
        if "is_exchange_only" in updates:
            updates["is_exchange_only"] = int(updates["is_exchange_only"])
        if "contact_preferences" in updates:
            updates["contact_preferences"] = json.dumps(updates["contact_preferences"])

        updates["updated_at"] = _timestamp()

        set_clause = ", ".join(f"{k} = ?" for k in updates)
        values = list(updates.values()) + [listing_id]

        cursor = await self.conn.execute(
            f"UPDATE listings SET {set_clause} WHERE id = ?", values
        )
        await self.conn.commit()
        return cursor.rowcount > 0

    async def increment_views(self, listing_id: str) -> bool:
        cursor = await self.conn.execute(
            "UPDATE listings SET views_count = views_count + 1 WHERE id = ?",
            (listing_id,),
        )
        await self.conn.commit()
        return cursor.rowcount > 0

    async def fetch_listings(self, query: ListingQuery) -> list[Listing]:
        sql, params = query.to_sql()
        try:
            cursor = await self.conn.execute(sql, params)
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreError(f"Listing query failed: {e}") from e
        return [self._row_to_listing(row) for row in rows]

    async def count_listings(self, query: ListingQuery) -> int:
        sql, params = query.to_count_sql()
        try:
            cursor = await self.conn.execute(sql, params)
            return (await cursor.fetchone())[0]
        except aiosqlite.Error as e:
            raise StoreError(f"Listing count failed: {e}") from e

    async def get_user_listings(self, owner_id: int) -> list[Listing]:
        query = ListingQuery().where(
            eq("owner_id", owner_id), eq("status", ListingStatus.ACTIVE)
        )
        return await self.fetch_listings(query)

    async def get_stale_listings(self, older_than: datetime) -> list[Listing]:
        cursor = await self.conn.execute(
            "SELECT * FROM listings WHERE status = ? AND created_at < ? ORDER BY created_at",
            (ListingStatus.ACTIVE.value, _timestamp(older_than)),
        )
        rows = await cursor.fetchall()
        return [self._row_to_listing(row) for row in rows]

    async def total_views(self) -> int:
        try:
            cursor = await self.conn.execute(
                "SELECT COALESCE(SUM(views_count), 0) FROM listings WHERE status = ?",
                (ListingStatus.ACTIVE.value,),
            )
            return (await cursor.fetchone())[0]
        except aiosqlite.Error as e:
            raise StoreError(f"View total failed: {e}") from e

    async def category_counts(self) -> dict[str, int]:
        try:
            cursor = await self.conn.execute(
                "SELECT category, COUNT(*) FROM listings WHERE status = ? GROUP BY category",
                (ListingStatus.ACTIVE.value,),
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreError(f"Category count failed: {e}") from e
        return {row[0]: row[1] for row in rows}

    def _row_to_listing(self, row: aiosqlite.Row) -> Listing:
        return Listing(
            id=row["id"],
            owner_id=row["owner_id"],
            material_name=row["material_name"],
            category=row["category"],
            condition=row["condition"],
            listing_type=ListingType(row["listing_type"]),
            quantity=row["quantity"] or "",
            price=row["price"],
            is_exchange_only=bool(row["is_exchange_only"]),
            city=row["city"] or "",
            location=row["location"] or "",
            description=row["description"] or "",
            status=ListingStatus(row["status"]),
            views_count=row["views_count"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            contact_preferences=json.loads(row["contact_preferences"] or "{}"),
        )

    # === Messages ===

    async def add_message(
        self,
        listing_id: str,
        sender_id: int,
        receiver_id: int,
        body: str,
        contact_method: str = "message",
    ) -> int:
        cursor = await self.conn.execute(
            """
            INSERT INTO messages
                (listing_id, sender_id, receiver_id, body, contact_method, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (listing_id, sender_id, receiver_id, body, contact_method, _timestamp()),
        )
        await self.conn.commit()
        return cursor.lastrowid  # type: ignore

    async def get_received_messages(self, receiver_id: int, limit: int = 25) -> list[Message]:
        cursor = await self.conn.execute(
            "SELECT * FROM messages WHERE receiver_id = ? ORDER BY created_at DESC, id DESC LIMIT ?",
            (receiver_id, limit),
        )
        rows = await cursor.fetchall()
        return [self._row_to_message(row) for row in rows]

    async def mark_message_read(self, message_id: int, receiver_id: int) -> bool:
        cursor = await self.conn.execute(
            "UPDATE messages SET read = 1 WHERE id = ? AND receiver_id = ?",
            (message_id, receiver_id),
        )
        await self.conn.commit()
        return cursor.rowcount > 0

    def _row_to_message(self, row: aiosqlite.Row) -> Message:
        return Message(
            id=row["id"],
            listing_id=row["listing_id"],
            sender_id=row["sender_id"],
            receiver_id=row["receiver_id"],
            body=row["body"],
            contact_method=row["contact_method"],
            read=bool(row["read"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # === Notifications ===

    async def create_notification(
        self,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        related_id: str | None = None,
    ) -> int:
        cursor = await self.conn.execute(
            """
            INSERT INTO notifications (user_id, type, title, message, related_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (user_id, type.value, title, message, related_id, _timestamp()),
        )
        await self.conn.commit()
        return cursor.lastrowid  # type: ignore

    async def get_notifications(
        self, user_id: int, unread_only: bool = False, limit: int = 25
    ) -> list[Notification]:
        sql = "SELECT * FROM notifications WHERE user_id = ?"
        params: list = [user_id]
        if unread_only:
            sql += " AND read = 0"
        sql += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(limit)
        cursor = await self.conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [self._row_to_notification(row) for row in rows]

    async def has_notification(
        self, user_id: int, type: NotificationType, related_id: str
    ) -> bool:
        cursor = await self.conn.execute(
            "SELECT 1 FROM notifications WHERE user_id = ? AND type = ? AND related_id = ?",
            (user_id, type.value, related_id),
        )
        return await cursor.fetchone() is not None

    async def mark_notification_read(self, notification_id: int, user_id: int) -> bool:
        cursor = await self.conn.execute(
            "UPDATE notifications SET read = 1 WHERE id = ? AND user_id = ?",
            (notification_id, user_id),
        )
        await self.conn.commit()
        return cursor.rowcount > 0

    def _row_to_notification(self, row: aiosqlite.Row) -> Notification:
        return Notification(
            id=row["id"],
            user_id=row["user_id"],
            type=NotificationType(row["type"]),
            title=row["title"],
            message=row["message"],
            read=bool(row["read"]),
            related_id=row["related_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # === Ratings ===

    async def add_rating(
        self,
        listing_id: str,
        rater_id: int,
        seller_id: int,
        score: int,
        comment: str | None = None,
    ) -> int:
        cursor = await self.conn.execute(
            """
            INSERT INTO ratings (listing_id, rater_id, seller_id, score, comment, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (listing_id, rater_id, seller_id, score, comment, _timestamp()),
        )
        await self.conn.commit()
        return cursor.lastrowid  # type: ignore

    async def get_seller_ratings(self, seller_id: int) -> list[Rating]:
        cursor = await self.conn.execute(
            "SELECT * FROM ratings WHERE seller_id = ? ORDER BY created_at DESC, id DESC",
            (seller_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_rating(row) for row in rows]

    def _row_to_rating(self, row: aiosqlite.Row) -> Rating:
        return Rating(
            id=row["id"],
            listing_id=row["listing_id"],
            rater_id=row["rater_id"],
            seller_id=row["seller_id"],
            score=row["score"],
            comment=row["comment"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # === Transactions ===

    async def add_transaction(
        self,
        listing_id: str,
        buyer_id: int,
        seller_id: int,
        status: TransactionStatus,
        notes: str | None = None,
    ) -> int:
        cursor = await self.conn.execute(
            """
            INSERT INTO transactions (listing_id, buyer_id, seller_id, status, notes, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (listing_id, buyer_id, seller_id, status.value, notes, _timestamp()),
        )
        await self.conn.commit()
        return cursor.lastrowid  # type: ignore

    async def get_transactions(self, user_id: int, limit: int = 25) -> list[Transaction]:
        cursor = await self.conn.execute(
            """
            SELECT * FROM transactions WHERE buyer_id = ? OR seller_id = ?
            ORDER BY created_at DESC, id DESC LIMIT ?
            """,
            (user_id, user_id, limit),
        )
        rows = await cursor.fetchall()
        return [self._row_to_transaction(row) for row in rows]

    def _row_to_transaction(self, row: aiosqlite.Row) -> Transaction:
        return Transaction(
            id=row["id"],
            listing_id=row["listing_id"],
            buyer_id=row["buyer_id"],
            seller_id=row["seller_id"],
            status=TransactionStatus(row["status"]),
            notes=row["notes"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
