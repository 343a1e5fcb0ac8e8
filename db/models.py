from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ListingStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ListingType(Enum):
    BUY = "Buy"
    SELL = "Sell"
    EXCHANGE = "Exchange"


class NotificationType(Enum):
    NEW_MESSAGE = "new_message"
    LISTING_EXPIRY = "listing_expiry"


class TransactionStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Listing:
    id: str
    owner_id: int
    material_name: str
    category: str
    condition: str
    listing_type: ListingType
    quantity: str
    price: float | None
    is_exchange_only: bool
    city: str
    location: str
    description: str
    status: ListingStatus
    views_count: int
    created_at: datetime
    updated_at: datetime
    contact_preferences: dict = field(default_factory=dict)


@dataclass
class Profile:
    user_id: int
    full_name: str
    business_name: str
    business_type: str
    phone: str
    city: str
    verified: bool
    reputation_score: float
    created_at: datetime
    updated_at: datetime


@dataclass
class Message:
    id: int | None
    listing_id: str
    sender_id: int
    receiver_id: int
    body: str
    contact_method: str
    read: bool
    created_at: datetime


@dataclass
class Notification:
    id: int | None
    user_id: int
    type: NotificationType
    title: str
    message: str
    read: bool
    related_id: str | None
    created_at: datetime


@dataclass
class Rating:
    id: int | None
    listing_id: str
    rater_id: int
    seller_id: int
    score: int
    comment: str | None
    created_at: datetime


@dataclass
class Transaction:
    id: int | None
    listing_id: str
    buyer_id: int
    seller_id: int
    status: TransactionStatus
    notes: str | None
    created_at: datetime


SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    user_id INTEGER PRIMARY KEY,
    full_name TEXT NOT NULL,
    business_name TEXT NOT NULL,
    business_type TEXT NOT NULL,
    phone TEXT DEFAULT '',
    city TEXT DEFAULT '',
    verified INTEGER DEFAULT 0,
    reputation_score REAL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS listings (
    id TEXT PRIMARY KEY,
    owner_id INTEGER NOT NULL,
    material_name TEXT NOT NULL,
    category TEXT NOT NULL,
    condition TEXT NOT NULL,
    listing_type TEXT NOT NULL,
    quantity TEXT DEFAULT '',
    price REAL,
    is_exchange_only INTEGER DEFAULT 0,
    city TEXT DEFAULT '',
    location TEXT DEFAULT '',
    description TEXT DEFAULT '',
    contact_preferences TEXT DEFAULT '{}',
    status TEXT DEFAULT 'active',
    views_count INTEGER DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    listing_id TEXT NOT NULL,
    sender_id INTEGER NOT NULL,
    receiver_id INTEGER NOT NULL,
    body TEXT NOT NULL,
    contact_method TEXT DEFAULT 'message',
    read INTEGER DEFAULT 0,
    created_at TEXT NOT NULL,
    FOREIGN KEY (listing_id) REFERENCES listings(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS notifications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    message TEXT NOT NULL,
    read INTEGER DEFAULT 0,
    related_id TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS ratings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    listing_id TEXT NOT NULL,
    rater_id INTEGER NOT NULL,
    seller_id INTEGER NOT NULL,
    score INTEGER NOT NULL CHECK (score BETWEEN 1 AND 5),
    comment TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (listing_id) REFERENCES listings(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    listing_id TEXT NOT NULL,
    buyer_id INTEGER NOT NULL,
    seller_id INTEGER NOT NULL,
    status TEXT DEFAULT 'pending',
    notes TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (listing_id) REFERENCES listings(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_listings_status_created ON listings(status, created_at);
CREATE INDEX IF NOT EXISTS idx_listings_owner ON listings(owner_id);
CREATE INDEX IF NOT EXISTS idx_messages_receiver ON messages(receiver_id);
CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id);
CREATE INDEX IF NOT EXISTS idx_ratings_seller ON ratings(seller_id);
"""
