"""
SQLite database layer using aiosqlite.

Stores fields, reservations, subscriptions, global settings and the
blacklist.  Tables are created automatically on first connect.

Every write goes through ``_write_transaction()`` which serializes
writers and wraps them in ``BEGIN IMMEDIATE`` … ``COMMIT``/``ROLLBACK``.
Reservation inserts re-run the availability check inside that same
transaction, so two concurrent requests for one slot cannot both win.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
from collections.abc import AsyncIterator, Callable, Iterable
from datetime import date, datetime
from pathlib import Path

import aiosqlite

from fieldbook.config import DB_PATH
from fieldbook.core.conflicts import Availability, BlockKind
from fieldbook.core.subscriptions import materialize
from fieldbook.errors import SlotConflict
from fieldbook.models import (
    BlacklistEntry,
    FootballFormat,
    Reservation,
    ReservationStatus,
    Subscription,
    SubscriptionBase,
    SubscriptionStatus,
    Terrain,
    TerrainCreate,
)

logger = logging.getLogger(__name__)

# ── Module-level connection ───────────────────────────────────────────────

_db: aiosqlite.Connection | None = None
_write_lock: asyncio.Lock | None = None


async def init_db() -> None:
    """Open the database and create tables if they don't exist."""
    global _db, _write_lock
    db_path = Path(DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    # autocommit mode: transactions are opened explicitly below
    _db = await aiosqlite.connect(str(db_path), isolation_level=None)
    _db.row_factory = aiosqlite.Row  # dict-like rows
    await _db.execute("PRAGMA journal_mode=WAL")
    await _db.execute("PRAGMA foreign_keys=ON")

    await _db.executescript(_SCHEMA)
    _write_lock = asyncio.Lock()
    logger.info("Database initialized at %s", db_path)


async def close_db() -> None:
    """Close the database connection."""
    global _db, _write_lock
    if _db is not None:
        await _db.close()
        _db = None
        _write_lock = None
        logger.info("Database connection closed")


def get_db() -> aiosqlite.Connection:
    """Return the active database connection (must call init_db first)."""
    assert _db is not None, "Database not initialized, call init_db() first"
    return _db


@contextlib.asynccontextmanager
async def _write_transaction() -> AsyncIterator[aiosqlite.Connection]:
    db = get_db()
    assert _write_lock is not None
    async with _write_lock:
        await db.execute("BEGIN IMMEDIATE")
        try:
            yield db
        except BaseException:
            await db.execute("ROLLBACK")
            raise
        else:
            await db.execute("COMMIT")


# ── Schema ────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS fields (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT NOT NULL,
    sport           TEXT NOT NULL,
    football_format TEXT,
    capacity        INTEGER NOT NULL,
    day_price       REAL NOT NULL,
    night_price     REAL,
    image_url       TEXT,
    active          INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS subscriptions (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    field_id        INTEGER NOT NULL,
    weekday         INTEGER NOT NULL,   -- 0 = Monday
    start_time      TEXT NOT NULL,
    duration        REAL NOT NULL,
    date_start      TEXT,
    date_end        TEXT,
    month           INTEGER,
    year            INTEGER,
    customer_name   TEXT NOT NULL,
    phone           TEXT NOT NULL,
    email           TEXT NOT NULL,
    amount          REAL,
    status          TEXT NOT NULL DEFAULT 'active',
    created_at      TEXT NOT NULL,
    updated_at      TEXT,
    FOREIGN KEY (field_id) REFERENCES fields(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_subs_field ON subscriptions(field_id, status);

CREATE TABLE IF NOT EXISTS reservations (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_name       TEXT NOT NULL,
    phone               TEXT NOT NULL,
    email               TEXT NOT NULL,
    field_id            INTEGER NOT NULL,
    date                TEXT NOT NULL,      -- ISO date
    start_time          TEXT NOT NULL,      -- HH:MM
    duration            REAL NOT NULL CHECK (duration > 0),
    status              TEXT NOT NULL DEFAULT 'pending',
    subscription_id     INTEGER,            -- no FK: rows outlive a deleted subscription
    confirmation_token  TEXT UNIQUE,
    price               REAL,
    note                TEXT,
    created_at          TEXT NOT NULL,
    updated_at          TEXT,
    FOREIGN KEY (field_id) REFERENCES fields(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_res_field_date ON reservations(field_id, date);
CREATE INDEX IF NOT EXISTS idx_res_status ON reservations(status);

-- backstop for the one-slot-one-booking rule on one-off bookings
CREATE UNIQUE INDEX IF NOT EXISTS uq_res_live_slot
    ON reservations(field_id, date, start_time)
    WHERE status IN ('pending', 'confirmed') AND subscription_id IS NULL;

CREATE TABLE IF NOT EXISTS app_settings (
    name        TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS blacklist (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    kind        TEXT NOT NULL CHECK (kind IN ('phone', 'email')),
    value       TEXT NOT NULL,
    reason      TEXT,
    created_at  TEXT NOT NULL,
    UNIQUE (kind, value)
);
"""


# ── Helpers ───────────────────────────────────────────────────────────────


def _iso(value: datetime | date | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def _row_to_field(row: aiosqlite.Row) -> Terrain:
    return Terrain(
        id=row["id"],
        name=row["name"],
        sport=row["sport"],
        football_format=row["football_format"],
        capacity=row["capacity"],
        day_price=row["day_price"],
        night_price=row["night_price"],
        image_url=row["image_url"],
        active=bool(row["active"]),
        created_at=row["created_at"],
    )


def _row_to_reservation(row: aiosqlite.Row) -> Reservation:
    return Reservation(
        id=row["id"],
        customer_name=row["customer_name"],
        phone=row["phone"],
        email=row["email"],
        field_id=row["field_id"],
        date=row["date"],
        start_time=row["start_time"],
        duration=row["duration"],
        status=row["status"],
        subscription_id=row["subscription_id"],
        confirmation_token=row["confirmation_token"],
        price=row["price"],
        note=row["note"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_subscription(row: aiosqlite.Row) -> Subscription:
    return Subscription(
        id=row["id"],
        field_id=row["field_id"],
        weekday=row["weekday"],
        start_time=row["start_time"],
        duration=row["duration"],
        date_start=row["date_start"],
        date_end=row["date_end"],
        month=row["month"],
        year=row["year"],
        customer_name=row["customer_name"],
        phone=row["phone"],
        email=row["email"],
        amount=row["amount"],
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_blacklist(row: aiosqlite.Row) -> BlacklistEntry:
    return BlacklistEntry(
        id=row["id"],
        kind=row["kind"],
        value=row["value"],
        reason=row["reason"],
        created_at=row["created_at"],
    )


# ══════════════════════════════════════════════════════════════════════════
#                    FIELD REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def create_field(
    body: TerrainCreate,
    football_format: FootballFormat | None,
    now: datetime,
) -> Terrain:
    """Insert a new field and return it."""
    async with _write_transaction() as db:
        cur = await db.execute(
            """
            INSERT INTO fields (
                name, sport, football_format, capacity,
                day_price, night_price, image_url, active, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                body.name, body.sport.value,
                football_format.value if football_format else None,
                body.capacity, body.day_price, body.night_price,
                body.image_url, int(body.active), _iso(now),
            ),
        )
        field_id = cur.lastrowid
    return await get_field(field_id)  # type: ignore[return-value]


async def get_field(field_id: int) -> Terrain | None:
    db = get_db()
    async with db.execute("SELECT * FROM fields WHERE id = ?", (field_id,)) as cur:
        row = await cur.fetchone()
    return _row_to_field(row) if row else None


async def list_fields(*, active_only: bool = False, sport: str | None = None) -> list[Terrain]:
    db = get_db()
    sql = "SELECT * FROM fields WHERE 1 = 1"
    params: list = []
    if active_only:
        sql += " AND active = 1"
    if sport is not None:
        sql += " AND sport = ?"
        params.append(sport)
    sql += " ORDER BY sport, name"

    async with db.execute(sql, params) as cur:
        rows = await cur.fetchall()
    return [_row_to_field(r) for r in rows]


async def update_field(
    field_id: int,
    body: TerrainCreate,
    football_format: FootballFormat | None,
) -> Terrain | None:
    async with _write_transaction() as db:
        await db.execute(
            """
            UPDATE fields SET
                name = ?, sport = ?, football_format = ?, capacity = ?,
                day_price = ?, night_price = ?, image_url = ?, active = ?
            WHERE id = ?
            """,
            (
                body.name, body.sport.value,
                football_format.value if football_format else None,
                body.capacity, body.day_price, body.night_price,
                body.image_url, int(body.active), field_id,
            ),
        )
    return await get_field(field_id)


# ══════════════════════════════════════════════════════════════════════════
#                    RESERVATION REPOSITORY
# ══════════════════════════════════════════════════════════════════════════

Resolver = Callable[[list[Reservation], list[Subscription]], Availability]


async def _load_slot_context(
    db: aiosqlite.Connection, field_id: int, on: date
) -> tuple[list[Reservation], list[Subscription]]:
    async with db.execute(
        "SELECT * FROM reservations WHERE field_id = ? AND date = ?",
        (field_id, _iso(on)),
    ) as cur:
        reservations = [_row_to_reservation(r) for r in await cur.fetchall()]
    async with db.execute(
        "SELECT * FROM subscriptions WHERE field_id = ?", (field_id,)
    ) as cur:
        subscriptions = [_row_to_subscription(r) for r in await cur.fetchall()]
    return reservations, subscriptions


async def load_slot_context(
    field_id: int, on: date
) -> tuple[list[Reservation], list[Subscription]]:
    """Reservations of *field_id* on *on* plus every subscription of the field."""
    return await _load_slot_context(get_db(), field_id, on)


async def _insert_reservation(db: aiosqlite.Connection, draft: Reservation) -> int:
    cur = await db.execute(
        """
        INSERT INTO reservations (
            customer_name, phone, email, field_id, date, start_time,
            duration, status, subscription_id, confirmation_token,
            price, note, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            draft.customer_name, draft.phone, draft.email,
            draft.field_id, _iso(draft.date), draft.start_time,
            draft.duration, draft.status.value, draft.subscription_id,
            draft.confirmation_token, draft.price, draft.note,
            _iso(draft.created_at), _iso(draft.created_at),
        ),
    )
    return cur.lastrowid


async def insert_reservation_if_free(
    draft: Reservation, resolve: Resolver
) -> Reservation | Availability:
    """
    Insert *draft* only if *resolve* still finds the slot free.

    The reservations and subscriptions handed to *resolve* are read
    inside the same ``BEGIN IMMEDIATE`` transaction as the insert.
    Returns the stored reservation, or the blocking Availability when
    the slot is taken (nothing is written in that case).
    """
    async with _write_transaction() as db:
        reservations, subscriptions = await _load_slot_context(db, draft.field_id, draft.date)
        verdict = resolve(reservations, subscriptions)
        if not verdict.available:
            return verdict

        try:
            reservation_id = await _insert_reservation(db, draft)
        except sqlite3.IntegrityError as exc:
            logger.info("Unique slot index rejected %s %s %s", draft.field_id, draft.date, draft.start_time)
            raise SlotConflict(
                f"Slot {draft.start_time} on {draft.date} is already booked",
                details={"blocked_by": BlockKind.RESERVATION.value},
            ) from exc

    return draft.model_copy(update={"id": reservation_id})


async def get_reservation(reservation_id: int) -> Reservation | None:
    db = get_db()
    async with db.execute(
        "SELECT * FROM reservations WHERE id = ?", (reservation_id,)
    ) as cur:
        row = await cur.fetchone()
    return _row_to_reservation(row) if row else None


async def get_reservation_by_token(token: str) -> Reservation | None:
    db = get_db()
    async with db.execute(
        "SELECT * FROM reservations WHERE confirmation_token = ?", (token,)
    ) as cur:
        row = await cur.fetchone()
    return _row_to_reservation(row) if row else None


async def list_reservations(
    *,
    field_id: int | None = None,
    on: date | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    status: ReservationStatus | None = None,
) -> list[Reservation]:
    """List reservations ordered by date and start time, with optional filters."""
    db = get_db()
    sql = "SELECT * FROM reservations WHERE 1 = 1"
    params: list = []

    if field_id is not None:
        sql += " AND field_id = ?"
        params.append(field_id)
    if on is not None:
        sql += " AND date = ?"
        params.append(_iso(on))
    if date_from is not None:
        sql += " AND date >= ?"
        params.append(_iso(date_from))
    if date_to is not None:
        sql += " AND date <= ?"
        params.append(_iso(date_to))
    if status is not None:
        sql += " AND status = ?"
        params.append(status.value)

    sql += " ORDER BY date, start_time, id"

    async with db.execute(sql, params) as cur:
        rows = await cur.fetchall()
    return [_row_to_reservation(r) for r in rows]


async def update_reservation_status(
    reservation_id: int,
    expected: ReservationStatus,
    target: ReservationStatus,
    now: datetime,
) -> bool:
    """
    Move a reservation from *expected* to *target*.

    Returns False (and changes nothing) when the row is no longer in
    *expected*, e.g. because a concurrent request got there first.
    """
    async with _write_transaction() as db:
        cur = await db.execute(
            "UPDATE reservations SET status = ?, updated_at = ? WHERE id = ? AND status = ?",
            (target.value, _iso(now), reservation_id, expected.value),
        )
        return cur.rowcount > 0


# ══════════════════════════════════════════════════════════════════════════
#                    SUBSCRIPTION REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


DayResolver = Callable[[date, list[Reservation], list[Subscription]], Availability]
Planner = Callable[[dict[date, Availability]], Iterable[date]]


async def insert_subscription_if_free(
    body: SubscriptionBase,
    now: datetime,
    dates: Iterable[date],
    resolve: DayResolver,
    plan: Planner,
    *,
    price: float | None = None,
) -> tuple[Subscription, list[Reservation]]:
    """
    Insert an active subscription and its generated reservations at once.

    *resolve* judges each of *dates* against the reservations and
    subscriptions read inside the transaction.  *plan* gets those
    verdicts and returns the dates to book, or raises to refuse the
    subscription, in which case nothing is written.
    """
    async with _write_transaction() as db:
        verdicts: dict[date, Availability] = {}
        for on in dates:
            reservations, subscriptions = await _load_slot_context(db, body.field_id, on)
            verdicts[on] = resolve(on, reservations, subscriptions)
        to_book = set(plan(verdicts))

        cur = await db.execute(
            """
            INSERT INTO subscriptions (
                field_id, weekday, start_time, duration,
                date_start, date_end, month, year,
                customer_name, phone, email, amount,
                status, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 'active', ?, ?)
            """,
            (
                body.field_id, body.weekday, body.start_time, body.duration,
                _iso(body.date_start), _iso(body.date_end), body.month, body.year,
                body.customer_name, body.phone, str(body.email), body.amount,
                _iso(now), _iso(now),
            ),
        )
        async with db.execute(
            "SELECT * FROM subscriptions WHERE id = ?", (cur.lastrowid,)
        ) as sel:
            sub = _row_to_subscription(await sel.fetchone())

        stored: list[Reservation] = []
        for draft in materialize(sub, now, price=price):
            if draft.date in to_book:
                reservation_id = await _insert_reservation(db, draft)
                stored.append(draft.model_copy(update={"id": reservation_id}))

    return sub, stored


async def get_subscription(sub_id: int) -> Subscription | None:
    db = get_db()
    async with db.execute(
        "SELECT * FROM subscriptions WHERE id = ?", (sub_id,)
    ) as cur:
        row = await cur.fetchone()
    return _row_to_subscription(row) if row else None


async def list_subscriptions(
    *,
    field_id: int | None = None,
    status: SubscriptionStatus | None = None,
) -> list[Subscription]:
    db = get_db()
    sql = "SELECT * FROM subscriptions WHERE 1 = 1"
    params: list = []
    if field_id is not None:
        sql += " AND field_id = ?"
        params.append(field_id)
    if status is not None:
        sql += " AND status = ?"
        params.append(status.value)
    sql += " ORDER BY created_at DESC, id DESC"

    async with db.execute(sql, params) as cur:
        rows = await cur.fetchall()
    return [_row_to_subscription(r) for r in rows]


async def update_subscription_status(
    sub_id: int,
    target: SubscriptionStatus,
    now: datetime,
    *,
    expected: SubscriptionStatus | None = None,
) -> bool:
    sql = "UPDATE subscriptions SET status = ?, updated_at = ? WHERE id = ?"
    params: list = [target.value, _iso(now), sub_id]
    if expected is not None:
        sql += " AND status = ?"
        params.append(expected.value)

    async with _write_transaction() as db:
        cur = await db.execute(sql, params)
        return cur.rowcount > 0


async def delete_subscription(sub_id: int) -> bool:
    """Delete a subscription. Returns True if a row was actually deleted."""
    async with _write_transaction() as db:
        cur = await db.execute("DELETE FROM subscriptions WHERE id = ?", (sub_id,))
        return cur.rowcount > 0


# ══════════════════════════════════════════════════════════════════════════
#                    SETTINGS
# ══════════════════════════════════════════════════════════════════════════


async def get_setting(name: str) -> str | None:
    db = get_db()
    async with db.execute(
        "SELECT value FROM app_settings WHERE name = ?", (name,)
    ) as cur:
        row = await cur.fetchone()
    return row["value"] if row else None


async def set_setting(name: str, value: str, now: datetime) -> None:
    async with _write_transaction() as db:
        await db.execute(
            """
            INSERT INTO app_settings (name, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(name) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (name, value, _iso(now)),
        )


# ══════════════════════════════════════════════════════════════════════════
#                    BLACKLIST
# ══════════════════════════════════════════════════════════════════════════


async def add_blacklist_entry(
    kind: str, value: str, reason: str | None, now: datetime
) -> BlacklistEntry:
    """Insert an entry; an existing (kind, value) pair is returned unchanged."""
    async with _write_transaction() as db:
        await db.execute(
            """
            INSERT INTO blacklist (kind, value, reason, created_at) VALUES (?, ?, ?, ?)
            ON CONFLICT(kind, value) DO NOTHING
            """,
            (kind, value, reason, _iso(now)),
        )
    db = get_db()
    async with db.execute(
        "SELECT * FROM blacklist WHERE kind = ? AND value = ?", (kind, value)
    ) as cur:
        row = await cur.fetchone()
    return _row_to_blacklist(row)


async def list_blacklist() -> list[BlacklistEntry]:
    db = get_db()
    async with db.execute("SELECT * FROM blacklist ORDER BY created_at DESC, id DESC") as cur:
        rows = await cur.fetchall()
    return [_row_to_blacklist(r) for r in rows]


async def delete_blacklist_entry(entry_id: int) -> bool:
    async with _write_transaction() as db:
        cur = await db.execute("DELETE FROM blacklist WHERE id = ?", (entry_id,))
        return cur.rowcount > 0


async def is_blacklisted(kind: str, value: str) -> bool:
    db = get_db()
    async with db.execute(
        "SELECT 1 FROM blacklist WHERE kind = ? AND value = ?", (kind, value)
    ) as cur:
        return await cur.fetchone() is not None
