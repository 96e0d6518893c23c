"""Key-value style repositories over the users and properties tables.

Each repository behaves like a durable map: ``get`` by key, ``insert`` which
replaces the whole stored record, ``remove`` and ``values``. Rows are
converted to and from the domain dataclasses so nothing outside this module
touches ORM objects.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estate_shares.db.models import AuditLog
from estate_shares.db.models import RealEstateProperty as PropertyRow
from estate_shares.db.models import User as UserRow
from estate_shares.domain.property import Property
from estate_shares.domain.user import UserAccount


def _to_user(row: UserRow) -> UserAccount:
    return UserAccount(
        username=row.username,
        email=row.email,
        password=row.password,
        wallet_tokens=Decimal(row.wallet_tokens or 0),
    )


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands timestamps back without tzinfo; they are stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_property(row: PropertyRow) -> Property:
    return Property(
        id=row.id,
        address=row.address,
        owner=row.owner,
        deed_url=row.deed_url,
        tokenized_shares={holder: int(count) for holder, count in row.tokenized_shares},
        transaction_history=list(row.transaction_history),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, username: str, for_update: bool = False) -> Optional[UserAccount]:
        stmt = select(UserRow).where(UserRow.username == username)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self.db.execute(stmt)).scalar_one_or_none()
        return _to_user(row) if row else None

    async def exists(self, username: str) -> bool:
        stmt = select(UserRow.username).where(UserRow.username == username)
        return (await self.db.execute(stmt)).scalar_one_or_none() is not None

    async def email_in_use(self, email: str) -> bool:
        stmt = select(UserRow.username).where(UserRow.email == email)
        return (await self.db.execute(stmt)).first() is not None

    async def insert(self, user: UserAccount) -> None:
        row = await self.db.get(UserRow, user.username)
        if row is None:
            row = UserRow(username=user.username)
            self.db.add(row)
        row.email = user.email
        row.password = user.password
        row.wallet_tokens = user.wallet_tokens
        await self.db.flush()

    async def values(self) -> List[UserAccount]:
        rows = (await self.db.execute(select(UserRow).order_by(UserRow.created_at))).scalars().all()
        return [_to_user(row) for row in rows]


class PropertyRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, property_id: str, for_update: bool = False) -> Optional[Property]:
        stmt = select(PropertyRow).where(PropertyRow.id == property_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self.db.execute(stmt)).scalar_one_or_none()
        return _to_property(row) if row else None

    async def insert(self, prop: Property) -> None:
        row = await self.db.get(PropertyRow, prop.id)
        if row is None:
            row = PropertyRow(id=prop.id)
            self.db.add(row)
        row.address = prop.address
        row.owner = prop.owner
        row.deed_url = prop.deed_url
        row.tokenized_shares = [[holder, count] for holder, count in prop.tokenized_shares.items()]
        row.transaction_history = list(prop.transaction_history)
        row.created_at = prop.created_at
        row.updated_at = prop.updated_at
        await self.db.flush()

    async def remove(self, property_id: str) -> Optional[Property]:
        row = await self.db.get(PropertyRow, property_id)
        if row is None:
            return None
        prop = _to_property(row)
        await self.db.delete(row)
        await self.db.flush()
        return prop

    async def values(self) -> List[Property]:
        rows = (await self.db.execute(select(PropertyRow).order_by(PropertyRow.created_at))).scalars().all()
        return [_to_property(row) for row in rows]


class AuditLogRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        table_name: str,
        record_id: str,
        action: str,
        old_values: Optional[Dict[str, Any]],
        new_values: Optional[Dict[str, Any]],
        changed_by: Optional[str],
        change_reason: str,
    ) -> None:
        self.db.add(AuditLog(
            table_name=table_name,
            record_id=record_id,
            action=action,
            old_values=old_values,
            new_values=new_values,
            changed_by=changed_by,
            change_reason=change_reason,
        ))
        await self.db.flush()

    async def for_record(self, record_id: str) -> List[AuditLog]:
        stmt = select(AuditLog).where(AuditLog.record_id == record_id).order_by(AuditLog.log_id)
        return list((await self.db.execute(stmt)).scalars().all())
