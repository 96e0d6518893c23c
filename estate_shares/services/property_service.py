import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from estate_shares.core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from estate_shares.core.locks import KeyedLocks
from estate_shares.db.repositories import (
    AuditLogRepository,
    PropertyRepository,
    UserRepository,
)
from estate_shares.domain.property import Property
from estate_shares.schemas.property_schema import PropertyCreate, PropertyOut, PropertyUpdate
from estate_shares.services.property_cache import PropertyCache

logger = logging.getLogger(__name__)


def property_lock_key(property_id: str) -> str:
    return f"property:{property_id}"


async def create_property(
    payload: PropertyCreate,
    db: AsyncSession,
    cache: PropertyCache,
    default_shares: int,
) -> Property:
    """
    Creates a tokenized property held entirely by its owner.

    The owner starts as the single shareholder with ``payload.shares`` shares
    (``default_shares`` when omitted) and the transaction history records the
    creation.

    Args:
        payload (PropertyCreate): address, owner, deedURL and optional shares.
        db (AsyncSession): The asynchronous database session.
        cache (PropertyCache): Cache refreshed with the new record.
        default_shares (int): Share count used when the payload has none.

    Raises:
        InvalidInputError: If the owner is not a registered user.

    Returns:
        Property: The stored property.
    """
    shares = payload.shares if payload.shares is not None else default_shares
    async with db.begin():
        if not await UserRepository(db).exists(payload.owner):
            logger.warning(f"Property creation rejected: owner {payload.owner} not registered")
            raise InvalidInputError("Owner not registered as a user")

        prop = Property.create(payload.address, payload.owner, payload.deed_url, shares)
        await PropertyRepository(db).insert(prop)
        await AuditLogRepository(db).record(
            table_name="real_estate_properties",
            record_id=prop.id,
            action="INSERT",
            old_values=None,
            new_values=prop.snapshot(),
            changed_by=prop.owner,
            change_reason="Property created",
        )

    await cache.store(prop)
    logger.info(f"Property {prop.id} created by {prop.owner}", extra={"property_id": prop.id})
    return prop


async def list_properties(db: AsyncSession) -> List[Property]:
    return await PropertyRepository(db).values()


async def get_property(
    property_id: str,
    db: AsyncSession,
    cache: PropertyCache,
    locks: KeyedLocks,
) -> PropertyOut:
    """Reads a property, serving it from the cache when possible.

    On a miss the database read and the cache fill happen under the property
    lock, so a concurrent write cannot be overwritten by an older record.
    """
    cached = await cache.load(property_id)
    if cached is not None:
        return cached

    async with locks.hold(property_lock_key(property_id)):
        prop = await PropertyRepository(db).get(property_id)
        if prop is None:
            raise NotFoundError(f"Property with ID={property_id} not found")
        await cache.store(prop)
    return PropertyOut.from_domain(prop)


async def update_property(
    property_id: str,
    payload: PropertyUpdate,
    db: AsyncSession,
    cache: PropertyCache,
    locks: KeyedLocks,
) -> Property:
    """
    Updates the address and deed of a property.

    The submitted owner must be a registered user but does not have to be the
    property's current owner, which allows corrections on behalf of holders.
    Ownership itself only ever changes through share transfers, so the
    property's owner and shares are left untouched.

    Args:
        property_id (str): Id of the property to update.
        payload (PropertyUpdate): owner, address and deedURL.
        db (AsyncSession): The asynchronous database session.
        cache (PropertyCache): Cache refreshed with the updated record.
        locks (KeyedLocks): Per-key locks shared by the application.

    Raises:
        NotFoundError: If the property does not exist.
        InvalidInputError: If the submitted owner is not a registered user.

    Returns:
        Property: The updated property.
    """
    async with locks.hold(property_lock_key(property_id)):
        async with db.begin():
            properties = PropertyRepository(db)
            prop = await properties.get(property_id, for_update=True)
            if prop is None:
                raise NotFoundError(f"Property with ID={property_id} not found")
            if not await UserRepository(db).exists(payload.owner):
                raise InvalidInputError("New owner not a registered user")

            updated = prop.with_details(payload.address, payload.deed_url)
            await properties.insert(updated)
            await AuditLogRepository(db).record(
                table_name="real_estate_properties",
                record_id=prop.id,
                action="UPDATE",
                old_values=prop.snapshot(),
                new_values=updated.snapshot(),
                changed_by=payload.owner,
                change_reason="Property details updated",
            )

        await cache.store(updated)

    logger.info(f"Property {property_id} updated by {payload.owner}", extra={"property_id": property_id})
    return updated


async def delete_property(
    property_id: str,
    username: str,
    db: AsyncSession,
    cache: PropertyCache,
    locks: KeyedLocks,
) -> Property:
    """
    Permanently removes a property held by a single shareholder.

    Args:
        property_id (str): Id of the property to delete.
        username (str): The user requesting the deletion.
        db (AsyncSession): The asynchronous database session.
        cache (PropertyCache): Cache the record is evicted from.
        locks (KeyedLocks): Per-key locks shared by the application.

    Raises:
        NotFoundError: If the property does not exist.
        ForbiddenError: If the caller is not the owner or the property has
            more than one shareholder.

    Returns:
        Property: The deleted property.
    """
    async with locks.hold(property_lock_key(property_id)):
        async with db.begin():
            properties = PropertyRepository(db)
            prop = await properties.get(property_id, for_update=True)
            if prop is None:
                raise NotFoundError(f"Property with ID={property_id} not found")
            if not prop.can_be_deleted_by(username):
                logger.warning(
                    f"Deletion of property {property_id} by {username} refused",
                    extra={"property_id": property_id, "username": username},
                )
                raise ForbiddenError(
                    "Only owners of the property can delete it and a property cannot be "
                    "deleted if it has more than 1 shareholder."
                )

            await properties.remove(property_id)
            await AuditLogRepository(db).record(
                table_name="real_estate_properties",
                record_id=property_id,
                action="DELETE",
                old_values=prop.snapshot(),
                new_values=None,
                changed_by=username,
                change_reason="Property deleted by its sole shareholder",
            )

        await cache.evict(property_id)

    logger.info(f"Property {property_id} deleted by {username}", extra={"property_id": property_id})
    return prop
