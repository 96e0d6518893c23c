import logging

from sqlalchemy.ext.asyncio import AsyncSession

from estate_shares.core.exceptions import (
    EstateSharesError,
    InsufficientSharesError,
    InvalidInputError,
    NotFoundError,
)
from estate_shares.core.locks import KeyedLocks
from estate_shares.db.repositories import (
    AuditLogRepository,
    PropertyRepository,
    UserRepository,
)
from estate_shares.domain.property import ErrorKind, Property
from estate_shares.schemas.property_schema import ShareTransferRequest
from estate_shares.services.property_cache import PropertyCache
from estate_shares.services.property_service import property_lock_key

logger = logging.getLogger(__name__)

_ERRORS = {
    ErrorKind.INVALID_INPUT: InvalidInputError,
    ErrorKind.INSUFFICIENT_SHARES: InsufficientSharesError,
}


def _error_for(kind: ErrorKind, message: str) -> EstateSharesError:
    return _ERRORS[kind](message)


async def process_transfer(
    property_id: str,
    payload: ShareTransferRequest,
    db: AsyncSession,
    cache: PropertyCache,
    locks: KeyedLocks,
) -> Property:
    """
    Transfers shares of a property between two holders.

    The whole read-modify-write runs under the property's lock and inside a
    single database transaction:
    1.  Validates that the property exists and the receiver is a registered
        user.
    2.  Debits the sender and credits the receiver. A sender left with zero
        shares is removed from the share map.
    3.  Appends the transfer to the transaction history.
    4.  Hands ownership to the holder with the most shares; on a tie the
        holder that appears first in the share map wins.
    5.  Writes the whole record back, records an audit entry and refreshes
        the cache after commit.

    Args:
        property_id (str): Id of the property whose shares move.
        payload (ShareTransferRequest): from, to and a positive share count.
        db (AsyncSession): The asynchronous database session.
        cache (PropertyCache): Cache refreshed with the updated record.
        locks (KeyedLocks): Per-key locks shared by the application.

    Raises:
        NotFoundError: If the property does not exist.
        InvalidInputError: If the receiver is not registered or sender and
            receiver are the same holder.
        InsufficientSharesError: If the sender holds fewer shares than
            requested. The property is left unchanged.

    Returns:
        Property: The updated property.
    """
    async with locks.hold(property_lock_key(property_id)):
        async with db.begin():
            properties = PropertyRepository(db)
            prop = await properties.get(property_id, for_update=True)
            if prop is None:
                raise NotFoundError(f"Property with ID={property_id} not found")

            if not await UserRepository(db).exists(payload.to_holder):
                raise InvalidInputError(f"{payload.to_holder} does not match any registered users.")

            result = prop.transfer_shares(payload.from_holder, payload.to_holder, payload.shares)
            if not result.ok:
                logger.warning(
                    f"Transfer on property {property_id} rejected: {result.message}",
                    extra={
                        "property_id": property_id,
                        "from_holder": payload.from_holder,
                        "to_holder": payload.to_holder,
                        "shares": payload.shares,
                    },
                )
                raise _error_for(result.error, result.message)

            updated = result.updated
            await properties.insert(updated)
            await AuditLogRepository(db).record(
                table_name="real_estate_properties",
                record_id=property_id,
                action="TRANSFER",
                old_values=prop.snapshot(),
                new_values=updated.snapshot(),
                changed_by=payload.from_holder,
                change_reason=updated.transaction_history[-1],
            )

        await cache.store(updated)

    if updated.owner != prop.owner:
        logger.info(
            f"Ownership of property {property_id} moved from {prop.owner} to {updated.owner}",
            extra={"property_id": property_id},
        )
    logger.info(
        f"{payload.shares} shares of property {property_id} transferred "
        f"from {payload.from_holder} to {payload.to_holder}",
        extra={"property_id": property_id, "shares": payload.shares},
    )
    return updated
