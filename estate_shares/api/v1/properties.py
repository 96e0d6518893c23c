import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from estate_shares.core.config import Settings, get_app_settings
from estate_shares.core.exceptions import EstateSharesError
from estate_shares.core.locks import KeyedLocks, get_locks
from estate_shares.db.database import get_db
from estate_shares.schemas.property_schema import (
    PropertyCreate,
    PropertyDelete,
    PropertyOut,
    PropertyUpdate,
    ShareTransferRequest,
)
from estate_shares.services.property_cache import PropertyCache, get_property_cache
from estate_shares.services.property_service import (
    create_property,
    delete_property,
    get_property,
    list_properties,
    update_property,
)
from estate_shares.services.transfer_service import process_transfer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Properties"])


@router.post("/properties", response_model=PropertyOut)
async def create_new_property(
    payload: PropertyCreate,
    db: AsyncSession = Depends(get_db),
    cache: PropertyCache = Depends(get_property_cache),
    settings: Settings = Depends(get_app_settings),
):
    """
    Creates a tokenized property.

    The owner becomes the only shareholder, holding ``shares`` shares (the
    configured default, 100, when omitted).

    Args:
        payload (PropertyCreate): address, owner, deedURL and optional shares.

    Raises:
        InvalidInputError: 400 if a field is missing or empty, shares is below
            1, or the owner is not a registered user.

    Returns:
        PropertyOut: The new property.
    """
    try:
        prop = await create_property(payload, db, cache, settings.default_property_shares)
        return PropertyOut.from_domain(prop)
    except EstateSharesError:
        raise
    except Exception as e:
        logger.exception("Property creation failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail=str(e))


@router.get("/properties", response_model=List[PropertyOut])
async def read_properties(db: AsyncSession = Depends(get_db)):
    return [PropertyOut.from_domain(prop) for prop in await list_properties(db)]


@router.get("/properties/{property_id}", response_model=PropertyOut)
async def read_property(
    property_id: str,
    db: AsyncSession = Depends(get_db),
    cache: PropertyCache = Depends(get_property_cache),
    locks: KeyedLocks = Depends(get_locks),
):
    return await get_property(property_id, db, cache, locks)


@router.put("/properties/{property_id}", response_model=PropertyOut)
async def update_existing_property(
    property_id: str,
    payload: PropertyUpdate,
    db: AsyncSession = Depends(get_db),
    cache: PropertyCache = Depends(get_property_cache),
    locks: KeyedLocks = Depends(get_locks),
):
    """
    Updates the address and deed URL of a property.

    Args:
        property_id (str): Id of the property.
        payload (PropertyUpdate): owner, address and deedURL. The owner must
            be a registered user; it does not have to be the current owner and
            the property's owner is not changed.

    Raises:
        InvalidInputError: 400 if a field is missing or the owner is not a
            registered user.
        NotFoundError: 404 if the property does not exist.

    Returns:
        PropertyOut: The updated property.
    """
    try:
        prop = await update_property(property_id, payload, db, cache, locks)
        return PropertyOut.from_domain(prop)
    except EstateSharesError:
        raise
    except Exception as e:
        logger.exception("Property update failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail=str(e))


@router.delete("/properties/{property_id}", response_model=PropertyOut)
async def delete_existing_property(
    property_id: str,
    payload: PropertyDelete,
    db: AsyncSession = Depends(get_db),
    cache: PropertyCache = Depends(get_property_cache),
    locks: KeyedLocks = Depends(get_locks),
):
    """
    Deletes a property on behalf of its sole shareholder.

    Args:
        property_id (str): Id of the property.
        payload (PropertyDelete): username of the caller.

    Raises:
        ForbiddenError: 400 if the caller is not the owner or other
            shareholders exist.
        NotFoundError: 404 if the property does not exist.

    Returns:
        PropertyOut: The deleted property.
    """
    try:
        prop = await delete_property(property_id, payload.username, db, cache, locks)
        return PropertyOut.from_domain(prop)
    except EstateSharesError:
        raise
    except Exception as e:
        logger.exception("Property deletion failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail=str(e))


@router.post("/transfer/{property_id}", response_model=PropertyOut)
async def transfer_shares(
    property_id: str,
    payload: ShareTransferRequest,
    db: AsyncSession = Depends(get_db),
    cache: PropertyCache = Depends(get_property_cache),
    locks: KeyedLocks = Depends(get_locks),
):
    """
    Transfers shares of a property and reassigns ownership if necessary.

    After the transfer the holder with the most shares becomes the owner;
    when holdings tie, the earliest holder in the share map keeps or gains
    ownership.

    Args:
        property_id (str): Id of the property.
        payload (ShareTransferRequest): from, to and a positive share count.

    Raises:
        InvalidInputError: 400 for invalid input or an unregistered receiver.
        InsufficientSharesError: 400 if the sender holds too few shares.
        NotFoundError: 404 if the property does not exist.

    Returns:
        PropertyOut: The updated property.
    """
    try:
        prop = await process_transfer(property_id, payload, db, cache, locks)
        return PropertyOut.from_domain(prop)
    except EstateSharesError:
        raise
    except Exception as e:
        logger.exception("Share transfer failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail=str(e))
