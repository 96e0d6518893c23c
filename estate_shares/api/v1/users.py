import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from estate_shares.core.exceptions import EstateSharesError
from estate_shares.core.locks import KeyedLocks, get_locks
from estate_shares.db.database import get_db
from estate_shares.schemas.user_schema import DepositRequest, UserCreate, UserOut
from estate_shares.services.user_registry import deposit, get_user, register_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


@router.post("/users", response_model=UserOut)
async def create_user(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
    locks: KeyedLocks = Depends(get_locks),
):
    """
    Registers a new user.

    Args:
        payload (UserCreate): username, email and password.

    Raises:
        ConflictError: 400 if the username is taken or the email is in use.

    Returns:
        UserOut: The new user with a zero wallet balance.
    """
    try:
        user = await register_user(payload, db, locks)
        return UserOut.from_domain(user)
    except EstateSharesError:
        raise
    except Exception as e:
        logger.exception("User registration failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail=str(e))


@router.post("/users/deposit", response_model=UserOut)
async def deposit_funds(
    payload: DepositRequest,
    db: AsyncSession = Depends(get_db),
    locks: KeyedLocks = Depends(get_locks),
):
    """
    Deposits funds into a user's wallet.

    Args:
        payload (DepositRequest): username and a positive numeric amount.

    Raises:
        InvalidInputError: 400 if the amount is missing, not numeric or not
            positive.
        NotFoundError: 404 if the user does not exist.

    Returns:
        UserOut: The user with its updated balance.
    """
    try:
        user = await deposit(payload, db, locks)
        return UserOut.from_domain(user)
    except EstateSharesError:
        raise
    except Exception as e:
        logger.exception("Deposit failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail=str(e))


@router.get("/users/{username}", response_model=UserOut)
async def read_user(username: str, db: AsyncSession = Depends(get_db)):
    return UserOut.from_domain(await get_user(username, db))
