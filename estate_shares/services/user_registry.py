import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from estate_shares.core.exceptions import ConflictError, NotFoundError
from estate_shares.core.locks import KeyedLocks
from estate_shares.db.repositories import AuditLogRepository, UserRepository
from estate_shares.domain.user import UserAccount
from estate_shares.schemas.user_schema import DepositRequest, UserCreate

logger = logging.getLogger(__name__)

# Registration checks two unique columns, so it is serialized as a whole
REGISTRATION_LOCK_KEY = "users:registration"


async def register_user(payload: UserCreate, db: AsyncSession, locks: KeyedLocks) -> UserAccount:
    """
    Registers a new user with an empty wallet.

    Args:
        payload (UserCreate): username, email and password of the new user.
        db (AsyncSession): The asynchronous database session.
        locks (KeyedLocks): Per-key locks shared by the application.

    Raises:
        ConflictError: If the username is taken or the email is already used
            by another user.

    Returns:
        UserAccount: The stored user.
    """
    async with locks.hold(REGISTRATION_LOCK_KEY):
        try:
            async with db.begin():
                users = UserRepository(db)
                if await users.exists(payload.username) or await users.email_in_use(payload.email):
                    logger.warning(f"Registration rejected for {payload.username}: user or email exists")
                    raise ConflictError("user exists or email is already in use.")

                user = UserAccount(
                    username=payload.username,
                    email=payload.email,
                    password=payload.password,
                )
                await users.insert(user)
                await AuditLogRepository(db).record(
                    table_name="users",
                    record_id=user.username,
                    action="INSERT",
                    old_values=None,
                    new_values=user.snapshot(),
                    changed_by=user.username,
                    change_reason="User registered",
                )
        except IntegrityError:
            # Another process won the race on one of the unique columns
            raise ConflictError("user exists or email is already in use.")

    logger.info(f"User {user.username} registered", extra={"username": user.username})
    return user


async def deposit(payload: DepositRequest, db: AsyncSession, locks: KeyedLocks) -> UserAccount:
    """
    Adds funds to a user's wallet balance.

    Args:
        payload (DepositRequest): The username and a positive amount.
        db (AsyncSession): The asynchronous database session.
        locks (KeyedLocks): Per-key locks shared by the application.

    Raises:
        NotFoundError: If the user does not exist.

    Returns:
        UserAccount: The user with its updated balance.
    """
    async with locks.hold(f"user:{payload.username}"):
        async with db.begin():
            users = UserRepository(db)
            user = await users.get(payload.username, for_update=True)
            if user is None:
                raise NotFoundError("User doesn't exist.")

            updated = user.deposited(payload.amount)
            await users.insert(updated)
            await AuditLogRepository(db).record(
                table_name="users",
                record_id=user.username,
                action="DEPOSIT",
                old_values=user.snapshot(),
                new_values=updated.snapshot(),
                changed_by=user.username,
                change_reason=f"Deposit of {payload.amount}",
            )

    logger.info(
        f"Deposited {payload.amount} for {updated.username}, balance {updated.wallet_tokens}",
        extra={"username": updated.username},
    )
    return updated


async def get_user(username: str, db: AsyncSession) -> UserAccount:
    user = await UserRepository(db).get(username)
    if user is None:
        raise NotFoundError(f"User {username} not found")
    return user
