from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from estate_shares.domain.user import UserAccount

# Matches the Numeric(38, 8) wallet_tokens column
BALANCE_MAX_DIGITS = 38
BALANCE_DECIMAL_PLACES = 8


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class DepositRequest(BaseModel):
    username: str = Field(..., min_length=1)
    amount: Decimal = Field(
        ...,
        gt=0,
        max_digits=BALANCE_MAX_DIGITS,
        decimal_places=BALANCE_DECIMAL_PLACES,
        description="Amount added to the wallet balance, at most 8 decimal places",
    )


class UserOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str
    email: str
    wallet_tokens: Decimal = Field(..., alias="walletTokens")

    @field_serializer("wallet_tokens")
    def _plain_balance(self, value: Decimal) -> str:
        # 150.50000000 -> "150.5", 1E-8 -> "0.00000001"
        return format(value.normalize(), "f")

    @classmethod
    def from_domain(cls, user: UserAccount) -> "UserOut":
        return cls(
            username=user.username,
            email=user.email,
            wallet_tokens=user.wallet_tokens,
        )
