from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from estate_shares.domain.property import Property


class PropertyCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    address: str = Field(..., min_length=1)
    owner: str = Field(..., min_length=1)
    deed_url: str = Field(..., min_length=1, alias="deedURL")
    shares: Optional[int] = Field(
        None,
        ge=1,
        description="Initial share count held by the owner; the configured default when omitted",
    )


class PropertyUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    owner: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    deed_url: str = Field(..., min_length=1, alias="deedURL")


class PropertyDelete(BaseModel):
    username: str = Field(..., min_length=1)


class ShareTransferRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_holder: str = Field(..., min_length=1, alias="from")
    to_holder: str = Field(..., min_length=1, alias="to")
    shares: int = Field(..., gt=0)


class PropertyOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    address: str
    owner: str
    deed_url: str = Field(..., alias="deedURL")
    tokenized_shares: Dict[str, int] = Field(..., alias="tokenizedShares")
    transaction_history: List[str] = Field(..., alias="transactionHistory")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    @classmethod
    def from_domain(cls, prop: Property) -> "PropertyOut":
        return cls(
            id=prop.id,
            address=prop.address,
            owner=prop.owner,
            deed_url=prop.deed_url,
            tokenized_shares=dict(prop.tokenized_shares),
            transaction_history=list(prop.transaction_history),
            created_at=prop.created_at,
            updated_at=prop.updated_at,
        )
