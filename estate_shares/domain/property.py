"""Tokenized property entity and the majority-ownership resolver.

A property's ``tokenized_shares`` is an insertion-ordered mapping of holder
username to share count. Whoever holds strictly the most shares is the
owner; among equal holdings the holder inserted first keeps ownership.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    INSUFFICIENT_SHARES = "insufficient_shares"


def resolve_owner(tokenized_shares: Mapping[str, int], current_owner: str) -> str:
    """Return the holder with strictly the most shares, earliest entry on ties.

    Falls back to ``current_owner`` when the map is empty.
    """
    new_owner = current_owner
    most_shares = -1
    for holder, count in tokenized_shares.items():
        if count > most_shares:
            most_shares = count
            new_owner = holder
    return new_owner


@dataclass
class TransferResult:
    """Outcome of a share transfer: either the updated property or an error."""

    updated: Optional["Property"] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class Property:
    id: str
    address: str
    owner: str
    deed_url: str
    tokenized_shares: Dict[str, int] = field(default_factory=dict)
    transaction_history: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    @classmethod
    def create(cls, address: str, owner: str, deed_url: str, shares: int,
               now: Optional[datetime] = None) -> "Property":
        return cls(
            id=str(uuid.uuid4()),
            address=address,
            owner=owner,
            deed_url=deed_url,
            tokenized_shares={owner: shares},
            transaction_history=[f"Property created by {owner}"],
            created_at=now or utcnow(),
            updated_at=None,
        )

    @property
    def total_shares(self) -> int:
        return sum(self.tokenized_shares.values())

    def holding(self, holder: str) -> int:
        return self.tokenized_shares.get(holder, 0)

    def with_details(self, address: str, deed_url: str,
                     now: Optional[datetime] = None) -> "Property":
        """Copy with a new address and deed; owner and shares are untouched."""
        return replace(
            self,
            address=address,
            deed_url=deed_url,
            tokenized_shares=dict(self.tokenized_shares),
            transaction_history=list(self.transaction_history),
            updated_at=now or utcnow(),
        )

    def can_be_deleted_by(self, username: str) -> bool:
        # Only the last remaining holder, who is then necessarily the owner
        return (
            len(self.tokenized_shares) == 1
            and username in self.tokenized_shares
            and self.owner == username
        )

    def transfer_shares(self, from_holder: str, to_holder: str, shares: int) -> TransferResult:
        """Move ``shares`` from one holder to another and re-resolve the owner.

        The receiver does not have to be validated here, only by the caller
        (registration lives in another table). This property is never
        mutated: on success the result carries an updated copy, on failure
        it carries an error kind and a message.

        A holder whose balance drops to zero is removed from the share map.
        """
        if isinstance(shares, bool) or not isinstance(shares, int) or shares <= 0:
            return TransferResult(
                error=ErrorKind.INVALID_INPUT,
                message="'shares' must be a positive whole number",
            )
        if from_holder == to_holder:
            return TransferResult(
                error=ErrorKind.INVALID_INPUT,
                message="'from' and 'to' must be different holders",
            )

        current = self.tokenized_shares.get(from_holder)
        if current is None or current < shares:
            return TransferResult(
                error=ErrorKind.INSUFFICIENT_SHARES,
                message=f"{from_holder} does not own {shares} shares in property {self.id}",
            )

        updated_shares = dict(self.tokenized_shares)
        remaining = current - shares
        if remaining == 0:
            del updated_shares[from_holder]
        else:
            updated_shares[from_holder] = remaining
        updated_shares[to_holder] = updated_shares.get(to_holder, 0) + shares

        history = list(self.transaction_history)
        history.append(f"{shares} transferred from {from_holder} to {to_holder}")

        updated = replace(
            self,
            tokenized_shares=updated_shares,
            transaction_history=history,
            owner=resolve_owner(updated_shares, self.owner),
        )
        return TransferResult(updated=updated)

    def snapshot(self) -> Dict[str, Any]:
        """JSON-safe view used for audit rows."""
        return {
            "id": self.id,
            "address": self.address,
            "owner": self.owner,
            "deedURL": self.deed_url,
            "tokenizedShares": dict(self.tokenized_shares),
            "transactionHistory": list(self.transaction_history),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
