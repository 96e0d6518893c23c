from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict


@dataclass
class UserAccount:
    username: str
    email: str
    password: str
    wallet_tokens: Decimal = Decimal("0")

    def deposited(self, amount: Decimal) -> "UserAccount":
        return replace(self, wallet_tokens=self.wallet_tokens + amount)

    def snapshot(self) -> Dict[str, Any]:
        # Password never leaves the users table
        return {
            "username": self.username,
            "email": self.email,
            "walletTokens": str(self.wallet_tokens),
        }
