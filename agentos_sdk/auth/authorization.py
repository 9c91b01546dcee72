"""
Role authorization, kept apart from authentication.

Authentication only proves which address signed a request. Whether that
address may act on a given wallet is decided here, against the roles the
wallet contract records.
"""
from dataclasses import dataclass
from enum import Enum

from ..exceptions import ForbiddenError
from ..utils import normalize_address


class Role(str, Enum):
    AGENT = "agent"
    HUMAN = "human"


@dataclass(frozen=True)
class WalletRoles:
    """Role holders of one governed wallet."""
    wallet_address: str
    agent: str
    human: str

    def holder(self, role: Role) -> str:
        return normalize_address(self.agent if role is Role.AGENT else self.human)


def has_role(identity: str, roles: WalletRoles, role: Role) -> bool:
    holder = roles.holder(role)
    return bool(holder) and normalize_address(identity) == holder


def authorize(identity: str, roles: WalletRoles, role: Role, action: str) -> None:
    """
    Require ``identity`` to hold ``role`` on the wallet.

    Raises:
        ForbiddenError: If it does not
    """
    if not has_role(identity, roles, role):
        raise ForbiddenError(
            f"{action} requires the wallet's {role.value} signer",
            details={"wallet_address": roles.wallet_address, "role": role.value},
        )
