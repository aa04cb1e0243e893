"""Role tiers and per-user cooldowns for operations.

The gate answers one question per request: may this user run this
operation now? It is synchronous on purpose: under asyncio no other
request can run between the cooldown check and the ledger update.
"""

import logging
import time
from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from valkyrie.models import OperationDefinition

logger = logging.getLogger(__name__)


class RoleTiers:
    """Ordered role names, lowest privilege first.

    A user's tier is the 1-based position of the highest role they hold,
    or 0 when they hold none of them.
    """

    def __init__(self, names: Iterable[str]) -> None:
        self.names: tuple[str, ...] = tuple(names)
        if not self.names:
            raise ValueError("At least one role tier is required")

    def __len__(self) -> int:
        return len(self.names)

    def resolve(self, role_names: Iterable[str]) -> int:
        """Return the tier granted by a set of held role names."""
        held = set(role_names)
        for index in range(len(self.names) - 1, -1, -1):
            if self.names[index] in held:
                return index + 1
        return 0

    def name_for(self, tier: int) -> str | None:
        """Return the role name of a tier, or None for tier 0 / out of range."""
        if 1 <= tier <= len(self.names):
            return self.names[tier - 1]
        return None

    def roles_at_or_above(self, tier: int) -> list[str]:
        """Role names that satisfy a minimum tier (empty when tier <= 0)."""
        if tier <= 0:
            return []
        return list(self.names[tier - 1 :])


class DenialReason(str, Enum):
    """Why a request was refused."""

    INSUFFICIENT_ROLE = "insufficient_role"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check."""

    allowed: bool
    reason: DenialReason | None = None
    retry_after: float = 0.0

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenialReason, retry_after: float = 0.0) -> "Decision":
        return cls(allowed=False, reason=reason, retry_after=retry_after)


class AuthorizationGate:
    """Role-tier check plus a cooldown ledger for sensitive operations.

    Ledger entries are never pruned; they live as long as the process.
    """

    def __init__(
        self,
        cooldown_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize gate.

        Args:
            cooldown_seconds: Minimum time between two runs of the same
                cooldown-eligible operation by the same user
            clock: Monotonic time source, injectable for tests
        """
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._ledger: dict[str, dict[str, float]] = defaultdict(dict)

    def authorize(
        self,
        user_id: str,
        role_tier: int,
        operation: OperationDefinition,
    ) -> Decision:
        """Decide whether *user_id* may run *operation* now.

        The ledger is only written when a cooldown-eligible operation is
        allowed; denied attempts never move the window.
        """
        if role_tier < operation.minimum_role_tier:
            logger.info(
                "Denied %s to user %s: tier %d < %d",
                operation.key,
                user_id,
                role_tier,
                operation.minimum_role_tier,
            )
            return Decision.deny(DenialReason.INSUFFICIENT_ROLE)

        if not operation.cooldown_eligible:
            return Decision.allow()

        now = self._clock()
        last_used = self._ledger[user_id].get(operation.key)
        if last_used is not None:
            elapsed = now - last_used
            if elapsed < self.cooldown_seconds:
                retry_after = self.cooldown_seconds - elapsed
                logger.info(
                    "Rate limited %s for user %s (retry in %.1fs)",
                    operation.key,
                    user_id,
                    retry_after,
                )
                return Decision.deny(DenialReason.RATE_LIMITED, retry_after)

        self._ledger[user_id][operation.key] = now
        return Decision.allow()

    def last_invocation(self, user_id: str, operation_key: str) -> float | None:
        """Timestamp of the last allowed run, if any."""
        return self._ledger.get(user_id, {}).get(operation_key)
