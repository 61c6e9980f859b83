"""
WebAuthn challenge issuance and single-use verification.

Challenges are 32 random bytes encoded as base64url without padding, the
same canonical form browsers echo back in clientDataJSON. Each challenge is
stored server-side under an opaque binding token; the client only ever holds
the token. Verification deletes the row before inspecting it, so a binding
is consumed by its first presentation whatever the outcome.
"""

import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from fido2.utils import websafe_decode, websafe_encode
from postgrest.exceptions import APIError
from supabase import Client

from app.core.encoding import canonical_b64decode
from app.core.errors import (
    ChallengeMismatch, Expired, IdentityMismatch, OperationMismatch, StorageFailure, UnknownChallenge,
)
from app.modules.challenges.schemas import ChallengeState, IssuedChallenge, Operation

logger = logging.getLogger(__name__)

TABLE = "webauthn_challenges"
CHALLENGE_LENGTH_BYTES = 32  # 256 bits of entropy
BINDING_LENGTH_BYTES = 32
DEFAULT_TTL_SECONDS = 300
# Rows are purged once this many TTLs old; until then a late presentation reports Expired
PURGE_AFTER_TTLS = 2


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChallengeManager:
    def __init__(
        self,
        supabase: Client,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.supabase = supabase
        self.ttl = timedelta(seconds=ttl_seconds)
        self._now = clock or _utcnow

    def issue(self, user_id: int, operation: Operation) -> IssuedChallenge:
        """Generate a fresh challenge bound to user_id and operation."""
        self.purge_expired()

        challenge = websafe_encode(secrets.token_bytes(CHALLENGE_LENGTH_BYTES))
        binding = secrets.token_urlsafe(BINDING_LENGTH_BYTES)
        issued_at = self._now()

        try:
            self.supabase.table(TABLE).insert({
                "id": binding,
                "user_id": user_id,
                "challenge": challenge,
                "operation": operation.value,
                "issued_at": issued_at.isoformat(),
            }).execute()
        except APIError as e:
            logger.error(f"Error storing {operation.value} challenge for user {user_id}: {e.message}")
            raise StorageFailure(str(e.message)) from e

        logger.info(
            "Issued %s challenge %s... for user %s", operation.value, challenge[:8], user_id
        )
        return IssuedChallenge(
            challenge=challenge,
            binding=binding,
            user_id=user_id,
            operation=operation,
            issued_at=issued_at,
            expires_at=issued_at + self.ttl,
        )

    def _consume(self, binding: str) -> Optional[ChallengeState]:
        try:
            result = self.supabase.table(TABLE)\
                .delete()\
                .eq("id", binding)\
                .execute()
        except APIError as e:
            logger.error(f"Error consuming challenge binding: {e.message}")
            raise StorageFailure(str(e.message)) from e
        if not result.data:
            return None
        return ChallengeState(**result.data[0])

    def verify_and_consume(
        self,
        binding: Optional[str],
        user_id: int,
        presented_challenge: Union[str, bytes],
        operation: Operation,
    ) -> ChallengeState:
        """
        Consume the binding and check it against what the client presented.

        Raises a ChallengeInvalid subclass on failure. The binding is gone
        afterwards in every case.
        """
        if not binding:
            raise UnknownChallenge("Challenge binding missing")

        state = self._consume(binding)
        if state is None:
            logger.warning(f"Unknown or already consumed challenge binding presented for user {user_id}")
            raise UnknownChallenge("Challenge expired or already used")

        if self._now() >= state.issued_at + self.ttl:
            logger.warning(f"Expired {state.operation.value} challenge presented for user {user_id}")
            raise Expired("Challenge expired")

        if state.user_id != user_id:
            logger.warning(f"Challenge issued to user {state.user_id} presented for user {user_id}")
            raise IdentityMismatch("Challenge bound to a different user")

        try:
            presented = canonical_b64decode(presented_challenge)
        except ValueError as e:
            logger.warning(f"Undecodable challenge presented for user {user_id}")
            raise ChallengeMismatch("Challenge is not valid base64") from e
        if not hmac.compare_digest(presented, websafe_decode(state.challenge)):
            logger.warning(
                "Challenge mismatch for user %s (expected %s...)", user_id, state.challenge[:8]
            )
            raise ChallengeMismatch("Challenge does not match")

        if state.operation != operation:
            logger.warning(
                f"{state.operation.value} challenge presented to a {operation.value} ceremony for user {user_id}"
            )
            raise OperationMismatch("Challenge issued for a different operation")

        logger.info(f"Consumed {operation.value} challenge for user {user_id}")
        return state

    def discard(self, binding: Optional[str]) -> None:
        """Invalidate a binding without checking it, for requests rejected before verification."""
        if binding and self._consume(binding) is not None:
            logger.info("Discarded challenge binding of a rejected request")

    def purge_expired(self) -> None:
        """Drop bindings well past expiry. Housekeeping only; failures are logged."""
        cutoff = (self._now() - PURGE_AFTER_TTLS * self.ttl).isoformat()
        try:
            self.supabase.table(TABLE)\
                .delete()\
                .lt("issued_at", cutoff)\
                .execute()
        except APIError as e:
            logger.warning(f"Error purging expired challenges: {e.message}")
