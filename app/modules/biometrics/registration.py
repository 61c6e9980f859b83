"""
Biometric registration ceremony.

Requested -> OptionsIssued (begin_registration) -> CredentialReceived
(complete_registration) -> Verified | Rejected. The attestation statement is
stored as returned; its signature and certificate chain are not checked.
"""
import logging
from typing import Optional, Tuple, Union

from app.config import Settings
from app.core.errors import WrongOperation
from app.modules.biometrics.schemas import (
    CreationOptions, CredentialDescriptor, CredentialParameter, RelyingParty, UserEntity,
)
from app.modules.challenges.schemas import IssuedChallenge, Operation
from app.modules.challenges.service import ChallengeManager
from app.modules.credentials.schemas import CredentialRecord, StoredCredential
from app.modules.credentials.service import CredentialStore
from app.modules.users.service import UserService

logger = logging.getLogger(__name__)

ES256 = -7
RS256 = -257


class RegistrationFlow:
    def __init__(
        self,
        users: UserService,
        credentials: CredentialStore,
        challenges: ChallengeManager,
        settings: Settings,
    ):
        self.users = users
        self.credentials = credentials
        self.challenges = challenges
        self.settings = settings

    def user_handle(self, user_id: int) -> str:
        # Short handles get truncated by some platform authenticators
        return str(user_id).zfill(self.settings.user_handle_length)

    def begin_registration(self, user_id: int, rp_id: str) -> Tuple[CreationOptions, IssuedChallenge]:
        """Build creation options for user_id and issue a 'create' challenge."""
        user = self.users.get_user_by_id(user_id)
        existing = self.credentials.list_by_identity(user.id)
        issued = self.challenges.issue(user.id, Operation.CREATE)

        options = CreationOptions(
            challenge=issued.challenge,
            rp=RelyingParty(name=self.settings.rp_name, id=rp_id),
            user=UserEntity(
                id=self.user_handle(user.id),
                name=user.email,
                display_name=user.name or user.email,
            ),
            pub_key_cred_params=[
                CredentialParameter(alg=ES256),
                CredentialParameter(alg=RS256),
            ],
            timeout=self.settings.webauthn_timeout_ms,
            exclude_credentials=[CredentialDescriptor(id=record.id) for record in existing],
        )
        logger.info(
            f"Registration options issued for user {user.id} ({len(existing)} credential(s) excluded)"
        )
        return options, issued

    def complete_registration(
        self,
        user_id: int,
        binding: Optional[str],
        presented_challenge: Union[str, bytes],
        operation_type: str,
        credential_id: str,
        credential: StoredCredential,
    ) -> str:
        """Verify the challenge and store the new credential. Returns the stored credential id."""
        self.challenges.verify_and_consume(binding, user_id, presented_challenge, Operation.CREATE)

        if operation_type != Operation.CREATE.client_data_type:
            logger.warning(f"Registration for user {user_id} declared operation {operation_type!r}")
            raise WrongOperation(f"Expected {Operation.CREATE.client_data_type}, got {operation_type}")

        record = self.credentials.put(
            CredentialRecord(id=credential_id, user_id=user_id, credential=credential)
        )
        logger.info(f"Registration verified for user {user_id}")
        return record.id
