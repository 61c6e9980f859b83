"""
Biometric login ceremony.

A login succeeds when the returned challenge matches the one issued for
'get' and the credential id belongs to the user. The assertion signature
over authenticatorData and the client data hash is not verified.
"""
import logging
from typing import Optional, Tuple, Union

from app.config import Settings
from app.core.errors import CredentialNotFound, NoCredentials, WrongOperation
from app.modules.biometrics.schemas import CredentialDescriptor, RequestOptions, VerifiedIdentity
from app.modules.challenges.schemas import IssuedChallenge, Operation
from app.modules.challenges.service import ChallengeManager
from app.modules.credentials.service import CredentialStore
from app.modules.users.service import UserService

logger = logging.getLogger(__name__)


class AssertionFlow:
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

    def begin_assertion(self, user_id: int, rp_id: str) -> Tuple[RequestOptions, IssuedChallenge]:
        """Build request options listing the user's credentials and issue a 'get' challenge."""
        user = self.users.get_user_by_id(user_id)
        records = self.credentials.list_by_identity(user.id)
        if not records:
            raise NoCredentials(f"User {user.id} has no registered credentials")

        issued = self.challenges.issue(user.id, Operation.GET)
        options = RequestOptions(
            challenge=issued.challenge,
            rp_id=rp_id,
            timeout=self.settings.webauthn_timeout_ms,
            allow_credentials=[
                CredentialDescriptor(id=record.id, transports=record.credential.transports)
                for record in records
            ],
        )
        logger.info(f"Assertion options issued for user {user.id} ({len(records)} credential(s))")
        return options, issued

    def complete_assertion(
        self,
        user_id: int,
        binding: Optional[str],
        presented_challenge: Union[str, bytes],
        operation_type: str,
        credential_id: str,
    ) -> VerifiedIdentity:
        self.challenges.verify_and_consume(binding, user_id, presented_challenge, Operation.GET)

        if operation_type != Operation.GET.client_data_type:
            logger.warning(f"Assertion for user {user_id} declared operation {operation_type!r}")
            raise WrongOperation(f"Expected {Operation.GET.client_data_type}, got {operation_type}")

        user = self.users.get_user_by_id(user_id)
        registered = {record.id for record in self.credentials.list_by_identity(user.id)}
        if credential_id not in registered:
            logger.warning(f"Credential {credential_id} is not registered to user {user.id}")
            raise CredentialNotFound(f"Credential {credential_id} not registered to user {user.id}")

        logger.info(f"Biometric login verified for user {user.id}")
        return VerifiedIdentity(id=user.id, name=user.name, email=user.email)
