from enum import Enum
from datetime import datetime

from fido2.webauthn import CollectedClientData
from pydantic import BaseModel


class Operation(str, Enum):
    CREATE = "create"
    GET = "get"

    @property
    def client_data_type(self) -> str:
        """clientDataJSON.type a browser reports for this ceremony."""
        if self is Operation.CREATE:
            return CollectedClientData.TYPE.CREATE.value
        return CollectedClientData.TYPE.GET.value


class ChallengeState(BaseModel):
    id: str
    user_id: int
    challenge: str
    operation: Operation
    issued_at: datetime


class IssuedChallenge(BaseModel):
    challenge: str
    binding: str
    user_id: int
    operation: Operation
    issued_at: datetime
    expires_at: datetime
