from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime


class StoredCredential(BaseModel):
    """Opaque credential blob persisted alongside the record."""
    id: str
    raw_id: str
    type: Literal["public-key"] = "public-key"
    transports: List[str] = Field(default_factory=lambda: ["internal"])
    attestation_object: Optional[str] = None
    client_data_json: Optional[str] = None


class CredentialRecord(BaseModel):
    id: str
    user_id: int
    credential: StoredCredential
    created_at: Optional[datetime] = None

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "credential_data": self.credential.model_dump_json(),
        }

    @classmethod
    def from_row(cls, row: dict) -> "CredentialRecord":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            credential=StoredCredential.model_validate_json(row["credential_data"]),
            created_at=row.get("created_at"),
        )


class CredentialSummary(BaseModel):
    id: str
    type: str
    transports: List[str]
    created_at: Optional[datetime] = None
