import logging
from typing import List

from postgrest.exceptions import APIError
from supabase import Client

from app.core.errors import CredentialNotFound, DuplicateCredential, StorageFailure
from app.modules.credentials.schemas import CredentialRecord

logger = logging.getLogger(__name__)

TABLE = "biometric_credentials"
UNIQUE_VIOLATION = "23505"


class CredentialStore:
    """Registered public-key credentials, many per identity, keyed by credential id."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def put(self, record: CredentialRecord) -> CredentialRecord:
        """Insert a new credential record. The primary key makes duplicates fail atomically."""
        try:
            result = self.supabase.table(TABLE).insert(record.to_row()).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.warning(f"Credential {record.id} already registered")
                raise DuplicateCredential(f"Credential {record.id} already exists") from e
            logger.error(f"Error storing credential {record.id}: {e.message}")
            raise StorageFailure(str(e.message)) from e

        if not result.data:
            raise StorageFailure(f"Failed to store credential {record.id}")

        logger.info(f"Stored credential {record.id} for user {record.user_id}")
        return CredentialRecord.from_row(result.data[0])

    def list_by_identity(self, user_id: int) -> List[CredentialRecord]:
        try:
            result = self.supabase.table(TABLE)\
                .select("*")\
                .eq("user_id", user_id)\
                .execute()
        except APIError as e:
            logger.error(f"Error listing credentials for user {user_id}: {e.message}")
            raise StorageFailure(str(e.message)) from e
        return [CredentialRecord.from_row(row) for row in result.data or []]

    def count_for_identity(self, user_id: int) -> int:
        try:
            result = self.supabase.table(TABLE)\
                .select("id", count="exact")\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
        except APIError as e:
            logger.error(f"Error counting credentials for user {user_id}: {e.message}")
            raise StorageFailure(str(e.message)) from e
        return result.count or 0

    def find_by_id(self, credential_id: str) -> CredentialRecord:
        try:
            result = self.supabase.table(TABLE)\
                .select("*")\
                .eq("id", credential_id)\
                .limit(1)\
                .execute()
        except APIError as e:
            logger.error(f"Error fetching credential {credential_id}: {e.message}")
            raise StorageFailure(str(e.message)) from e
        if not result.data:
            raise CredentialNotFound(f"Credential {credential_id} not found")
        return CredentialRecord.from_row(result.data[0])

    def delete(self, credential_id: str) -> None:
        """Remove a credential; deleting an absent id is not an error."""
        try:
            self.supabase.table(TABLE)\
                .delete()\
                .eq("id", credential_id)\
                .execute()
        except APIError as e:
            logger.error(f"Error deleting credential {credential_id}: {e.message}")
            raise StorageFailure(str(e.message)) from e
        logger.info(f"Deleted credential {credential_id}")
