import pytest

from app.core.errors import CredentialNotFound, DuplicateCredential, StorageFailure
from app.modules.credentials.schemas import CredentialRecord, StoredCredential


def make_record(credential_id, user_id=1, transports=None):
    return CredentialRecord(
        id=credential_id,
        user_id=user_id,
        credential=StoredCredential(
            id=credential_id,
            raw_id=credential_id,
            transports=transports or ["internal"],
            attestation_object="o2NmbXQ",
        ),
    )


def test_put_and_find(credentials):
    stored = credentials.put(make_record("cred-1", transports=["internal", "hybrid"]))

    assert stored.id == "cred-1"
    found = credentials.find_by_id("cred-1")
    assert found.user_id == 1
    assert found.credential.transports == ["internal", "hybrid"]
    assert found.credential.type == "public-key"


def test_blob_is_serialised_json(credentials, supabase):
    credentials.put(make_record("cred-1"))

    [row] = supabase.rows("biometric_credentials")
    assert set(row) >= {"id", "user_id", "credential_data"}
    assert StoredCredential.model_validate_json(row["credential_data"]).raw_id == "cred-1"


def test_duplicate_leaves_store_unchanged(credentials, supabase):
    credentials.put(make_record("cred-1", user_id=1))
    before = [dict(row) for row in supabase.rows("biometric_credentials")]

    with pytest.raises(DuplicateCredential):
        credentials.put(make_record("cred-1", user_id=2))

    assert supabase.rows("biometric_credentials") == before
    assert credentials.list_by_identity(2) == []


def test_list_by_identity(credentials):
    assert credentials.list_by_identity(1) == []

    credentials.put(make_record("cred-1", user_id=1))
    credentials.put(make_record("cred-2", user_id=1))
    credentials.put(make_record("cred-3", user_id=2))

    assert sorted(r.id for r in credentials.list_by_identity(1)) == ["cred-1", "cred-2"]
    assert credentials.count_for_identity(2) == 1


def test_count_does_not_load_credential_blobs(credentials, supabase):
    credentials.put(make_record("cred-1", user_id=1))
    credentials.put(make_record("cred-2", user_id=1))
    supabase.rows("biometric_credentials")[0]["credential_data"] = "not json"

    assert credentials.count_for_identity(1) == 2
    assert credentials.count_for_identity(3) == 0

    supabase.broken.add("biometric_credentials")
    with pytest.raises(StorageFailure):
        credentials.count_for_identity(1)


def test_find_missing(credentials):
    with pytest.raises(CredentialNotFound):
        credentials.find_by_id("nope")


def test_delete_is_idempotent(credentials):
    credentials.put(make_record("cred-1"))

    credentials.delete("cred-1")
    credentials.delete("cred-1")

    assert credentials.list_by_identity(1) == []


def test_store_fault_surfaces_as_storage_failure(credentials, supabase):
    supabase.broken.add("biometric_credentials")

    with pytest.raises(StorageFailure):
        credentials.put(make_record("cred-1"))
    with pytest.raises(StorageFailure):
        credentials.list_by_identity(1)
