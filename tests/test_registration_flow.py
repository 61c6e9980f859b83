import pytest

from app.core.errors import (
    ChallengeInvalid, DuplicateCredential, IdentityNotFound, OperationMismatch, UnknownChallenge, WrongOperation,
)
from app.modules.challenges.schemas import Operation
from app.modules.credentials.schemas import StoredCredential


def blob(credential_id):
    return StoredCredential(id=credential_id, raw_id=credential_id, attestation_object="o2NmbXQ")


def test_end_to_end_registration(registration, credentials, alice):
    options, issued = registration.begin_registration(alice.id, "example.com")

    assert alice.id == 1
    assert options.exclude_credentials == []
    assert options.challenge == issued.challenge
    assert options.rp.id == "example.com"
    assert options.rp.name == "Biometric Auth App"

    stored_id = registration.complete_registration(
        alice.id, issued.binding, issued.challenge, "webauthn.create", "cred-1", blob("cred-1")
    )

    assert stored_id == "cred-1"
    [record] = credentials.list_by_identity(1)
    assert (record.id, record.user_id) == ("cred-1", 1)


def test_options_shape(registration, alice):
    options, _ = registration.begin_registration(alice.id, "example.com")
    payload = options.model_dump(by_alias=True)

    assert payload["user"] == {"id": "0" * 63 + "1", "name": "a@x.com", "displayName": "Alice"}
    assert [p["alg"] for p in payload["pubKeyCredParams"]] == [-7, -257]
    assert payload["authenticatorSelection"] == {
        "authenticatorAttachment": "platform",
        "userVerification": "required",
        "requireResidentKey": False,
    }
    assert payload["attestation"] == "none"
    assert payload["timeout"] == 60000


def test_existing_credentials_are_excluded(registration, alice):
    _, issued = registration.begin_registration(alice.id, "example.com")
    registration.complete_registration(
        alice.id, issued.binding, issued.challenge, "webauthn.create", "cred-1", blob("cred-1")
    )

    options, _ = registration.begin_registration(alice.id, "example.com")

    assert [c.id for c in options.exclude_credentials] == ["cred-1"]


def test_unknown_identity(registration, supabase):
    with pytest.raises(IdentityNotFound):
        registration.begin_registration(42, "example.com")
    assert supabase.rows("webauthn_challenges") == []


def test_wrong_declared_operation(registration, credentials, alice):
    _, issued = registration.begin_registration(alice.id, "example.com")

    with pytest.raises(WrongOperation):
        registration.complete_registration(
            alice.id, issued.binding, issued.challenge, "webauthn.get", "cred-1", blob("cred-1")
        )
    assert credentials.list_by_identity(alice.id) == []

    # the challenge went with the failed attempt
    with pytest.raises(UnknownChallenge):
        registration.complete_registration(
            alice.id, issued.binding, issued.challenge, "webauthn.create", "cred-1", blob("cred-1")
        )


def test_wrong_challenge(registration, credentials, alice, challenges):
    _, issued = registration.begin_registration(alice.id, "example.com")
    other = challenges.issue(alice.id, Operation.CREATE)

    with pytest.raises(ChallengeInvalid):
        registration.complete_registration(
            alice.id, issued.binding, other.challenge, "webauthn.create", "cred-1", blob("cred-1")
        )
    assert credentials.list_by_identity(alice.id) == []


def test_get_challenge_cannot_complete_registration(registration, challenges, alice):
    issued = challenges.issue(alice.id, Operation.GET)

    with pytest.raises(OperationMismatch):
        registration.complete_registration(
            alice.id, issued.binding, issued.challenge, "webauthn.create", "cred-1", blob("cred-1")
        )


def test_duplicate_credential(registration, users, alice):
    bob = users.create_user("Bob", "bob@x.com", "hunter22")
    _, issued = registration.begin_registration(alice.id, "example.com")
    registration.complete_registration(
        alice.id, issued.binding, issued.challenge, "webauthn.create", "cred-1", blob("cred-1")
    )

    _, issued = registration.begin_registration(bob.id, "example.com")
    with pytest.raises(DuplicateCredential):
        registration.complete_registration(
            bob.id, issued.binding, issued.challenge, "webauthn.create", "cred-1", blob("cred-1")
        )
    assert registration.credentials.find_by_id("cred-1").user_id == alice.id
