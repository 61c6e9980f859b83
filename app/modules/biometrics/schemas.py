"""
Wire shapes for the biometric ceremonies.

Options bundles serialise with WebAuthn's camelCase names. Credentials
returned by the browser are split by kind (attestation for registration,
assertion for login); clientDataJSON is decoded and parsed once, when the
request body is validated.
"""
from typing import List, Literal, Optional

from fido2.webauthn import CollectedClientData
from pydantic import BaseModel, ConfigDict, EmailStr, Field, PrivateAttr, model_validator
from pydantic.alias_generators import to_camel

from app.core.encoding import canonical_b64decode
from app.modules.credentials.schemas import StoredCredential


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Options sent to navigator.credentials.create() / .get()

class RelyingParty(CamelModel):
    name: str
    id: str


class UserEntity(CamelModel):
    id: str
    name: str
    display_name: str


class CredentialParameter(CamelModel):
    type: Literal["public-key"] = "public-key"
    alg: int


class CredentialDescriptor(CamelModel):
    id: str
    type: Literal["public-key"] = "public-key"
    transports: Optional[List[str]] = None


class AuthenticatorSelection(CamelModel):
    authenticator_attachment: str = "platform"
    user_verification: str = "required"
    require_resident_key: bool = False


class CreationOptions(CamelModel):
    challenge: str
    rp: RelyingParty
    user: UserEntity
    pub_key_cred_params: List[CredentialParameter]
    authenticator_selection: AuthenticatorSelection = Field(default_factory=AuthenticatorSelection)
    timeout: int
    attestation: str = "none"
    exclude_credentials: List[CredentialDescriptor] = Field(default_factory=list)


class RequestOptions(CamelModel):
    challenge: str
    rp_id: str
    user_verification: str = "required"
    timeout: int
    allow_credentials: List[CredentialDescriptor]


# Credentials returned by the browser

class _ClientCredential(CamelModel):
    id: str
    raw_id: str
    type: Literal["public-key"] = "public-key"

    _client_data: CollectedClientData = PrivateAttr()

    @model_validator(mode="after")
    def _parse_client_data(self):
        try:
            raw = canonical_b64decode(self.response.client_data_json)
            self._client_data = CollectedClientData(raw)
        except (ValueError, KeyError, TypeError) as e:
            raise ValueError("clientDataJSON is not valid client data") from e
        return self

    @property
    def client_data(self) -> CollectedClientData:
        return self._client_data

    @property
    def declared_type(self) -> str:
        return self._client_data.type

    @property
    def presented_challenge(self) -> bytes:
        return self._client_data.challenge


class AttestationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client_data_json: str = Field(alias="clientDataJSON")
    attestation_object: str = Field(alias="attestationObject")
    transports: Optional[List[str]] = None


class AssertionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client_data_json: str = Field(alias="clientDataJSON")
    authenticator_data: str = Field(alias="authenticatorData")
    signature: str
    user_handle: Optional[str] = Field(default=None, alias="userHandle")


class RegistrationCredential(_ClientCredential):
    response: AttestationResponse

    def to_stored(self) -> StoredCredential:
        return StoredCredential(
            id=self.id,
            raw_id=self.raw_id,
            type=self.type,
            transports=self.response.transports or ["internal"],
            attestation_object=self.response.attestation_object,
            client_data_json=self.response.client_data_json,
        )


class AssertionCredential(_ClientCredential):
    response: AssertionResponse


# Request/response bodies

class EmailRequest(BaseModel):
    email: EmailStr


class BiometricStatusResponse(BaseModel):
    has_biometrics: bool
    user_id: int


class RegistrationOptionsResponse(BaseModel):
    options: CreationOptions
    user_id: int


class RegistrationVerifyRequest(BaseModel):
    credential: RegistrationCredential
    user_id: int
    email: EmailStr


class RegistrationVerifyResponse(BaseModel):
    success: bool = True
    message: str = "Credential stored successfully"
    credential_id: str


class AssertionOptionsResponse(BaseModel):
    options: RequestOptions


class AssertionVerifyRequest(BaseModel):
    credential: AssertionCredential
    email: EmailStr


class VerifiedIdentity(BaseModel):
    id: int
    name: str
    email: str


class BiometricLoginResponse(BaseModel):
    success: bool = True
    message: str = "Biometric verification successful"
    user_id: int
    name: str
    email: str
    access_token: str
    token_type: str = "bearer"
    expires_in: int
