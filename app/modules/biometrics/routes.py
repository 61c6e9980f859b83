from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from app.config import Settings
from app.core.dependencies import (
    get_auth_service, get_challenge_cookie, get_challenge_manager, get_credential_store,
    get_current_user, get_settings, get_user_service, resolve_rp_id,
)
from app.core.errors import CredentialNotFound, IdentityNotFound
from app.modules.auth.service import AuthService, BIOMETRIC_AMR
from app.modules.biometrics.assertion import AssertionFlow
from app.modules.biometrics.registration import RegistrationFlow
from app.modules.biometrics.schemas import (
    AssertionOptionsResponse, AssertionVerifyRequest, BiometricLoginResponse, BiometricStatusResponse,
    EmailRequest, RegistrationOptionsResponse, RegistrationVerifyRequest, RegistrationVerifyResponse,
)
from app.modules.challenges.service import ChallengeManager
from app.modules.challenges.transport import ChallengeCookie
from app.modules.credentials.schemas import CredentialSummary
from app.modules.credentials.service import CredentialStore
from app.modules.users.service import UserService, normalize_email
from typing import Dict, List, Optional, Type, TypeVar

router = APIRouter(prefix="/biometrics", tags=["biometrics"])

VerifyBody = TypeVar("VerifyBody", bound=BaseModel)


def get_registration_flow(
    users: UserService = Depends(get_user_service),
    credentials: CredentialStore = Depends(get_credential_store),
    challenges: ChallengeManager = Depends(get_challenge_manager),
    settings: Settings = Depends(get_settings)
) -> RegistrationFlow:
    return RegistrationFlow(users, credentials, challenges, settings)


def get_assertion_flow(
    users: UserService = Depends(get_user_service),
    credentials: CredentialStore = Depends(get_credential_store),
    challenges: ChallengeManager = Depends(get_challenge_manager),
    settings: Settings = Depends(get_settings)
) -> AssertionFlow:
    return AssertionFlow(users, credentials, challenges, settings)


def take_binding(request: Request, response: Response, cookie: ChallengeCookie):
    """Read the challenge binding and clear it from the client whatever happens next."""
    binding = cookie.read(request)
    cookie.clear(response)
    # Lets the exception handlers clear the cookie on rejected requests too
    request.state.challenge_cookie = cookie
    return binding


async def read_verify_body(
    request: Request,
    model: Type[VerifyBody],
    binding: Optional[str],
    challenges: ChallengeManager
) -> VerifyBody:
    """
    Validate a verify request body once its binding has been taken.

    A body that fails validation discards the binding before the 422 goes out.
    """
    try:
        return model.model_validate_json(await request.body())
    except ValidationError as e:
        challenges.discard(binding)
        raise RequestValidationError(
            [{**error, "loc": ("body", *error["loc"])} for error in e.errors()]
        ) from e


@router.post("/check", response_model=BiometricStatusResponse)
async def check_biometrics(
    body: EmailRequest,
    users: UserService = Depends(get_user_service),
    credentials: CredentialStore = Depends(get_credential_store)
):
    """Report whether a user has any registered biometric credential"""
    user = users.get_user_by_email(body.email)
    return BiometricStatusResponse(
        has_biometrics=credentials.count_for_identity(user.id) > 0,
        user_id=user.id
    )


@router.post("/register/options", response_model=RegistrationOptionsResponse, response_model_exclude_none=True)
async def registration_options(
    body: EmailRequest,
    request: Request,
    response: Response,
    users: UserService = Depends(get_user_service),
    flow: RegistrationFlow = Depends(get_registration_flow),
    cookie: ChallengeCookie = Depends(get_challenge_cookie),
    settings: Settings = Depends(get_settings)
):
    """Issue credential creation options and bind the challenge to this client"""
    user = users.get_user_by_email(body.email)
    options, issued = flow.begin_registration(user.id, resolve_rp_id(request, settings))
    cookie.store(response, issued.binding)
    return RegistrationOptionsResponse(options=options, user_id=user.id)


@router.post("/register/verify", response_model=RegistrationVerifyResponse)
async def verify_registration(
    request: Request,
    response: Response,
    users: UserService = Depends(get_user_service),
    flow: RegistrationFlow = Depends(get_registration_flow),
    cookie: ChallengeCookie = Depends(get_challenge_cookie)
):
    """Verify the attestation response against the bound challenge and store the credential"""
    binding = take_binding(request, response, cookie)
    body = await read_verify_body(request, RegistrationVerifyRequest, binding, flow.challenges)
    user = users.find_user_by_email(body.email)
    if user is None or user.id != body.user_id:
        flow.challenges.discard(binding)
        raise IdentityNotFound(f"User {body.user_id} does not match {normalize_email(body.email)}")

    credential = body.credential
    credential_id = flow.complete_registration(
        user.id,
        binding,
        credential.presented_challenge,
        credential.declared_type,
        credential.id,
        credential.to_stored(),
    )
    return RegistrationVerifyResponse(credential_id=credential_id)


@router.post("/authenticate/options", response_model=AssertionOptionsResponse, response_model_exclude_none=True)
async def assertion_options(
    body: EmailRequest,
    request: Request,
    response: Response,
    users: UserService = Depends(get_user_service),
    flow: AssertionFlow = Depends(get_assertion_flow),
    cookie: ChallengeCookie = Depends(get_challenge_cookie),
    settings: Settings = Depends(get_settings)
):
    """Issue credential request options and bind the challenge to this client"""
    user = users.get_user_by_email(body.email)
    options, issued = flow.begin_assertion(user.id, resolve_rp_id(request, settings))
    cookie.store(response, issued.binding)
    return AssertionOptionsResponse(options=options)


@router.post("/authenticate/verify", response_model=BiometricLoginResponse)
async def verify_assertion(
    request: Request,
    response: Response,
    users: UserService = Depends(get_user_service),
    flow: AssertionFlow = Depends(get_assertion_flow),
    cookie: ChallengeCookie = Depends(get_challenge_cookie),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Verify the assertion response and hand the verified identity to session issuance"""
    binding = take_binding(request, response, cookie)
    body = await read_verify_body(request, AssertionVerifyRequest, binding, flow.challenges)
    user = users.find_user_by_email(body.email)
    if user is None:
        flow.challenges.discard(binding)
        raise IdentityNotFound(f"No user with email {normalize_email(body.email)}")

    credential = body.credential
    verified = flow.complete_assertion(
        user.id,
        binding,
        credential.presented_challenge,
        credential.declared_type,
        credential.id,
    )
    session = auth_service.issue_session(verified, amr=BIOMETRIC_AMR)
    return BiometricLoginResponse(
        user_id=verified.id,
        name=verified.name,
        email=verified.email,
        access_token=session.access_token,
        token_type=session.token_type,
        expires_in=session.expires_in,
    )


@router.get("/credentials", response_model=List[CredentialSummary])
async def list_credentials(
    current_user: Dict = Depends(get_current_user),
    credentials: CredentialStore = Depends(get_credential_store)
):
    """List the caller's registered credentials"""
    return [
        CredentialSummary(
            id=record.id,
            type=record.credential.type,
            transports=record.credential.transports,
            created_at=record.created_at,
        )
        for record in credentials.list_by_identity(current_user["id"])
    ]


@router.delete("/credentials/{credential_id}", status_code=204)
async def delete_credential(
    credential_id: str,
    current_user: Dict = Depends(get_current_user),
    credentials: CredentialStore = Depends(get_credential_store)
):
    """Remove one of the caller's credentials; absent ids are ignored"""
    owned = {record.id for record in credentials.list_by_identity(current_user["id"])}
    if credential_id not in owned:
        try:
            credentials.find_by_id(credential_id)
        except CredentialNotFound:
            return None
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Credential belongs to another user")
    credentials.delete(credential_id)
    return None
