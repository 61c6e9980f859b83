"""
Domain errors for the authentication flows.

Every error carries the HTTP status and the message a client is allowed to
see. The reason a verification failed is only logged; all challenge and
credential rejections share one generic public message.
"""

AUTH_FAILED_MESSAGE = "Biometric authentication failed"


class AppError(Exception):
    status_code = 400
    public_message = "Request failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.public_message)


class ValidationError(AppError):
    status_code = 400
    public_message = "Invalid request"

    def __init__(self, message: str = None):
        super().__init__(message)
        # Missing/malformed fields are safe to report back
        if message:
            self.public_message = message


class NotFound(AppError):
    status_code = 404
    public_message = "Not found"


class IdentityNotFound(NotFound):
    public_message = "User not found"


class CredentialNotFound(NotFound):
    status_code = 401
    public_message = AUTH_FAILED_MESSAGE


class NoCredentials(AppError):
    status_code = 400
    public_message = "No biometric credentials found for this user"


class ChallengeInvalid(AppError):
    status_code = 401
    public_message = AUTH_FAILED_MESSAGE


class UnknownChallenge(ChallengeInvalid):
    pass


class Expired(ChallengeInvalid):
    pass


class ChallengeMismatch(ChallengeInvalid):
    pass


class OperationMismatch(ChallengeInvalid):
    pass


class IdentityMismatch(ChallengeInvalid):
    pass


class WrongOperation(AppError):
    status_code = 401
    public_message = AUTH_FAILED_MESSAGE


class DuplicateCredential(AppError):
    status_code = 409
    public_message = "Credential already registered"


class UserAlreadyExists(AppError):
    status_code = 409
    public_message = "User already exists"


class InvalidCredentials(AppError):
    status_code = 401
    public_message = "Invalid email or password"


class StorageFailure(AppError):
    status_code = 500
    public_message = "Internal server error"


class InvalidToken(AppError):
    status_code = 401
    public_message = "Invalid or expired token"
