"""Error taxonomy shared by services, adapters and the HTTP layer."""


class RecipeSnapError(Exception):
    """Base class for all application errors."""


class TransportError(RecipeSnapError):
    """A network call or external service failed; retrying is up to the caller."""


class AuthRequired(RecipeSnapError):
    """The action needs a signed-in user."""


class LoginRequired(AuthRequired):
    """Free uses are exhausted and nobody is signed in."""

    def __init__(self, message: str = "Login required") -> None:
        super().__init__(message)


class NoCreditsRemaining(RecipeSnapError):
    """The signed-in user has no usable credits left."""

    def __init__(self, message: str = "No credits remaining") -> None:
        super().__init__(message)


class MalformedResponse(RecipeSnapError):
    """The generative service returned content that could not be used."""


class SyncError(RecipeSnapError):
    """The cloud copy of a collection could not be read."""


class CapabilityUnavailable(RecipeSnapError):
    """An optional dependency (remote store, ledger, storage) is not configured."""


class CheckoutRejected(RecipeSnapError):
    """A checkout or billing-portal request is not allowed for this user."""
