"""Error taxonomy shared by the engine, the adapters and the HTTP layer."""


class WalletPassError(Exception):
    """Base class for every error raised by walletpass."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(WalletPassError):
    """Input failed schema validation or violates a precondition."""


class NotFoundError(WalletPassError):
    """A referenced pass, business, customer or profile does not exist."""


class InvalidTransitionError(WalletPassError):
    """A status outside the profile's flow was requested."""


class InvalidArgumentError(WalletPassError):
    """The operation does not apply to the referenced record."""


class RenderError(WalletPassError):
    """An artifact could not be produced (missing credentials, signing failure)."""
