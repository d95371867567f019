"""Error types shared across services and routes."""


class UnauthenticatedError(Exception):
    """401-level: a protected action was attempted without an identity."""


class NotFoundError(LookupError):
    """404-level: referral code or route target absent."""


class ProviderError(Exception):
    """
    500-level: an external collaborator (billing provider, identity
    provider, database) failed or timed out.

    The message is for operators. Routes never echo it to the client.
    Retrying is the caller's decision; nothing in the core retries.
    """
