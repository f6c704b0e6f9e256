"""
Exception Classes - Strongly typed exception hierarchy.

Services raise these; route handlers translate them to HTTP responses.
"""

from uuid import UUID


class SalesBoardError(Exception):
    """Base exception for all SalesBoard errors."""

    pass


class AuthenticationError(SalesBoardError):
    """Raised when authentication fails (missing, garbled or expired credential)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Authentication failed: {message}")


class AuthorizationError(SalesBoardError):
    """Raised when a valid identity lacks the role or ownership for an action."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Authorization failed: {message}")


class ValidationFailedError(SalesBoardError):
    """Raised when submitted fields are missing or malformed.

    All violations are collected; ``str(exc)`` joins them into one message.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__(" ".join(self.errors))


class BrandNotFoundError(SalesBoardError):
    """Raised when a referenced brand doesn't exist."""

    def __init__(self, brand_id: UUID | str) -> None:
        self.brand_id = brand_id
        super().__init__(f'Brand with id "{brand_id}" not found.')


class SaleNotFoundError(SalesBoardError):
    """Raised when a sale doesn't exist or isn't visible to the caller."""

    def __init__(self, sale_id: UUID | str) -> None:
        self.sale_id = sale_id
        super().__init__(f'Sale with id "{sale_id}" not found.')


class TokenNotFoundError(SalesBoardError):
    """Raised when an API token doesn't exist, isn't owned by the caller or is revoked."""

    def __init__(self, token_id: UUID | str) -> None:
        self.token_id = token_id
        super().__init__("Token not found or already revoked.")


class UserNotFoundError(SalesBoardError):
    """Raised when a user doesn't exist."""

    def __init__(self, user_id: UUID | str) -> None:
        self.user_id = user_id
        super().__init__(f'User with id "{user_id}" not found.')


class ActiveSaleLimitError(SalesBoardError):
    """Raised when a brand already holds the maximum number of non-expired sales."""

    def __init__(self, brand_id: UUID, limit: int) -> None:
        self.brand_id = brand_id
        self.limit = limit
        super().__init__(
            f"This brand already has {limit} active sales. Remove or let one expire first."
        )


class DuplicateBrandError(SalesBoardError):
    """Raised when a brand name is already taken (case-insensitive)."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'A brand named "{name}" already exists.')


class DuplicateUserError(SalesBoardError):
    """Raised when registering an email that already exists."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"An account for {email} already exists.")

