"""Identity storage exceptions.

These exceptions are raised by the passage_identity package. Errors coming
from the database driver or SQLAlchemy itself are never wrapped and reach
the caller unchanged.
"""


class IdentityError(Exception):
    """Base exception for all identity storage errors."""

    def __init__(self, message: str = "Identity storage error"):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(IdentityError):
    """Raised when context options are missing, malformed or unusable."""

    def __init__(self, message: str = "Invalid database context configuration"):
        super().__init__(message)


class UseAfterDisposeError(IdentityError):
    """Raised when a disposed database context is used again."""

    def __init__(self, context_name: str = "IdentityDbContext"):
        self.context_name = context_name
        super().__init__(f"Cannot access a disposed context: {context_name}")


class DuplicateUserNameError(IdentityError):
    """Raised when a user name is already taken."""

    def __init__(self, user_name: str):
        self.user_name = user_name
        super().__init__(f"User name already taken: {user_name}")


class DuplicateRoleNameError(IdentityError):
    """Raised when a role name is already taken."""

    def __init__(self, role_name: str):
        self.role_name = role_name
        super().__init__(f"Role name already taken: {role_name}")


class RoleNotFoundError(IdentityError):
    """Raised when a role referenced by name does not exist."""

    def __init__(self, role_name: str):
        self.role_name = role_name
        super().__init__(f"Role not found: {role_name}")


class DuplicateLoginError(IdentityError):
    """Raised when an external login is already linked to a user."""

    def __init__(self, login_provider: str, provider_key: str):
        self.login_provider = login_provider
        self.provider_key = provider_key
        super().__init__(
            f"External login already linked: {login_provider}/{provider_key}",
        )
