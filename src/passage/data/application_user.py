"""The application's user entity."""

from passage_identity import IdentityUserModel


class ApplicationUser(IdentityUserModel):
    """User account of this application.

    Maps the ``users`` table with the full identity column set. Add
    application-specific profile columns here.
    """
