"""Passage - user accounts persisted through the identity storage context.

The application binds its own user entity (``ApplicationUser``) to the
generic identity storage in ``passage_identity`` and obtains connection
options from ``passage_config``.
"""

from passage.data import ApplicationDbContext, ApplicationUser

__all__ = ["ApplicationDbContext", "ApplicationUser"]
