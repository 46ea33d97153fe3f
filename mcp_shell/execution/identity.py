"""
Process identity switching.

Running a child under another user is a POSIX capability. The executor asks
an ``IdentitySwitcher`` for the process-creation options that make the child
assume a user's identity; platforms without the primitive get a switcher
that always refuses.
"""

import logging
import os
from typing import Any, Dict, Protocol

logger = logging.getLogger(__name__)


class IdentityError(LookupError):
    """Raised when a user identity cannot be assumed."""


class IdentitySwitcher(Protocol):
    def spawn_options(self, user: str) -> Dict[str, Any]:
        """Return process-creation keyword arguments that run as *user*."""
        ...


class PosixIdentitySwitcher:
    """Resolves users through the password database."""

    def spawn_options(self, user: str) -> Dict[str, Any]:
        import pwd

        try:
            entry = pwd.getpwnam(user)
        except KeyError as e:
            raise IdentityError(f"unknown user: {user}") from e

        logger.debug(f"Resolved user '{user}' to uid={entry.pw_uid} gid={entry.pw_gid}")
        return {"user": entry.pw_uid, "group": entry.pw_gid}


class NullIdentitySwitcher:
    """Used where processes cannot be started under another identity."""

    def spawn_options(self, user: str) -> Dict[str, Any]:
        raise IdentityError(
            f"process identity switching is not supported on this platform (user: {user})"
        )


def default_identity_switcher() -> IdentitySwitcher:
    """Pick the identity switcher the current platform supports."""
    if os.name == "posix" and hasattr(os, "setuid"):
        return PosixIdentitySwitcher()
    return NullIdentitySwitcher()
