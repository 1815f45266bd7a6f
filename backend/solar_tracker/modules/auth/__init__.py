# Authentication module

from solar_tracker.modules.auth.identity import UserIdentity

__all__ = ["UserIdentity"]
