"""Auth module — caller identity and bearer-token dependencies."""

from backend.auth.identity import Caller, ensure_manager, ensure_self_or_manager

__all__ = ["Caller", "ensure_manager", "ensure_self_or_manager"]
