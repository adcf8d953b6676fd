"""Authentication module.

This module provides:
- Token verification (Supabase JWKS verifier)
- Session-resolving middleware for FastAPI
- The identity gate used by every mutating service

Note: Test-only verifiers are in tests/support/jwt_verifier.py
"""

from songbird.auth.identity import Identity, SessionContext, verify_identity
from songbird.auth.middleware import AuthMiddleware, Viewer, get_session, get_viewer
from songbird.auth.verifier import SupabaseJwksVerifier, TokenVerifier

__all__ = [
    "AuthMiddleware",
    "Identity",
    "SessionContext",
    "SupabaseJwksVerifier",
    "TokenVerifier",
    "Viewer",
    "get_session",
    "get_viewer",
    "verify_identity",
]
