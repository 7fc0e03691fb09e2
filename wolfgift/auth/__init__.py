"""
wolfgift Auth Module

- TokenClock: identity token freshness
- CaptchaSolver: challenge solving service client
- IdentityClient: sign-in and clearance verification
- CredentialManager / RefreshScheduler: keeping tokens fresh
"""

from .captcha import CaptchaSolver, SolveResult
from .credentials import CredentialManager, RefreshScheduler
from .identity import AuthResult, ClearanceResult, IdentityClient
from .token_clock import decode_claims, is_expired, seconds_remaining

__all__ = [
    "CaptchaSolver",
    "SolveResult",
    "IdentityClient",
    "AuthResult",
    "ClearanceResult",
    "CredentialManager",
    "RefreshScheduler",
    "decode_claims",
    "is_expired",
    "seconds_remaining",
]
