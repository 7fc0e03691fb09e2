import traceback
from datetime import datetime
from enum import Enum
from typing import Any

# =============================================================================
# Failure Kinds
# =============================================================================


class FailureKind(str, Enum):
    """Classification of every failure the engine reports to its callers."""

    ACCOUNT_NOT_FOUND = "AccountNotFound"
    INVARIANT_VIOLATION = "InvariantViolation"
    CATEGORY_FORBIDDEN = "CategoryForbidden"
    AUTH_UNAVAILABLE = "AuthUnavailable"
    AUTH_REJECTED = "AuthRejected"
    INSUFFICIENT_FUNDS_ALL_ACCOUNTS = "InsufficientFundsAllAccounts"
    CAPTCHA_TIMEOUT = "CaptchaTimeout"
    CAPTCHA_PROVIDER_ERROR = "CaptchaProviderError"
    PROVIDER_ERROR = "ProviderError"
    UNKNOWN_ITEM = "UnknownItem"
    INSUFFICIENT_BALANCE = "InsufficientBalance"


# =============================================================================
# Base Exception
# =============================================================================


class WolfgiftException(Exception):
    """
    Base exception for all wolfgift errors.

    Carries:
    - a stable error code
    - structured details
    - suggestions for the operator
    - the original cause, if any
    """

    error_code: str = "WG_000"
    error_category: str = "general"
    severity: str = "error"  # debug, info, warning, error, critical

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        suggestions: list[str] | None = None,
        cause: Exception | None = None,
        recoverable: bool = True,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.suggestions = suggestions or []
        self.cause = cause
        self.recoverable = recoverable
        self.context = context or {}
        self.timestamp = datetime.now()
        self.traceback = traceback.format_exc() if cause else None

    def to_dict(self) -> dict[str, Any]:
        """Serialize the exception for logging and API responses."""
        return {
            "error_code": self.error_code,
            "error_category": self.error_category,
            "severity": self.severity,
            "message": self.message,
            "details": self.details,
            "suggestions": self.suggestions,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "traceback": self.traceback,
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.suggestions:
            parts.append(f"Suggestions: {', '.join(self.suggestions)}")
        return " | ".join(parts)


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(WolfgiftException):
    """Invalid engine configuration."""

    error_code = "WG_CFG_001"
    error_category = "configuration"
    severity = "error"


class InvalidConfigValueError(ConfigurationError):
    """A configuration value has the wrong type or range."""

    error_code = "WG_CFG_002"

    def __init__(self, key: str, value: Any, expected_type: str, **kwargs: Any) -> None:
        super().__init__(
            message=f"Invalid configuration value for '{key}'",
            details={"key": key, "value": str(value), "expected_type": expected_type},
            suggestions=[f"Provide a valid {expected_type} value for '{key}'"],
            **kwargs,
        )


class MissingConfigError(ConfigurationError):
    """One or more required settings are missing."""

    error_code = "WG_CFG_003"

    def __init__(self, keys: list[str], **kwargs: Any) -> None:
        super().__init__(
            message=f"Missing required configuration: {', '.join(keys)}",
            details={"missing_keys": keys},
            suggestions=[f"Set {key} in the environment or the .env file" for key in keys],
            recoverable=False,
            **kwargs,
        )


class ConfigLoadError(ConfigurationError):
    """A configuration file could not be read."""

    error_code = "WG_CFG_004"

    def __init__(self, config_path: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            message=f"Failed to load configuration from '{config_path}'",
            details={"path": config_path, "reason": reason},
            suggestions=[
                "Check if the file exists",
                "Verify the file format (YAML/JSON)",
            ],
            **kwargs,
        )


# =============================================================================
# Account Exceptions
# =============================================================================


class AccountError(WolfgiftException):
    """Account pool error."""

    error_code = "WG_ACC_001"
    error_category = "account"
    kind: FailureKind = FailureKind.INVARIANT_VIOLATION


class AccountNotFoundError(AccountError):
    """The named account is not in the pool."""

    error_code = "WG_ACC_002"
    kind = FailureKind.ACCOUNT_NOT_FOUND

    def __init__(self, name: str, available: list[str] | None = None, **kwargs: Any) -> None:
        available = available or []
        super().__init__(
            message=f"Account '{name}' not found",
            details={"account": name, "available": available},
            suggestions=[f"Use one of: {', '.join(available)}"] if available else [],
            **kwargs,
        )


class AccountExistsError(AccountError):
    """An account with this name already exists."""

    error_code = "WG_ACC_003"

    def __init__(self, name: str, **kwargs: Any) -> None:
        super().__init__(
            message=f"Account '{name}' already exists",
            details={"account": name},
            suggestions=["Pick a different account name"],
            **kwargs,
        )


class InvariantViolationError(AccountError):
    """The requested change would break a pool invariant."""

    error_code = "WG_ACC_004"
    kind = FailureKind.INVARIANT_VIOLATION

    def __init__(self, message: str, account: str = "", **kwargs: Any) -> None:
        super().__init__(
            message=message,
            details={"account": account} if account else {},
            recoverable=False,
            **kwargs,
        )


# =============================================================================
# Provider Exceptions
# =============================================================================


class ProviderError(WolfgiftException):
    """Remote provider error."""

    error_code = "WG_PRV_001"
    error_category = "provider"
    severity = "error"


class ProviderNotAvailableError(ProviderError):
    """The provider could not be reached."""

    error_code = "WG_PRV_003"

    def __init__(self, provider_name: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            message=f"Provider '{provider_name}' is not available: {reason}",
            details={"provider": provider_name, "reason": reason},
            suggestions=["Try again later", "Check your internet connection"],
            **kwargs,
        )


class ProviderResponseError(ProviderError):
    """The provider answered with a non-success status."""

    error_code = "WG_PRV_008"

    def __init__(
        self,
        provider_name: str,
        status_code: int,
        response_body: str,
        payload: Any = None,
        **kwargs: Any,
    ) -> None:
        self.status_code = status_code
        self.payload = payload if isinstance(payload, dict) else {}
        self.provider_message = str(self.payload.get("message") or "")
        super().__init__(
            message=self.provider_message
            or f"Provider '{provider_name}' returned error {status_code}",
            details={
                "provider": provider_name,
                "status_code": status_code,
                "response": response_body[:500],
            },
            **kwargs,
        )

    @property
    def is_auth_failure(self) -> bool:
        return self.status_code in (401, 403)

    @property
    def provider_code(self) -> Any:
        return self.payload.get("code", self.payload.get("errorCode"))


# =============================================================================
# Purchase Exceptions
# =============================================================================


class PurchaseError(WolfgiftException):
    """
    Structured purchase failure.

    The only error the orchestrator lets escape; presentation layers switch on
    ``kind`` and show ``message`` without looking at transport details.
    """

    error_code = "WG_PUR_001"
    error_category = "purchase"

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        account: str = "",
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        self.kind = kind
        self.account = account
        self.status_code = status_code
        details = kwargs.pop("details", {}) or {}
        details.update({"kind": kind.value, "account": account})
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message=message, details=details, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["kind"] = self.kind.value
        return data


# =============================================================================
# Catalog Exceptions
# =============================================================================


class CatalogError(WolfgiftException):
    """Catalog data could not be read."""

    error_code = "WG_CAT_001"
    error_category = "catalog"


# =============================================================================
# Utility Functions
# =============================================================================


def is_recoverable(error: Exception) -> bool:
    """Whether the caller may reasonably retry after this error."""
    if isinstance(error, WolfgiftException):
        return error.recoverable
    return True


__all__ = [
    "FailureKind",
    "WolfgiftException",
    "ConfigurationError",
    "InvalidConfigValueError",
    "MissingConfigError",
    "ConfigLoadError",
    "AccountError",
    "AccountNotFoundError",
    "AccountExistsError",
    "InvariantViolationError",
    "ProviderError",
    "ProviderNotAvailableError",
    "ProviderResponseError",
    "PurchaseError",
    "CatalogError",
    "is_recoverable",
]
