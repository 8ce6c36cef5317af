"""
Error taxonomy for the identification pipeline.

Only ConfigError, QuotaExceededError, ValidationError and UpstreamError are
rendered to callers as explicit failures. HealthUpstreamError and
PersistenceError are absorbed by the composer; UnexpectedError never carries
internal details.
"""
from typing import Optional


class PlantScanError(Exception):
    status_code = 500
    message = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ConfigError(PlantScanError):
    status_code = 503


class QuotaExceededError(PlantScanError):
    status_code = 429

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            f"Daily limit reached ({limit} scans per day). Please try again tomorrow."
        )


class ValidationError(PlantScanError):
    status_code = 400

    def __init__(self, message: str, status_code: int = 400):
        self.status_code = status_code
        super().__init__(message)


class UpstreamError(PlantScanError):
    status_code = 502

    def __init__(self, status: int, message: Optional[str] = None, provider: str = "Plant identification service"):
        self.status = status
        self.provider = provider
        self.detail = message or ""
        if status:
            super().__init__(f"{provider} returned an error ({status}).")
        else:
            super().__init__(f"{provider} could not be reached.")


class HealthUpstreamError(UpstreamError):
    def __init__(self, status: int, message: Optional[str] = None, provider: str = "Plant health service"):
        super().__init__(status, message, provider=provider)


class PersistenceError(PlantScanError):
    pass


class UnexpectedError(PlantScanError):
    pass
