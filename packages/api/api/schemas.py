"""Pydantic response models for the trial API."""

from pydantic import BaseModel


class TrialChatResponse(BaseModel):
    """Successful reply from the trial chat endpoint."""

    message: str
    remaining: int
    resetTime: int


class TrialLimitError(BaseModel):
    """Body returned with 429 once the trial quota is spent."""

    error: str
    message: str
    remaining: int
    resetTime: int


class UpgradeRequiredError(BaseModel):
    """Body returned with 503 when the server has no upstream credential."""

    error: str
    message: str
    needsUpgrade: bool = True


class ErrorBody(BaseModel):
    """Generic ``{"error": ...}`` failure body."""

    error: str


class TrialQuotaStatus(BaseModel):
    """Current trial quota for the calling client."""

    limit: int
    remaining: int
    resetTime: int
