"""
Models package for API request/response validation.

This package contains Pydantic models used throughout the application
for validating API requests and responses.
"""

from .schemas import (
    ExtractRequest,
    SubtitleResult,
    ProcessingStats,
    ExtractResponse,
    CoinEstimateRequest,
    CoinEstimateResponse,
    CoinBalanceResponse,
    DeductCoinsRequest,
    DeductCoinsResponse,
    TransactionCreateRequest,
    TransactionRecord,
    MonthlyCreditResult,
    MonthlyCreditResponse,
    PlaylistInfoResponse,
    ProcessingStatusResponse,
    HealthResponse,
)

__all__ = [
    "ExtractRequest",
    "SubtitleResult",
    "ProcessingStats",
    "ExtractResponse",
    "CoinEstimateRequest",
    "CoinEstimateResponse",
    "CoinBalanceResponse",
    "DeductCoinsRequest",
    "DeductCoinsResponse",
    "TransactionCreateRequest",
    "TransactionRecord",
    "MonthlyCreditResult",
    "MonthlyCreditResponse",
    "PlaylistInfoResponse",
    "ProcessingStatusResponse",
    "HealthResponse",
]
