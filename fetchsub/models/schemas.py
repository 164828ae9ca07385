"""
Pydantic models for request/response validation.

This module contains all Pydantic BaseModel schemas used for API request
and response validation.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any, Literal


class ExtractRequest(BaseModel):
    """Subtitle extraction request: one URL (video, playlist, channel) or CSV text of URLs."""
    input_type: Literal["url", "file"] = Field("url", description="'url' for a single URL, 'file' for CSV content")
    url: Optional[str] = Field(None, description="YouTube video, playlist or channel URL")
    csv_content: Optional[str] = Field(None, description="CSV text containing YouTube URLs")
    formats: List[str] = Field(["SRT"], description="Output formats, e.g. SRT, VTT, TXT, JSON", min_length=1)
    language: str = Field("en", description="Subtitle language code ('auto' for English/auto-detect)")
    coin_cost_estimate: Optional[float] = Field(None, description="Client-side estimate; the server recomputes it", ge=0)


class SubtitleResult(BaseModel):
    """One formatted subtitle file, or an error entry for a video that failed."""
    id: str
    video_title: str
    language: str
    format: str
    file_size: int = Field(0, description="Size in KB, rounded up")
    content: str = ""
    url: str = ""
    download_url: str = ""
    is_playlist_or_channel: bool = False
    error: Optional[str] = None
    notice: Optional[str] = None
    is_summary: bool = False


class ProcessingStats(BaseModel):
    total_videos: int
    processed_videos: int
    error_count: int
    formats: List[str]


class ExtractResponse(BaseModel):
    subtitles: List[SubtitleResult]
    stats: ProcessingStats
    coins_used: float = 0
    remaining_balance: Optional[float] = None
    process_id: str
    csv_stats: Optional[Dict[str, int]] = None


class CoinEstimateRequest(BaseModel):
    input_type: Literal["url", "file"] = "url"
    url: Optional[str] = None
    csv_content: Optional[str] = None
    format_count: int = Field(1, ge=1)


class CoinEstimateResponse(BaseModel):
    estimated_cost: int
    balance: Optional[float] = None
    has_enough: Optional[bool] = None


class CoinBalanceResponse(BaseModel):
    user_id: str
    balance: float
    total_earned: float
    total_spent: float
    subscription_tier: str
    last_coin_refresh: Optional[str] = None


class DeductCoinsRequest(BaseModel):
    amount: float = Field(..., gt=0)
    description: str = Field("Subtitle extraction", max_length=255)


class DeductCoinsResponse(BaseModel):
    success: bool
    deducted: float
    remaining_balance: float
    transaction_id: str


class TransactionCreateRequest(BaseModel):
    """Manual ledger entry; user_id defaults to the caller."""
    user_id: Optional[str] = None
    amount: float
    type: Literal["EARNED", "SPENT", "SUBSCRIPTION", "REFUNDED"]
    description: str = ""


class TransactionRecord(BaseModel):
    user_id: str
    transaction_id: str
    type: str
    amount: float
    description: Optional[str] = None
    created_at: Optional[str] = None


class MonthlyCreditResult(BaseModel):
    user_id: str
    plan: Optional[str] = None
    status: Literal["credited", "skipped", "failed", "error"]
    coins: int = 0
    reason: Optional[str] = None


class MonthlyCreditResponse(BaseModel):
    processed: int
    credited: int
    skipped: int
    failed: int
    results: List[MonthlyCreditResult]


class PlaylistInfoResponse(BaseModel):
    id: str
    title: str
    video_count: int
    is_estimate: bool


class ProcessingStatusResponse(BaseModel):
    id: str
    status: str
    progress: int
    message: str
    total: int = 0
    done: int = 0
    updated_at: Optional[str] = None


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    timestamp: str
    checks: Dict[str, Dict[str, Any]]
