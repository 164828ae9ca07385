"""
Integration tests for all API routers.

This module tests:
- Authentication (API key, cron token, Supabase session, anonymous header)
- Input validation (400/422 for invalid params)
- Endpoint responses with yt-dlp and Supabase mocked
- All routers: extract, download, playlist, status, coins, transactions,
  subscriptions, health, cache, admin
"""

import pytest
from unittest.mock import patch, AsyncMock

from fetchsub.models import SubtitleResult
from fetchsub.services import coin_service


def subtitle(video_id="dQw4w9WgXcQ", error=None, fmt="SRT", title="My Video | Channel"):
    return SubtitleResult(
        id=video_id,
        video_title=title,
        language="English",
        format=fmt,
        file_size=0 if error else 1,
        content="" if error else "1\n00:00:00,000 --> 00:00:01,000\nHello",
        url=f"https://www.youtube.com/watch?v={video_id}",
        error=error,
        notice="Try again later." if error else None,
    )


class TestRoot:

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert "FetchSub" in response.json()["message"]


class TestAuthentication:
    """Test API key authentication on admin and cache endpoints."""

    @pytest.mark.asyncio
    async def test_missing_api_key(self, client):
        response = await client.get("/cache/stats")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_api_key(self, client):
        response = await client.get("/cache/stats", headers={"X-API-Key": "wrong-key"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_valid_api_key(self, client, api_headers):
        response = await client.get("/cache/stats", headers=api_headers)
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_extract_requires_identity(self, client, youtube_url):
        response = await client.post("/api/youtube/extract", json={"url": youtube_url})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_session(self, client, fake_supabase):
        response = await client.get("/api/coins/balance", headers={"Authorization": "Bearer expired"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_malformed_authorization(self, client):
        response = await client.get("/api/coins/balance", headers={"Authorization": "Token abc"})
        assert response.status_code == 401


class TestExtractRouter:
    """Test POST/GET /api/youtube/extract."""

    @pytest.mark.asyncio
    async def test_anonymous_extract_not_charged(self, client, anonymous_headers, youtube_url):
        with patch("fetchsub.routers.extract.process_youtube_url",
                   new=AsyncMock(return_value=[subtitle()])) as mock_process:
            response = await client.post(
                "/api/youtube/extract",
                headers=anonymous_headers,
                json={"input_type": "url", "url": youtube_url, "formats": ["srt"], "language": "en"},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["coins_used"] == 0
        assert data["remaining_balance"] is None
        assert data["stats"] == {"total_videos": 1, "processed_videos": 1, "error_count": 0, "formats": ["SRT"]}
        assert mock_process.call_args[0][:3] == (youtube_url, ["SRT"], "en")

        status = await client.get(f"/api/youtube/processing-status?id={data['process_id']}")
        assert status.status_code == 200
        assert status.json()["status"] == "completed"
        assert status.json()["progress"] == 100

    @pytest.mark.asyncio
    async def test_user_charged_for_processed_videos(self, client, fake_supabase, user_headers, youtube_url):
        with patch("fetchsub.routers.extract.process_youtube_url",
                   new=AsyncMock(return_value=[subtitle(fmt="SRT"), subtitle(fmt="VTT")])):
            response = await client.post(
                "/api/youtube/extract",
                headers=user_headers,
                json={"url": youtube_url, "formats": ["SRT", "VTT"]},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["coins_used"] == 2
        assert data["remaining_balance"] == 48
        assert fake_supabase.tables["user_coins"][0]["balance"] == 48

    @pytest.mark.asyncio
    async def test_nothing_charged_when_all_videos_fail(self, client, fake_supabase, user_headers, youtube_url):
        with patch("fetchsub.routers.extract.process_youtube_url",
                   new=AsyncMock(return_value=[subtitle(error="No subtitles found")])):
            response = await client.post("/api/youtube/extract", headers=user_headers, json={"url": youtube_url})

        assert response.status_code == 200
        assert response.json()["coins_used"] == 0
        assert fake_supabase.tables["user_coins"][0]["balance"] == 50
        assert fake_supabase.rpc_calls == []

    @pytest.mark.asyncio
    async def test_charge_failure_still_returns_subtitles(self, client, fake_supabase, user_headers, youtube_url):
        fake_supabase.rpc_installed = False

        with patch("fetchsub.routers.extract.process_youtube_url",
                   new=AsyncMock(return_value=[subtitle(fmt="SRT")])), \
                patch("fetchsub.services.coin_service._compare_and_set",
                      side_effect=coin_service._BalanceChanged):
            response = await client.post("/api/youtube/extract", headers=user_headers, json={"url": youtube_url})

        assert response.status_code == 200
        data = response.json()
        assert len(data["subtitles"]) == 1
        assert data["subtitles"][0]["content"]
        assert data["coins_used"] == 0
        assert data["remaining_balance"] == 50
        assert fake_supabase.tables["user_coins"][0]["balance"] == 50

    @pytest.mark.asyncio
    async def test_insufficient_coins(self, client, fake_supabase, user_headers, playlist_url):
        fake_supabase.tables["user_coins"] = [{"user_id": "user-123", "balance": 2, "total_spent": 48}]

        with patch("fetchsub.routers.extract.process_youtube_url", new=AsyncMock()) as mock_process:
            response = await client.post("/api/youtube/extract", headers=user_headers, json={"url": playlist_url})

        assert response.status_code == 402
        detail = response.json()["detail"]
        assert detail["require_more_coins"] is True
        assert detail["required"] == 3
        assert detail["balance"] == 2
        mock_process.assert_not_called()

    @pytest.mark.asyncio
    async def test_final_cost_capped_by_balance(self, client, fake_supabase, user_headers, playlist_url):
        # Estimate for a playlist is 3; ten processed videos cost 5
        fake_supabase.tables["user_coins"] = [{"user_id": "user-123", "balance": 4, "total_spent": 0}]
        results = [subtitle(video_id=f"v{n:010d}") for n in range(10)]

        with patch("fetchsub.routers.extract.process_youtube_url", new=AsyncMock(return_value=results)):
            response = await client.post("/api/youtube/extract", headers=user_headers, json={"url": playlist_url})

        assert response.status_code == 200
        assert response.json()["coins_used"] == 4
        assert fake_supabase.tables["user_coins"][0]["balance"] == 0

    @pytest.mark.asyncio
    async def test_csv_extract(self, client, anonymous_headers):
        csv_stats = {"total_rows": 1, "valid_urls": 1, "duplicates": 0, "invalid_urls": 0,
                     "playlist_count": 0, "channel_count": 0, "single_video_count": 1}
        with patch("fetchsub.routers.extract.process_csv",
                   new=AsyncMock(return_value=([subtitle()], csv_stats))):
            response = await client.post(
                "/api/youtube/extract",
                headers=anonymous_headers,
                json={"input_type": "file", "csv_content": "https://youtu.be/dQw4w9WgXcQ"},
            )

        assert response.status_code == 200
        assert response.json()["csv_stats"] == csv_stats

    @pytest.mark.asyncio
    async def test_missing_url(self, client, anonymous_headers):
        response = await client.post("/api/youtube/extract", headers=anonymous_headers, json={"input_type": "url"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_csv_content(self, client, anonymous_headers):
        response = await client.post("/api/youtube/extract", headers=anonymous_headers, json={"input_type": "file"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_empty_formats(self, client, anonymous_headers, youtube_url):
        response = await client.post(
            "/api/youtube/extract", headers=anonymous_headers, json={"url": youtube_url, "formats": []}
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_invalid_youtube_url(self, client, anonymous_headers):
        response = await client.post(
            "/api/youtube/extract", headers=anonymous_headers, json={"url": "https://example.com/video"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid YouTube URL"

    @pytest.mark.asyncio
    async def test_get_extract(self, client, youtube_url):
        with patch("fetchsub.routers.extract.extract_subtitles", return_value=subtitle()) as mock_extract:
            response = await client.get(f"/api/youtube/extract?url={youtube_url}&format=vtt&lang=fr")

        assert response.status_code == 200
        assert response.json()["id"] == "dQw4w9WgXcQ"
        assert mock_extract.call_args[0][:3] == (youtube_url, "vtt", "fr")

    @pytest.mark.asyncio
    async def test_get_extract_rejects_playlist(self, client, playlist_url):
        response = await client.get("/api/youtube/extract", params={"url": playlist_url})
        assert response.status_code == 400


class TestDownloadRouter:
    """Test GET /api/youtube/download."""

    @pytest.mark.asyncio
    async def test_invalid_video_id(self, client):
        response = await client.get("/api/youtube/download?id=short&format=srt")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_id(self, client):
        response = await client.get("/api/youtube/download")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_download_file(self, client):
        with patch("fetchsub.routers.download.extract_video_subtitles", return_value=[subtitle()]):
            response = await client.get("/api/youtube/download?id=dQw4w9WgXcQ&format=srt&lang=en")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/x-subrip")
        assert response.headers["content-disposition"] == 'attachment; filename="My-Video.en.srt"'
        assert response.text.startswith("1\n00:00:00,000")

    @pytest.mark.asyncio
    async def test_download_without_subtitles(self, client):
        with patch("fetchsub.routers.download.extract_video_subtitles",
                   return_value=[subtitle(error="No subtitles found")]):
            response = await client.get("/api/youtube/download?id=dQw4w9WgXcQ")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "No subtitles found"


class TestPlaylistRouter:
    """Test GET /api/youtube/playlist-info."""

    @pytest.mark.asyncio
    async def test_requires_id(self, client):
        response = await client.get("/api/youtube/playlist-info")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_by_id(self, client):
        info = {"id": "PLabc123", "title": "Mix", "video_count": 12, "is_estimate": False}
        with patch("fetchsub.routers.playlist.get_playlist_info", return_value=info):
            response = await client.get("/api/youtube/playlist-info?id=PLabc123")

        assert response.status_code == 200
        assert response.json() == info

    @pytest.mark.asyncio
    async def test_by_url(self, client, playlist_url):
        info = {"id": "PLabc123", "title": "YouTube Playlist", "video_count": 25, "is_estimate": True}
        with patch("fetchsub.routers.playlist.get_playlist_info", return_value=info) as mock_info:
            response = await client.get("/api/youtube/playlist-info", params={"url": playlist_url})

        assert response.status_code == 200
        mock_info.assert_called_once_with("PLabc123")

    @pytest.mark.asyncio
    async def test_estimate_when_youtube_unreachable(self, client):
        with patch("fetchsub.services.playlist_service.yt_dlp.YoutubeDL", side_effect=Exception("network down")):
            response = await client.get("/api/youtube/playlist-info?id=PLZabc")

        assert response.status_code == 200
        assert response.json()["video_count"] == 15
        assert response.json()["is_estimate"] is True


class TestStatusRouter:

    @pytest.mark.asyncio
    async def test_requires_id(self, client):
        response = await client.get("/api/youtube/processing-status")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_id(self, client):
        response = await client.get("/api/youtube/processing-status?id=doesnotexist")
        assert response.status_code == 404


class TestCoinsRouter:
    """Test /api/coins endpoints."""

    @pytest.mark.asyncio
    async def test_balance_requires_auth(self, client):
        response = await client.get("/api/coins/balance")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_balance_created_with_welcome_bonus(self, client, fake_supabase, user_headers):
        response = await client.get("/api/coins/balance", headers=user_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == "user-123"
        assert data["balance"] == 50
        assert data["subscription_tier"] == "FREE"

    @pytest.mark.asyncio
    async def test_estimate_anonymous(self, client, anonymous_headers, playlist_url):
        response = await client.post(
            "/api/coins/estimate", headers=anonymous_headers, json={"url": playlist_url, "format_count": 2}
        )
        assert response.status_code == 200
        assert response.json() == {"estimated_cost": 5, "balance": None, "has_enough": None}

    @pytest.mark.asyncio
    async def test_estimate_signed_in(self, client, fake_supabase, user_headers, youtube_url):
        response = await client.post("/api/coins/estimate", headers=user_headers, json={"url": youtube_url})
        assert response.json() == {"estimated_cost": 1, "balance": 50, "has_enough": True}

    @pytest.mark.asyncio
    async def test_deduct(self, client, fake_supabase, user_headers):
        response = await client.post("/api/coins/deduct", headers=user_headers, json={"amount": 5})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["remaining_balance"] == 45

    @pytest.mark.asyncio
    async def test_deduct_insufficient(self, client, fake_supabase, user_headers):
        response = await client.post("/api/coins/deduct", headers=user_headers, json={"amount": 500})

        assert response.status_code == 402
        assert response.json()["detail"]["require_more_coins"] is True

    @pytest.mark.asyncio
    async def test_deduct_rejects_non_positive(self, client, fake_supabase, user_headers):
        response = await client.post("/api/coins/deduct", headers=user_headers, json={"amount": 0})
        assert response.status_code == 422


class TestTransactionsRouter:
    """Test /api/transactions."""

    @pytest.mark.asyncio
    async def test_list(self, client, fake_supabase, user_headers):
        await client.get("/api/coins/balance", headers=user_headers)
        response = await client.get("/api/transactions", headers=user_headers)

        assert response.status_code == 200
        rows = response.json()
        assert len(rows) == 1
        assert rows[0]["type"] == "EARNED"

    @pytest.mark.asyncio
    async def test_create(self, client, fake_supabase, user_headers):
        response = await client.post(
            "/api/transactions", headers=user_headers,
            json={"amount": 3, "type": "REFUNDED", "description": "Failed batch"},
        )

        assert response.status_code == 201
        assert response.json()["user_id"] == "user-123"
        assert response.json()["type"] == "REFUNDED"

    @pytest.mark.asyncio
    async def test_create_for_other_user(self, client, fake_supabase, user_headers):
        response = await client.post(
            "/api/transactions", headers=user_headers,
            json={"user_id": "someone-else", "amount": 3, "type": "EARNED"},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_create_zero_amount(self, client, fake_supabase, user_headers):
        response = await client.post(
            "/api/transactions", headers=user_headers, json={"amount": 0, "type": "EARNED"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_create_unknown_type(self, client, fake_supabase, user_headers):
        response = await client.post(
            "/api/transactions", headers=user_headers, json={"amount": 1, "type": "GIFT"}
        )
        assert response.status_code == 422


class TestSubscriptionsRouter:
    """Test /api/subscriptions."""

    @pytest.mark.asyncio
    async def test_monthly_credit_missing_token(self, client):
        response = await client.post("/api/subscriptions/monthly-credit")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_monthly_credit_wrong_token(self, client):
        response = await client.post(
            "/api/subscriptions/monthly-credit", headers={"Authorization": "Bearer wrong"}
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_monthly_credit(self, client, fake_supabase, cron_headers):
        fake_supabase.tables["user_subscriptions"] = [
            {"user_id": "user-1", "plan_name": "BASIC", "status": "active", "last_payment_date": None},
        ]
        response = await client.post("/api/subscriptions/monthly-credit", headers=cron_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["processed"] == 1
        assert data["credited"] == 1
        assert data["results"][0]["coins"] == 200

    @pytest.mark.asyncio
    async def test_my_subscription_none(self, client, fake_supabase, user_headers):
        response = await client.get("/api/subscriptions/me", headers=user_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "none"


class TestHealthRouter:

    @pytest.mark.asyncio
    async def test_degraded_without_supabase(self, client):
        with patch("fetchsub.routers.health.get_ytdlp_version", return_value="2025.01.15"):
            response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["ytdlp"]["status"] == "pass"
        assert data["checks"]["supabase"]["status"] == "fail"

    @pytest.mark.asyncio
    async def test_healthy(self, client, fake_supabase):
        with patch("fetchsub.routers.health.get_ytdlp_version", return_value="2025.01.15"):
            response = await client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_unhealthy_without_ytdlp(self, client):
        with patch("fetchsub.routers.health.get_ytdlp_version", return_value=None):
            response = await client.get("/api/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


class TestCacheRouter:

    @pytest.mark.asyncio
    async def test_cleanup(self, client, api_headers):
        response = await client.delete("/cache/cleanup", headers=api_headers)
        assert response.status_code == 200
        assert "deleted" in response.json()
        assert "cleared" not in response.json()

    @pytest.mark.asyncio
    async def test_cleanup_memory(self, client, api_headers):
        response = await client.delete("/cache/cleanup?memory=true", headers=api_headers)
        assert response.json()["cleared"] == {"transcripts": 0, "failures": 0}

    @pytest.mark.asyncio
    async def test_stats(self, client, api_headers):
        response = await client.get("/cache/stats", headers=api_headers)
        assert response.json()["transcripts"]["size"] == 0


class TestAdminRouter:

    @pytest.mark.asyncio
    async def test_scheduler_status_requires_key(self, client):
        response = await client.get("/admin/subscription-scheduler/status")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_scheduler_status(self, client, api_headers):
        response = await client.get("/admin/subscription-scheduler/status", headers=api_headers)
        assert response.status_code == 200
        assert response.json()["running"] is False

    @pytest.mark.asyncio
    async def test_activate_and_cancel_subscription(self, client, fake_supabase, api_headers):
        response = await client.post(
            "/admin/subscriptions", headers=api_headers, json={"user_id": "user-9", "plan_name": "BASIC"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "active"

        response = await client.delete("/admin/subscriptions/user-9", headers=api_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_cancel_unknown(self, client, fake_supabase, api_headers):
        response = await client.delete("/admin/subscriptions/nobody", headers=api_headers)
        assert response.status_code == 404
