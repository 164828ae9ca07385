from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables from .env file before settings are read
load_dotenv()

from fetchsub.config import get_settings
from fetchsub.routers import (
    extract_router,
    download_router,
    playlist_router,
    status_router,
    coins_router,
    transactions_router,
    subscriptions_router,
    health_router,
    cache_router,
    admin_router,
)
from fetchsub.services.subscription_service import start_scheduler, stop_scheduler
from fetchsub.utils.logging_utils import setup_logger

app = FastAPI(title="FetchSub", description="YouTube subtitle extraction API with a coin ledger")

# CORS configuration
app.add_middleware(CORSMiddleware,
    allow_origins=[get_settings().allowed_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(extract_router)
app.include_router(download_router)
app.include_router(playlist_router)
app.include_router(status_router)
app.include_router(coins_router)
app.include_router(transactions_router)
app.include_router(subscriptions_router)
app.include_router(health_router)
app.include_router(cache_router)
app.include_router(admin_router)


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """Initialize services on application startup."""
    setup_logger()
    print("INFO: Starting application...")

    try:
        start_scheduler()
    except Exception as e:
        print(f"WARNING: Failed to start monthly credit scheduler: {str(e)}")
        print("WARNING: Scheduled subscription credits disabled")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on application shutdown."""
    print("INFO: Shutting down application...")

    try:
        stop_scheduler()
    except Exception as e:
        print(f"WARNING: Error stopping monthly credit scheduler: {str(e)}")


@app.get("/")
async def root():
    return {"message": "Welcome to FetchSub. POST /api/youtube/extract with a YouTube URL to get subtitles."}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
