"""Main FastAPI application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app import __version__
from app.api.endpoints import router
from app.utils.logging import LogConfig, setup_logging

setup_logging(LogConfig.from_env())

# Create FastAPI application
app = FastAPI(
    title="HITL Chat Agent",
    description=(
        "A streaming chat agent whose sensitive tool calls wait for a human "
        "to approve or deny them, with scheduled tasks and switchable prompt presets."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Conversation",
            "description": (
                "Send messages or tool decisions and receive the assistant's turn as a data stream. "
                "Messages starting with /sys: are control commands."
            ),
        },
        {
            "name": "Schedules",
            "description": "Tasks the assistant scheduled for later.",
        },
        {
            "name": "Tools",
            "description": "Tool metadata for clients.",
        },
        {
            "name": "Health",
            "description": "Service health monitoring and status checks.",
        },
    ],
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Conversation-Id"],
)

# Include routers
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
