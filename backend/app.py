"""
FastAPI application for the GithubIssue record API.
"""

from fastapi import FastAPI

from backend.routes import router
from utils.logger import setup_logger

logger = setup_logger(name=__name__)

app = FastAPI(
    title="GithubIssue API",
    description="Declare GitHub issues as records; the operator keeps GitHub in sync",
    version="1.0.0"
)

app.include_router(router)

logger.info("FastAPI app initialized")
