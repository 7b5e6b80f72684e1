"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.routes import locations, route_estimates


# Create app
app = FastAPI(
    title="FleetFlow Dispatch API",
    description="Location search and route estimates for trip dispatch",
    version="0.1.0",
)

# CORS middleware for the dashboard frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(locations.router, prefix="/locations", tags=["locations"])
app.include_router(route_estimates.router, prefix="/routes", tags=["routes"])


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "FleetFlow Dispatch API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
