"""
FastAPI application exposing track analysis over HTTP.
"""

import logging

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel

from track_analyzer import __version__
from track_analyzer.analyzer import get_analyzer
from track_analyzer.decoder import DecodeError
from track_analyzer.models import AnalysisResult
from track_analyzer.sources import AudioSourceError


logger = logging.getLogger(__name__)


# Create FastAPI app
app = FastAPI(
    title="Track Analyzer",
    description="Tempo, key and energy extraction for audio tracks",
    version=__version__,
)


class ReferenceRequest(BaseModel):
    """Analysis request for audio that is not sent inline."""
    reference: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    engine: str


@app.on_event("startup")
async def startup_event():
    """Initialize the primary engine on startup."""
    await get_analyzer().preload()


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Track Analyzer",
        "version": __version__,
        "status": "running",
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    analyzer = get_analyzer()
    return HealthResponse(status="healthy", engine=analyzer.engine_state.value)


@app.post("/analyze", response_model=AnalysisResult)
async def analyze(request: Request):
    """Analyze audio bytes sent as the request body."""
    data = await request.body()
    if not data:
        raise HTTPException(status_code=400, detail="Request body is empty")

    try:
        return await get_analyzer().analyze(data)
    except DecodeError as e:
        logger.error(f"Could not decode uploaded audio: {e}")
        raise HTTPException(status_code=422, detail=str(e))


@app.post("/analyze/reference", response_model=AnalysisResult)
async def analyze_reference(request: ReferenceRequest):
    """Analyze audio from a data URL or http(s) URL."""
    analyzer = get_analyzer()

    try:
        return await analyzer.analyze_reference(request.reference, allow_local=False)
    except AudioSourceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DecodeError as e:
        logger.error(f"Could not decode audio from reference: {e}")
        raise HTTPException(status_code=422, detail=str(e))
