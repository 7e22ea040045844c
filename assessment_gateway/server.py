"""
HTTP interface for the assessment content gateway.

Every endpoint is a thin wrapper over one ContentPipeline operation. Terminal
gateway failures are mapped to HTTP status codes so callers can tell a
misconfigured deployment from a busy upstream.

Run locally with:
  python -m assessment_gateway serve --port 8001
"""
import logging
import time
import uuid
from typing import Callable, List, Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config import Settings, get_settings
from .gateway import GatewayError, GatewayFailureKind, ProviderGateway
from .logging_config import request_id_context
from .models import (
    CEFRLevel,
    DifficultyLevel,
    ProgressSnapshot,
    Question,
    ReadingComprehension,
    Recommendation,
    RecommendationContext,
    SpeakingAnalysis,
    TipCategory,
    TipsContext,
    WritingCorrection,
    WritingFeedback,
)
from .pipeline import ContentPipeline, InvalidInputError

logger = logging.getLogger(__name__)

SERVICE_NAME = "assessment-content-gateway"

STATUS_BY_FAILURE_KIND = {
    GatewayFailureKind.NOT_CONFIGURED: 503,
    GatewayFailureKind.INVALID_CREDENTIAL: 502,
    GatewayFailureKind.ALL_RATE_LIMITED: 429,
    GatewayFailureKind.ALL_FAILED: 502,
}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log each request with its outcome and duration.

    The X-Request-ID header is honoured when present, otherwise a new id is
    generated. The id is echoed back and attached to every log entry written
    while the request is served.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_context.set(request_id)
        start_time = time.time()
        method = request.method
        path = str(request.url.path)

        try:
            logger.info("Incoming request", extra={"method": method, "path": path})
            response = await call_next(request)

            duration_ms = round((time.time() - start_time) * 1000, 2)
            response.headers["X-Request-ID"] = request_id
            extra_fields = {
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }
            if response.status_code >= 500:
                logger.error("Server error response", extra=extra_fields)
            elif response.status_code >= 400:
                logger.warning("Client error response", extra=extra_fields)
            else:
                logger.info("Request completed", extra=extra_fields)
            return response
        finally:
            request_id_context.reset(token)


class QuizRequest(BaseModel):
    """Request model for quiz generation."""

    topic: str = Field(..., min_length=1)
    difficulty: DifficultyLevel = DifficultyLevel.INTERMEDIATE
    count: int = Field(default=5, ge=1, le=50)
    cefr_level: Optional[CEFRLevel] = None


class ReadingRequest(BaseModel):
    """Request model for reading comprehension generation."""

    difficulty: DifficultyLevel = DifficultyLevel.INTERMEDIATE
    question_count: int = Field(default=5, ge=1, le=20)
    cefr_level: Optional[CEFRLevel] = None
    topic: Optional[str] = None


class PlacementRequest(BaseModel):
    count: int = Field(default=18, ge=1, le=50)


class TextRequest(BaseModel):
    """Request model for writing analysis and correction."""

    text: str


class TipsRequest(BaseModel):
    category: TipCategory
    context: Optional[TipsContext] = None


class TipsResponse(BaseModel):
    tips: List[str]


class InsightResponse(BaseModel):
    insight: str


def _gateway_error_response(request: Request, exc: GatewayError) -> JSONResponse:
    status_code = STATUS_BY_FAILURE_KIND.get(exc.kind, 502)
    logger.warning(f"{request.url.path} failed ({exc.kind.value}): {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "kind": exc.kind.value},
    )


def _invalid_input_response(request: Request, exc: InvalidInputError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app(
    pipeline: Optional[ContentPipeline] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        pipeline: Content pipeline to serve (built from settings if not provided)
        settings: Application settings (loaded from the environment if not provided)

    Returns:
        Configured FastAPI application
    """
    if pipeline is None:
        settings = settings or get_settings()
        pipeline = ContentPipeline(ProviderGateway.from_settings(settings))

    app = FastAPI(title="Assessment Content Gateway")
    app.state.pipeline = pipeline
    app.add_middleware(RequestLoggingMiddleware)
    app.add_exception_handler(GatewayError, _gateway_error_response)
    app.add_exception_handler(InvalidInputError, _invalid_input_response)

    @app.get("/health")
    def health_check():
        """Health check endpoint with provider status and counters."""
        gateway = pipeline.gateway
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "providers": {
                "primary": gateway.primary is not None,
                "backup": gateway.backup is not None,
            },
            "metrics": gateway.metrics.get_summary(),
        }

    @app.post("/quiz", response_model=List[Question])
    def generate_quiz(request: QuizRequest):
        return pipeline.generate_quiz(
            request.topic, request.difficulty, request.count, request.cefr_level
        )

    @app.post("/reading", response_model=ReadingComprehension)
    def generate_reading(request: ReadingRequest):
        return pipeline.generate_reading_comprehension(
            request.difficulty,
            request.question_count,
            request.cefr_level,
            request.topic,
        )

    @app.post("/placement", response_model=List[Question])
    def generate_placement(request: PlacementRequest):
        return pipeline.generate_placement_test(request.count)

    @app.post("/ielts", response_model=List[Question])
    def generate_ielts():
        return pipeline.generate_ielts_simulation()

    @app.post("/writing/analysis", response_model=WritingFeedback)
    def analyze_writing(request: TextRequest):
        return pipeline.analyze_writing(request.text)

    @app.post("/writing/correction", response_model=WritingCorrection)
    def correct_writing(request: TextRequest):
        return pipeline.correct_writing(request.text)

    @app.post("/speaking", response_model=SpeakingAnalysis)
    def analyze_speaking(
        audio: UploadFile = File(..., description="Recorded speech"),
        mime_type: Optional[str] = Form(default=None),
    ):
        """
        Transcribe and analyze a speaking recording.

        The MIME type falls back to the upload's content type, then audio/webm.
        """
        data = audio.file.read()
        content_type = mime_type or audio.content_type or "audio/webm"
        return pipeline.analyze_speaking(data, content_type)

    @app.post("/tips", response_model=TipsResponse)
    def generate_tips(request: TipsRequest):
        return TipsResponse(tips=pipeline.generate_tips(request.category, request.context))

    @app.post("/progress/insight", response_model=InsightResponse)
    def generate_progress_insight(request: ProgressSnapshot):
        insight = pipeline.generate_progress_insight(
            request.stats,
            request.skills,
            request.this_week_activities,
            request.last_week_activities,
        )
        return InsightResponse(insight=insight)

    @app.post("/recommendations", response_model=List[Recommendation])
    def generate_recommendations(request: RecommendationContext):
        return pipeline.generate_recommendations(
            request.stats, request.recent_activities, request.weakness
        )

    return app


def run(host: str = "0.0.0.0", port: int = 8001, settings: Optional[Settings] = None):
    """Serve the application with uvicorn."""
    import uvicorn

    uvicorn.run(create_app(settings=settings), host=host, port=port)
