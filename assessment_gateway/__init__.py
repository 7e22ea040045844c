"""Resilient LLM content gateway for English assessment material."""

from .balancer import AnswerBalancer, BalanceResult
from .config import ProviderConfig, Settings, build_provider_configs, get_settings
from .error_classifier import ErrorClassification, classify
from .gateway import (
    AllProvidersFailedError,
    AllProvidersRateLimitedError,
    GatewayError,
    GatewayFailureKind,
    InvalidCredentialError,
    ProviderGateway,
    ProviderNotConfiguredError,
)
from .models import (
    CEFRLevel,
    DifficultyLevel,
    LearnerStats,
    ProgressSnapshot,
    Question,
    ReadingComprehension,
    Recommendation,
    RecommendationContext,
    RecommendationPriority,
    SkillScore,
    SpeakingAnalysis,
    TipCategory,
    TipsContext,
    WeaknessAnalysis,
    WritingCorrection,
    WritingFeedback,
)
from .normalizer import MalformedResponseError, ResponseNormalizer, ResponseShape
from .pipeline import ContentPipeline, InvalidInputError

__version__ = "0.1.0"

__all__ = [
    "AllProvidersFailedError",
    "AllProvidersRateLimitedError",
    "AnswerBalancer",
    "BalanceResult",
    "CEFRLevel",
    "ContentPipeline",
    "DifficultyLevel",
    "ErrorClassification",
    "GatewayError",
    "GatewayFailureKind",
    "InvalidCredentialError",
    "InvalidInputError",
    "LearnerStats",
    "MalformedResponseError",
    "ProviderConfig",
    "ProviderGateway",
    "ProgressSnapshot",
    "ProviderNotConfiguredError",
    "Question",
    "ReadingComprehension",
    "Recommendation",
    "RecommendationContext",
    "RecommendationPriority",
    "ResponseNormalizer",
    "ResponseShape",
    "Settings",
    "SkillScore",
    "SpeakingAnalysis",
    "TipCategory",
    "TipsContext",
    "WeaknessAnalysis",
    "WritingCorrection",
    "WritingFeedback",
    "build_provider_configs",
    "classify",
    "get_settings",
]
