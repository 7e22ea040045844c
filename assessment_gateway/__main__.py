"""Command-line entry point for the assessment content gateway.

Each subcommand runs one pipeline operation and prints the result as JSON.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .config import Settings, get_settings
from .gateway import (
    AllProvidersRateLimitedError,
    GatewayError,
    InvalidCredentialError,
    ProviderGateway,
    ProviderNotConfiguredError,
)
from .logging_config import setup_logging
from .models import (
    CEFRLevel,
    DifficultyLevel,
    ProgressSnapshot,
    RecommendationContext,
    TipCategory,
)
from .pipeline import ContentPipeline, InvalidInputError

# Exit codes
EXIT_SUCCESS = 0
EXIT_COMPLETE_FAILURE = 2
EXIT_CONFIG_ERROR = 3
EXIT_BILLING_ERROR = 5  # All providers rate limited or out of quota
EXIT_AUTH_ERROR = 6

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="assessment_gateway",
        description="Generate and analyze English assessment content",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Five intermediate questions about travel
  python -m assessment_gateway quiz --topic travel

  # B2 reading comprehension with 4 questions
  python -m assessment_gateway reading --cefr B2 --questions 4

  # Correct a piece of writing
  python -m assessment_gateway correct-writing --text "She go to school yesterday."

  # Study recommendations from a learner profile
  python -m assessment_gateway recommendations learner.json

  # Serve the HTTP API
  python -m assessment_gateway serve --port 8001
        """,
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    quiz = subparsers.add_parser("quiz", help="Generate a multiple-choice quiz")
    quiz.add_argument("--topic", required=True, help="Quiz topic")
    quiz.add_argument(
        "--difficulty",
        choices=[d.value for d in DifficultyLevel],
        default=DifficultyLevel.INTERMEDIATE.value,
    )
    quiz.add_argument("--count", type=int, default=5, help="Number of questions (default: 5)")
    quiz.add_argument("--cefr", choices=[c.value for c in CEFRLevel], default=None)

    reading = subparsers.add_parser("reading", help="Generate a reading comprehension exercise")
    reading.add_argument(
        "--difficulty",
        choices=[d.value for d in DifficultyLevel],
        default=DifficultyLevel.INTERMEDIATE.value,
    )
    reading.add_argument("--questions", type=int, default=5, help="Number of questions")
    reading.add_argument("--cefr", choices=[c.value for c in CEFRLevel], default=None)
    reading.add_argument("--topic", default=None, help="Passage topic")

    placement = subparsers.add_parser("placement", help="Generate a CEFR placement test")
    placement.add_argument("--count", type=int, default=18, help="Number of questions")

    subparsers.add_parser("ielts", help="Generate an IELTS Academic Reading simulation")

    for name, help_text in (
        ("analyze-writing", "Detailed feedback on a piece of writing"),
        ("correct-writing", "Correct a piece of writing"),
    ):
        writing = subparsers.add_parser(name, help=help_text)
        source = writing.add_mutually_exclusive_group(required=True)
        source.add_argument("--text", help="Text to analyze")
        source.add_argument("--file", type=Path, help="Read the text from a file")

    speaking = subparsers.add_parser("analyze-speaking", help="Analyze a speech recording")
    speaking.add_argument("audio", type=Path, help="Path to the recording")
    speaking.add_argument("--mime-type", default="audio/webm", help="Recording MIME type")

    tips = subparsers.add_parser("tips", help="Generate personalised study tips")
    tips.add_argument("--category", choices=[c.value for c in TipCategory], required=True)

    insight = subparsers.add_parser("insight", help="One insight about a learner's progress")
    insight.add_argument("snapshot", type=Path, help="JSON file with stats, skills and weekly counts")

    recommendations = subparsers.add_parser(
        "recommendations", help="Personalised study recommendations"
    )
    recommendations.add_argument(
        "context", type=Path, help="JSON file with stats, recent activities and weaknesses"
    )

    serve = subparsers.add_parser("serve", help="Serve the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8001)

    return parser.parse_args(argv)


def build_pipeline(settings: Settings) -> ContentPipeline:
    return ContentPipeline(ProviderGateway.from_settings(settings))


def _read_text(args: argparse.Namespace) -> str:
    if args.file is not None:
        return args.file.read_text(encoding="utf-8")
    return args.text


def _load_model(path: Path, model: Type[ModelT]) -> ModelT:
    try:
        return model.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise InvalidInputError(f"{path} is not a valid {model.__name__}: {e}") from e


def _to_jsonable(result: Any) -> Any:
    if isinstance(result, list):
        return [_to_jsonable(item) for item in result]
    if hasattr(result, "model_dump"):
        return result.model_dump(mode="json")
    return result


def run_command(args: argparse.Namespace, pipeline: ContentPipeline) -> Any:
    """Run the pipeline operation selected by ``args.command``."""
    command = args.command
    if command == "quiz":
        return pipeline.generate_quiz(
            args.topic,
            DifficultyLevel(args.difficulty),
            args.count,
            CEFRLevel(args.cefr) if args.cefr else None,
        )
    if command == "reading":
        return pipeline.generate_reading_comprehension(
            DifficultyLevel(args.difficulty),
            args.questions,
            CEFRLevel(args.cefr) if args.cefr else None,
            args.topic,
        )
    if command == "placement":
        return pipeline.generate_placement_test(args.count)
    if command == "ielts":
        return pipeline.generate_ielts_simulation()
    if command == "analyze-writing":
        return pipeline.analyze_writing(_read_text(args))
    if command == "correct-writing":
        return pipeline.correct_writing(_read_text(args))
    if command == "analyze-speaking":
        return pipeline.analyze_speaking(args.audio.read_bytes(), args.mime_type)
    if command == "tips":
        return pipeline.generate_tips(TipCategory(args.category))
    if command == "insight":
        snapshot = _load_model(args.snapshot, ProgressSnapshot)
        return {
            "insight": pipeline.generate_progress_insight(
                snapshot.stats,
                snapshot.skills,
                snapshot.this_week_activities,
                snapshot.last_week_activities,
            )
        }
    if command == "recommendations":
        context = _load_model(args.context, RecommendationContext)
        return pipeline.generate_recommendations(
            context.stats, context.recent_activities, context.weakness
        )
    raise ValueError(f"Unknown command: {command}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    args = parse_arguments(argv)
    settings = get_settings()
    if args.verbose:
        settings = settings.model_copy(update={"log_level": "DEBUG"})
    setup_logging(settings)
    logger = logging.getLogger(__name__)

    if args.command == "serve":
        from .server import run

        run(host=args.host, port=args.port, settings=settings)
        return EXIT_SUCCESS

    try:
        result = run_command(args, build_pipeline(settings))
    except ProviderNotConfiguredError as e:
        logger.error(f"Configuration error: {e.message}")
        return EXIT_CONFIG_ERROR
    except InvalidCredentialError as e:
        logger.error(f"Authentication error: {e.message}")
        return EXIT_AUTH_ERROR
    except AllProvidersRateLimitedError as e:
        logger.error(f"Quota error: {e.message}")
        return EXIT_BILLING_ERROR
    except GatewayError as e:
        logger.error(f"Generation failed: {e.message}")
        return EXIT_COMPLETE_FAILURE
    except (InvalidInputError, OSError) as e:
        logger.error(f"Invalid input: {e}")
        return EXIT_COMPLETE_FAILURE

    print(json.dumps(_to_jsonable(result), indent=2, ensure_ascii=False))
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
