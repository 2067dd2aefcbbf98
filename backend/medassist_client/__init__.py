from .api import ChatReply, MedAssistClient, MedAssistClientError, read_image_file
from .sse import NutritionStreamResult, assemble_nutrition_stream, parse_sse_events
from .views import (
    AnalysisSummary,
    MealSummaryLine,
    parse_analysis,
    parse_meal_summary,
    parse_medication_alert,
    process_citations,
)

__all__ = [
    "AnalysisSummary",
    "ChatReply",
    "MealSummaryLine",
    "MedAssistClient",
    "MedAssistClientError",
    "NutritionStreamResult",
    "assemble_nutrition_stream",
    "parse_analysis",
    "parse_meal_summary",
    "parse_medication_alert",
    "parse_sse_events",
    "process_citations",
    "read_image_file",
]
