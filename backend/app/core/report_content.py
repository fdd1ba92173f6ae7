"""
Participant-facing report content assembled from a stored result.

Reports are plain text sections plus chart series; rendering (HTML, PDF)
is left to clients.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from app.core.datetime_utils import ensure_timezone_aware
from app.core.math_utils import round_half_up
from app.models.models import Attempt, Test, TestResult, User
from app.schemas.traits import TraitMeasurement, parse_trait_measurements

# Accuracy wording thresholds (percent)
EXCELLENT_ACCURACY = 80
GOOD_ACCURACY = 60

TRAIT_EXPLANATIONS: Dict[str, str] = {
    "Extraversion": "Tendency to be outgoing and energetic in social interactions",
    "Openness": "Openness to new experiences and creative ideas",
    "Conscientiousness": "Level of discipline and responsibility in task execution",
    "Agreeableness": "Tendency to be cooperative and considerate towards others",
    "Neuroticism": "Sensitivity to stress and negative emotions",
}

# (minimum score, interpretation), highest first
SCORE_INTERPRETATIONS = (
    (80, "Very High - Shows very strong characteristics"),
    (60, "High - Shows clear characteristics"),
    (40, "Moderate - Shows balanced characteristics"),
    (20, "Low - Shows limited characteristics"),
    (0, "Very Low - Shows minimal characteristics"),
)


@dataclass
class ReportContent:
    summary: str
    detailed_analysis: Optional[str] = None
    recommendations: List[str] = field(default_factory=list)
    trait_explanations: Optional[List[Dict[str, Any]]] = None
    charts_data: Optional[Dict[str, Any]] = None


def _value(member: Any) -> Any:
    return getattr(member, "value", member)


def build_summary(result: TestResult, user: User, test: Test, attempt: Attempt) -> str:
    score = float(result.scaled_score or 0)
    completion = float(result.completion_percentage or 0)
    started = ensure_timezone_aware(attempt.start_time).date().isoformat()
    lines = [
        "Psychological Test Result Report",
        f"Participant: {user.name} ({user.email})",
        f"Test: {test.name} ({str(_value(test.category)).upper()})",
        f"Date: {started}",
        "",
        "RESULTS:",
        f"- Score: {round_half_up(score)}/100",
        f"- Grade: {result.grade or 'N/A'}",
        f"- Status: {'PASSED' if result.is_passed else 'FAILED'}",
        f"- Completion Rate: {round_half_up(completion)}%",
        "",
        result.description or "Test completed successfully.",
    ]
    return "\n".join(lines)


def accuracy_wording(accuracy: float) -> str:
    if accuracy >= EXCELLENT_ACCURACY:
        return "excellent accuracy"
    if accuracy >= GOOD_ACCURACY:
        return "good accuracy"
    return "accuracy that needs improvement"


def build_detailed_analysis(analysis: Dict[str, Any], test_name: str) -> str:
    accuracy = float(analysis.get("accuracy_rate") or 0)
    efficiency = float(analysis.get("time_efficiency") or 0)
    lines = [
        "DETAILED ANALYSIS:",
        f"Calculation Method: {analysis.get('calculation_method') or 'Standard'}",
        f"Total Questions: {analysis.get('total_questions') or 0}",
        f"Questions Answered: {analysis.get('answered_questions') or 0}",
        f"Correct Answers: {analysis.get('correct_answers') or 0}",
        f"Accuracy Rate: {round_half_up(accuracy)}%",
        f"Time Efficiency: {round_half_up(efficiency)}%",
        "",
        f"Based on the analysis, the participant demonstrates "
        f"{accuracy_wording(accuracy)} in completing the {test_name} test.",
    ]
    return "\n".join(lines)


def build_report_recommendations(
    stored: Optional[str], traits: Sequence[TraitMeasurement]
) -> List[str]:
    """Stored recommendation text followed by one line per trait callout."""
    lines = [stored] if stored else []
    callouts = []
    for trait in traits:
        if trait.score >= 80:
            callouts.append(f"- {trait.name}: Key strength that can be maximized")
        elif trait.score <= 40:
            callouts.append(f"- {trait.name}: Area for development")
    if callouts:
        lines.append("Recommendations based on personality profile:")
        lines.extend(callouts)
    return lines


def score_interpretation(score: float) -> str:
    for minimum, text in SCORE_INTERPRETATIONS:
        if score >= minimum:
            return text
    return SCORE_INTERPRETATIONS[-1][1]


def build_trait_explanations(traits: Sequence[TraitMeasurement]) -> List[Dict[str, Any]]:
    return [
        {
            "trait_name": trait.name,
            "explanation": TRAIT_EXPLANATIONS.get(
                trait.name, trait.description or f"{trait.name} aspect in {trait.category} category"
            ),
            "score_interpretation": score_interpretation(trait.score),
        }
        for trait in traits
    ]


def build_charts_data(
    traits: Sequence[TraitMeasurement], result: TestResult, test_name: str
) -> Dict[str, Any]:
    return {
        "personality_radar": {
            "labels": [t.name for t in traits],
            "data": [t.score for t in traits],
        },
        "score_gauge": {
            "value": float(result.scaled_score or 0),
            "max": 100,
            "label": test_name,
        },
        "percentile_bar": {
            "percentile": float(result.percentile or 0),
            "grade": result.grade,
        },
    }


def build_report_content(
    result: TestResult,
    user: User,
    test: Test,
    attempt: Attempt,
    *,
    include_detailed_analysis: bool = True,
    include_recommendations: bool = True,
    include_trait_explanations: bool = True,
    include_charts: bool = True,
) -> ReportContent:
    """
    Assemble every report section for one result.

    Args:
        result: The stored result
        user: Participant the result belongs to
        test: Test that was taken
        attempt: Attempt the result was calculated from
        include_detailed_analysis: Add the detailed analysis section
        include_recommendations: Add recommendation lines
        include_trait_explanations: Add per-trait explanations
        include_charts: Add chart series

    Returns:
        ReportContent with the requested sections
    """
    traits = parse_trait_measurements(result.traits)
    content = ReportContent(summary=build_summary(result, user, test, attempt))

    if include_detailed_analysis and isinstance(result.detailed_analysis, dict):
        content.detailed_analysis = build_detailed_analysis(
            result.detailed_analysis, test.name
        )
    if include_recommendations:
        content.recommendations = build_report_recommendations(
            result.recommendations, traits
        )
    if include_trait_explanations and traits:
        content.trait_explanations = build_trait_explanations(traits)
    if include_charts and traits:
        content.charts_data = build_charts_data(traits, result, test.name)
    return content
