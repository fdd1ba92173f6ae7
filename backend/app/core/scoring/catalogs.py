"""
Trait catalogs for the psychometric instruments the platform scores.

Catalog order is significant: results list traits in this order so radar
charts keep a stable layout between participants.
"""
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class TraitDefinition:
    """A named trait and the scoring-key value that feeds it."""

    name: str
    key: str
    description: str


DISC_TRAITS: Tuple[TraitDefinition, ...] = (
    TraitDefinition(
        "Dominance", "dominance", "Assertive, results-oriented and strong-willed"
    ),
    TraitDefinition(
        "Influence", "influence", "Enthusiastic, optimistic, open and trusting"
    ),
    TraitDefinition(
        "Steadiness", "steadiness", "Even-tempered, accommodating and patient"
    ),
    TraitDefinition(
        "Compliance", "compliance", "Private, analytical, logical and reserved"
    ),
)

MBTI_TRAITS: Tuple[TraitDefinition, ...] = (
    TraitDefinition(
        "Extraversion", "extraversion", "Outgoing, energetic, assertive and sociable"
    ),
    TraitDefinition("Sensing", "sensing", "Practical, realistic, detailed and factual"),
    TraitDefinition(
        "Thinking", "thinking", "Logical, analytical, objective and critical"
    ),
    TraitDefinition(
        "Judging", "judging", "Organized, decisive, scheduled and structured"
    ),
)

BIG_FIVE_TRAITS: Tuple[TraitDefinition, ...] = (
    TraitDefinition(
        "Openness", "openness", "Creative, curious and open to new experiences"
    ),
    TraitDefinition(
        "Conscientiousness",
        "conscientiousness",
        "Organized, responsible, dependable and achievement-oriented",
    ),
    TraitDefinition(
        "Extraversion", "extraversion", "Sociable, assertive, energetic and outgoing"
    ),
    TraitDefinition(
        "Agreeableness", "agreeableness", "Cooperative, trusting and good-natured"
    ),
    TraitDefinition(
        "Neuroticism",
        "neuroticism",
        "Anxious, emotionally reactive and prone to negative emotions",
    ),
)

EPPS_TRAITS: Tuple[TraitDefinition, ...] = (
    TraitDefinition(
        "Achievement", "achievement", "Driven to accomplish difficult tasks and excel"
    ),
    TraitDefinition(
        "Deference", "deference", "Respectful to authority and willing to follow others"
    ),
    TraitDefinition("Order", "order", "Organized, neat and values structure"),
    TraitDefinition(
        "Exhibition", "exhibition", "Enjoys being the center of attention"
    ),
    TraitDefinition("Autonomy", "autonomy", "Independent, self-reliant, values freedom"),
    TraitDefinition(
        "Affiliation", "affiliation", "Enjoys close relationships and group membership"
    ),
    TraitDefinition(
        "Intraception",
        "intraception",
        "Introspective and interested in understanding motives",
    ),
    TraitDefinition(
        "Succorance", "succorance", "Seeks help and support from others when needed"
    ),
    TraitDefinition("Dominance", "dominance", "Assertive and enjoys leading others"),
    TraitDefinition(
        "Abasement", "abasement", "Self-critical and ready to accept blame"
    ),
    TraitDefinition(
        "Nurturance", "nurturance", "Caring and enjoys taking care of others"
    ),
    TraitDefinition("Change", "change", "Enjoys variety, novelty and new experiences"),
    TraitDefinition(
        "Endurance", "endurance", "Persistent and works hard to completion"
    ),
    TraitDefinition(
        "Heterosexuality",
        "heterosexuality",
        "Interested in and attracted to the opposite sex",
    ),
    TraitDefinition(
        "Aggression", "aggression", "Competitive, argumentative and easily angered"
    ),
)

WAIS_INDICES: Tuple[TraitDefinition, ...] = (
    TraitDefinition(
        "Verbal Comprehension",
        "verbal_comprehension",
        "Reasoning with and understanding verbal information",
    ),
    TraitDefinition(
        "Perceptual Reasoning",
        "perceptual_reasoning",
        "Solving novel visual and spatial problems",
    ),
    TraitDefinition(
        "Working Memory",
        "working_memory",
        "Holding and manipulating information over short periods",
    ),
    TraitDefinition(
        "Processing Speed",
        "processing_speed",
        "Scanning and processing simple information quickly and accurately",
    ),
)
