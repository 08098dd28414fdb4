"""
Crop Recommendation Engine.

Maps a single set of field conditions to:
- A ranked list of suitable crops (temperature, soil category, NPK)
- An ordered list of fertilizer actions (NPK thresholds + organic supplement)

Evaluation is pure: no I/O, no randomness, no shared mutable state. The only
failure mode is input validation, which happens before any rule is evaluated.
"""
from typing import Iterable, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field, asdict
from enum import Enum
import logging
import math

from app.services.recommendation_rules import (
    CROP_RULES,
    FERTILIZER_RULES,
    ORGANIC_RECOMMENDATION,
    SOIL_TYPES,
    TEMPERATURE_PLAUSIBLE_MAX,
    TEMPERATURE_PLAUSIBLE_MIN,
    TEMPERATURE_UNSET,
    CropMetadata,
    CropRule,
    FertilizerRecommendation,
    FertilizerRule,
)

logger = logging.getLogger(__name__)


class ValidationErrorCode(str, Enum):
    """Preconditions checked before evaluation, in check order."""
    MISSING_TEMPERATURE = "missing_temperature"
    MISSING_SOIL_TYPE = "missing_soil_type"
    MISSING_NPK = "missing_npk"


VALIDATION_MESSAGES = {
    ValidationErrorCode.MISSING_TEMPERATURE: "Please enter the current temperature",
    ValidationErrorCode.MISSING_SOIL_TYPE: "Please select the soil type",
    ValidationErrorCode.MISSING_NPK: "Please enter NPK values",
}


class InputValidationError(Exception):
    """Raised when the first unmet input precondition is found."""

    def __init__(self, code: ValidationErrorCode):
        self.code = code
        self.message = VALIDATION_MESSAGES[code]
        super().__init__(self.message)


@dataclass(frozen=True)
class NPKValues:
    """Soil nutrient indices. 0 means "not provided"."""
    nitrogen: float = 0.0
    phosphorus: float = 0.0
    potassium: float = 0.0

    def is_unset(self) -> bool:
        return self.nitrogen == 0 and self.phosphorus == 0 and self.potassium == 0


@dataclass(frozen=True)
class EnvironmentalInput:
    temperature: Optional[float]
    soil_type: Optional[str]
    npk: NPKValues = field(default_factory=NPKValues)

    def __post_init__(self):
        # str Enum members format as "Enum.MEMBER"; keep the plain category
        if isinstance(self.soil_type, Enum):
            object.__setattr__(self, "soil_type", self.soil_type.value)


@dataclass(frozen=True)
class CropSuggestion:
    crop_name: str
    score: int
    reason: str
    metadata: CropMetadata


@dataclass(frozen=True)
class RecommendationResult:
    """Read-only outcome of one evaluation; crops ranked, fertilizers in rule order."""
    crops: Tuple[CropSuggestion, ...]
    fertilizers: Tuple[FertilizerRecommendation, ...]

    def to_dict(self) -> dict:
        return asdict(self)


def _is_unset_temperature(temperature: Optional[float]) -> bool:
    if temperature is None:
        return True
    if isinstance(temperature, float) and math.isnan(temperature):
        return True
    return temperature == TEMPERATURE_UNSET


def check_input(env: EnvironmentalInput) -> Optional[InputValidationError]:
    """
    Return the error for the first unmet precondition, or None when valid.

    Order: temperature, soil type, NPK. Only one error is ever reported.
    No numeric bounds are enforced beyond these presence checks.
    """
    if _is_unset_temperature(env.temperature):
        return InputValidationError(ValidationErrorCode.MISSING_TEMPERATURE)
    if env.soil_type not in SOIL_TYPES:
        return InputValidationError(ValidationErrorCode.MISSING_SOIL_TYPE)
    if env.npk.is_unset():
        return InputValidationError(ValidationErrorCode.MISSING_NPK)
    return None


def validate_input(env: EnvironmentalInput) -> None:
    """Raise InputValidationError unless the input can be evaluated."""
    error = check_input(env)
    if error is not None:
        raise error
    if not TEMPERATURE_PLAUSIBLE_MIN <= env.temperature <= TEMPERATURE_PLAUSIBLE_MAX:
        logger.warning(
            f"[Validator] Temperature {env.temperature} outside plausible range "
            f"{TEMPERATURE_PLAUSIBLE_MIN:g}..{TEMPERATURE_PLAUSIBLE_MAX:g}, evaluating anyway"
        )


def rank_crop_suggestions(candidates: Iterable[CropSuggestion]) -> List[CropSuggestion]:
    """
    Sort by score descending.

    sorted() is stable, so equal scores keep the order in which their rules
    appear in the table.
    """
    return sorted(candidates, key=lambda suggestion: suggestion.score, reverse=True)


class RecommendationEngine:
    """Applies the crop and fertilizer rule tables to validated input."""

    def __init__(
        self,
        crop_rules: Sequence[CropRule] = CROP_RULES,
        fertilizer_rules: Sequence[FertilizerRule] = FERTILIZER_RULES,
        organic_recommendation: FertilizerRecommendation = ORGANIC_RECOMMENDATION,
    ):
        self.crop_rules = tuple(crop_rules)
        self.fertilizer_rules = tuple(fertilizer_rules)
        self.organic_recommendation = organic_recommendation

    def evaluate_crop_rules(self, env: EnvironmentalInput) -> List[CropSuggestion]:
        """Emit one suggestion per applicable rule, in table order."""
        candidates = []
        for rule in self.crop_rules:
            if not rule.applies_to(env.temperature, env.soil_type, env.npk):
                continue
            score, reason = rule.resolve(env.soil_type)
            candidates.append(CropSuggestion(
                crop_name=rule.crop_name,
                score=score,
                reason=reason,
                metadata=rule.metadata,
            ))
        logger.debug(f"[CropRules] {len(candidates)} of {len(self.crop_rules)} rules fired")
        return candidates

    def evaluate_fertilizer_rules(self, npk: NPKValues) -> List[FertilizerRecommendation]:
        """Triggered nutrient rules in declaration order, then the organic supplement."""
        recommendations = [
            rule.recommendation for rule in self.fertilizer_rules if rule.is_triggered(npk)
        ]
        recommendations.append(self.organic_recommendation)
        return recommendations

    def recommend(self, env: EnvironmentalInput) -> RecommendationResult:
        """
        Validate the input and evaluate both rule tables.

        Raises:
            InputValidationError: before any rule is evaluated.
        """
        validate_input(env)

        crops = rank_crop_suggestions(self.evaluate_crop_rules(env))
        fertilizers = self.evaluate_fertilizer_rules(env.npk)

        logger.info(
            f"[Recommend] T={env.temperature} soil={env.soil_type} "
            f"NPK={env.npk.nitrogen:g}/{env.npk.phosphorus:g}/{env.npk.potassium:g}: "
            f"{len(crops)} crops, {len(fertilizers)} fertilizers"
        )
        return RecommendationResult(crops=tuple(crops), fertilizers=tuple(fertilizers))


recommendation_engine = RecommendationEngine()


def generate_recommendations(env: EnvironmentalInput) -> RecommendationResult:
    """Evaluate `env` with the default rule tables."""
    return recommendation_engine.recommend(env)
