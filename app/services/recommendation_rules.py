"""
Deterministic agronomic rules and thresholds for crop and fertilizer advice.

Crop suitability rows and NPK fertilizer rows are plain frozen records; the
engine only folds over them. Table order is significant: it is the
tie-break order for equal scores and the output order for fertilizer
actions.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

# ==================== SOIL CATEGORIES ====================

SOIL_LOAMY = "loamy"
SOIL_CLAYEY = "clayey"
SOIL_BLACK = "black"
SOIL_SANDY = "sandy"
SOIL_RED = "red"

SOIL_TYPES = (SOIL_LOAMY, SOIL_CLAYEY, SOIL_BLACK, SOIL_SANDY, SOIL_RED)

SOIL_TYPE_LABELS = {
    SOIL_LOAMY: "Loamy Soil",
    SOIL_CLAYEY: "Clayey Soil",
    SOIL_BLACK: "Black Soil",
    SOIL_SANDY: "Sandy Soil",
    SOIL_RED: "Red Soil",
}

# ==================== INPUT THRESHOLDS ====================

# A temperature of exactly 0 is indistinguishable from an empty form field
TEMPERATURE_UNSET = 0.0

# Outside this band a reading is accepted but logged as implausible
TEMPERATURE_PLAUSIBLE_MIN = -10.0
TEMPERATURE_PLAUSIBLE_MAX = 60.0

# Strict "below" thresholds that trigger a fertilizer action
NITROGEN_LOW_THRESHOLD = 50.0
PHOSPHORUS_LOW_THRESHOLD = 40.0
POTASSIUM_LOW_THRESHOLD = 45.0

# Cotton needs potassium strictly above this index
COTTON_MIN_POTASSIUM = 40.0

# Prefill values the advisory form loads before the farmer edits them
DEFAULT_CONDITIONS = {
    "temperature": 28.0,
    "soil_type": None,
    "npk": {"nitrogen": 45.0, "phosphorus": 35.0, "potassium": 50.0},
}


# ==================== CROP RULES ====================

@dataclass(frozen=True)
class CropMetadata:
    """Descriptive fields copied verbatim into every suggestion."""
    growth_period: str
    expected_yield: str
    water_requirement: str


@dataclass(frozen=True)
class SoilModifier:
    """Score override for one soil category. `reason` may contain {soil}."""
    score: int
    reason: str


@dataclass(frozen=True)
class CropRule:
    """
    One row of the crop suitability table.

    A rule applies when the temperature lies in the inclusive range
    [min_temperature, max_temperature] and, when set, the soil category
    equals `required_soil` and the `nutrient_minimum` nutrient is strictly
    above its threshold.
    """
    crop_name: str
    min_temperature: float
    max_temperature: float
    base_score: int
    base_reason: str
    metadata: CropMetadata
    soil_modifiers: Mapping[str, SoilModifier] = field(default_factory=lambda: MappingProxyType({}))
    required_soil: Optional[str] = None
    nutrient_minimum: Optional[Tuple[str, float]] = None

    def applies_to(self, temperature: float, soil_type: Optional[str], npk) -> bool:
        """Evaluate the applicability predicate against raw input values."""
        if not self.min_temperature <= temperature <= self.max_temperature:
            return False
        if self.required_soil is not None and soil_type != self.required_soil:
            return False
        if self.nutrient_minimum is not None:
            nutrient, threshold = self.nutrient_minimum
            if not getattr(npk, nutrient) > threshold:
                return False
        return True

    def resolve(self, soil_type: Optional[str]) -> Tuple[int, str]:
        """Return (score, reason) for a soil category, falling back to the base values."""
        modifier = self.soil_modifiers.get(soil_type) if soil_type else None
        if modifier is None:
            return self.base_score, self.base_reason
        return modifier.score, modifier.reason.format(soil=soil_type)

    def describe_conditions(self) -> str:
        parts = [f"{self.min_temperature:g} <= temperature <= {self.max_temperature:g}"]
        if self.required_soil:
            parts.insert(0, f"soil = {self.required_soil}")
        if self.nutrient_minimum:
            nutrient, threshold = self.nutrient_minimum
            parts.append(f"{nutrient} > {threshold:g}")
        return " and ".join(parts)


def _modifiers(**entries: SoilModifier) -> Mapping[str, SoilModifier]:
    return MappingProxyType(dict(entries))


_RICE_WET_SOIL = SoilModifier(
    95, "Optimal temperature and {soil} soil excellent for rice cultivation with high water retention"
)
_WHEAT_IDEAL_SOIL = "Good temperature range and {soil} soil ideal for wheat cultivation"
_COTTON_RICH_SOIL = SoilModifier(
    90, "High potassium, warm temperature and {soil} soil excellent for cotton cultivation"
)
_POTATO_DRAINED_SOIL = SoilModifier(
    85, "Cool temperature and {soil} soil excellent for potato cultivation with good drainage"
)

CROP_RULES: Tuple[CropRule, ...] = (
    CropRule(
        crop_name="Rice",
        min_temperature=25.0,
        max_temperature=35.0,
        base_score=85,
        base_reason="Optimal temperature for rice cultivation",
        metadata=CropMetadata("120-140 days", "4-6 tons/hectare", "High (1200-1500mm)"),
        soil_modifiers=_modifiers(
            clayey=_RICE_WET_SOIL,
            black=_RICE_WET_SOIL,
            loamy=SoilModifier(90, "Optimal temperature and {soil} soil good for rice cultivation"),
        ),
    ),
    CropRule(
        crop_name="Wheat",
        min_temperature=20.0,
        max_temperature=30.0,
        base_score=80,
        base_reason="Good temperature range for wheat",
        metadata=CropMetadata("120-150 days", "3-4 tons/hectare", "Medium (450-650mm)"),
        soil_modifiers=_modifiers(
            loamy=SoilModifier(90, _WHEAT_IDEAL_SOIL),
            black=SoilModifier(85, _WHEAT_IDEAL_SOIL),
            clayey=SoilModifier(85, "Good temperature and {soil} soil suitable for wheat"),
        ),
    ),
    CropRule(
        crop_name="Cotton",
        min_temperature=25.0,
        max_temperature=40.0,
        base_score=75,
        base_reason="High potassium and warm temperature for cotton",
        metadata=CropMetadata("160-200 days", "2-3 tons/hectare", "Medium (700-1200mm)"),
        soil_modifiers=_modifiers(
            black=_COTTON_RICH_SOIL,
            red=_COTTON_RICH_SOIL,
            loamy=SoilModifier(85, "High potassium, warm temperature and {soil} soil good for cotton"),
        ),
        nutrient_minimum=("potassium", COTTON_MIN_POTASSIUM),
    ),
    CropRule(
        crop_name="Potato",
        min_temperature=15.0,
        max_temperature=25.0,
        base_score=70,
        base_reason="Cool temperature suitable for potato",
        metadata=CropMetadata("90-120 days", "20-25 tons/hectare", "Medium (500-700mm)"),
        soil_modifiers=_modifiers(
            loamy=_POTATO_DRAINED_SOIL,
            sandy=_POTATO_DRAINED_SOIL,
            red=SoilModifier(80, "Cool temperature and {soil} soil good for potato cultivation"),
        ),
    ),
    # Soil-specific bonus crops, independent of NPK
    CropRule(
        crop_name="Groundnut",
        min_temperature=20.0,
        max_temperature=35.0,
        base_score=88,
        base_reason="Sandy soil with good drainage perfect for groundnut cultivation",
        metadata=CropMetadata("120-130 days", "2-3 tons/hectare", "Medium (500-700mm)"),
        required_soil=SOIL_SANDY,
    ),
    CropRule(
        crop_name="Millets",
        min_temperature=20.0,
        max_temperature=30.0,
        base_score=85,
        base_reason="Red soil with good mineral content ideal for drought-resistant millets",
        metadata=CropMetadata("75-100 days", "1-2 tons/hectare", "Low (300-500mm)"),
        required_soil=SOIL_RED,
    ),
)


# ==================== FERTILIZER RULES ====================

@dataclass(frozen=True)
class FertilizerRecommendation:
    name: str
    category: str
    fertilizer_type: str
    application: str
    quantity: str
    timing: str


@dataclass(frozen=True)
class FertilizerRule:
    """Recommend `recommendation` when `nutrient` is strictly below `threshold`."""
    nutrient: str
    threshold: float
    recommendation: FertilizerRecommendation

    def is_triggered(self, npk) -> bool:
        return getattr(npk, self.nutrient) < self.threshold


FERTILIZER_RULES: Tuple[FertilizerRule, ...] = (
    FertilizerRule(
        nutrient="nitrogen",
        threshold=NITROGEN_LOW_THRESHOLD,
        recommendation=FertilizerRecommendation(
            name="Urea",
            category="nitrogen",
            fertilizer_type="Nitrogen Fertilizer",
            application="Soil Application",
            quantity="100-150 kg/hectare",
            timing="Pre-sowing and top-dressing",
        ),
    ),
    FertilizerRule(
        nutrient="phosphorus",
        threshold=PHOSPHORUS_LOW_THRESHOLD,
        recommendation=FertilizerRecommendation(
            name="DAP (Di-Ammonium Phosphate)",
            category="phosphorus",
            fertilizer_type="Phosphorus Fertilizer",
            application="Basal Application",
            quantity="100-125 kg/hectare",
            timing="At the time of sowing",
        ),
    ),
    FertilizerRule(
        nutrient="potassium",
        threshold=POTASSIUM_LOW_THRESHOLD,
        recommendation=FertilizerRecommendation(
            name="Muriate of Potash",
            category="potassium",
            fertilizer_type="Potassium Fertilizer",
            application="Soil Application",
            quantity="80-100 kg/hectare",
            timing="Pre-sowing",
        ),
    ),
)

ORGANIC_RECOMMENDATION = FertilizerRecommendation(
    name="Vermicompost",
    category="organic",
    fertilizer_type="Organic Fertilizer",
    application="Soil Incorporation",
    quantity="2-3 tons/hectare",
    timing="15-20 days before sowing",
)
