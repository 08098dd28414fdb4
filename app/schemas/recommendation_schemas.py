"""
Pydantic schemas for the Crop Recommendation module.
Includes request/response schemas for recommendations and rule listings.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from enum import Enum


# ==================== ENUMS ====================

class SoilTypeEnum(str, Enum):
    """Soil categories understood by the crop rules."""
    LOAMY = "loamy"
    CLAYEY = "clayey"
    BLACK = "black"
    SANDY = "sandy"
    RED = "red"


class FertilizerCategoryEnum(str, Enum):
    NITROGEN = "nitrogen"
    PHOSPHORUS = "phosphorus"
    POTASSIUM = "potassium"
    ORGANIC = "organic"


# ==================== REQUEST SCHEMAS ====================

class NPKInput(BaseModel):
    """Soil NPK indices. 0 means the value was not provided."""
    nitrogen: float = Field(default=0, ge=0, description="Nitrogen index")
    phosphorus: float = Field(default=0, ge=0, description="Phosphorus index")
    potassium: float = Field(default=0, ge=0, description="Potassium index")


class RecommendationRequest(BaseModel):
    """Request schema for a crop and fertilizer recommendation."""
    temperature: Optional[float] = Field(None, description="Current temperature °C (0 = not provided)")
    # Kept as a plain string so an unknown category is reported by the engine
    # in its usual check order instead of by request parsing.
    soil_type: Optional[str] = Field(None, description="Soil type: loamy, clayey, black, sandy, red")
    npk: NPKInput = Field(default_factory=NPKInput)

    @field_validator("temperature", mode="before")
    @classmethod
    def blank_temperature_is_unset(cls, value):
        """An empty form field means the temperature was not entered."""
        if isinstance(value, str) and not value.strip():
            return None
        return value


# ==================== RESPONSE SCHEMAS ====================

class CropSuggestionResponse(BaseModel):
    """Suitable crop with resolved score and fixed agronomic metadata."""
    name: str
    suitability: int = Field(ge=0, le=100)
    reason: str
    growth_period: str
    expected_yield: str
    water_requirement: str


class FertilizerSuggestionResponse(BaseModel):
    name: str
    category: FertilizerCategoryEnum
    type: str
    application: str
    quantity: str
    timing: str


class RecommendationResponse(BaseModel):
    """Crops ranked by suitability; fertilizers in rule order, organic last."""
    crops: List[CropSuggestionResponse]
    fertilizers: List[FertilizerSuggestionResponse]


class ValidationErrorDetail(BaseModel):
    code: str
    message: str


class SoilTypeOption(BaseModel):
    value: SoilTypeEnum
    label: str


class SoilTypeListResponse(BaseModel):
    items: List[SoilTypeOption]


class CurrentConditionsResponse(BaseModel):
    """Prefill values for the advisory form."""
    temperature: float
    soil_type: Optional[SoilTypeEnum] = None
    npk: NPKInput


class CropRuleInfo(BaseModel):
    """Read-only view of one crop rule."""
    position: int = Field(..., description="Position in the rule table (tie-break order)")
    crop_name: str
    conditions: str
    min_temperature: float
    max_temperature: float
    required_soil: Optional[SoilTypeEnum] = None
    base_score: int
    base_reason: str
    soil_scores: Dict[str, int] = Field(default_factory=dict)
    growth_period: str
    expected_yield: str
    water_requirement: str


class CropRuleListResponse(BaseModel):
    items: List[CropRuleInfo]
    total: int
