"""
Crop Recommendation Router.
Provides endpoints for crop and fertilizer recommendations.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
import asyncio
import logging

from app.core import config
from app.schemas.recommendation_schemas import (
    RecommendationRequest,
    RecommendationResponse,
    CropSuggestionResponse,
    FertilizerSuggestionResponse,
    SoilTypeListResponse,
    SoilTypeOption,
    CurrentConditionsResponse,
    NPKInput,
    CropRuleInfo,
    CropRuleListResponse,
    ValidationErrorDetail,
)
from app.services.recommendation_engine import (
    RecommendationEngine,
    RecommendationResult,
    EnvironmentalInput,
    NPKValues,
    InputValidationError,
    recommendation_engine,
)
from app.services.recommendation_rules import DEFAULT_CONDITIONS, SOIL_TYPE_LABELS
from app.services.session_guard import (
    SingleFlightGuard,
    EvaluationInProgressError,
    session_guard,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


def get_recommendation_engine() -> RecommendationEngine:
    return recommendation_engine


def get_session_guard() -> SingleFlightGuard:
    return session_guard


def get_session_id(request: Request) -> str:
    """Session from the configured header, falling back to the client address."""
    session_id = request.headers.get(config.SESSION_HEADER)
    if session_id:
        return session_id
    return request.client.host if request.client else "anonymous"


def _to_environmental_input(payload: RecommendationRequest) -> EnvironmentalInput:
    soil_type = payload.soil_type.strip().lower() if payload.soil_type else None
    return EnvironmentalInput(
        temperature=payload.temperature,
        soil_type=soil_type or None,
        npk=NPKValues(
            nitrogen=payload.npk.nitrogen,
            phosphorus=payload.npk.phosphorus,
            potassium=payload.npk.potassium,
        ),
    )


def _to_response(result: RecommendationResult) -> RecommendationResponse:
    return RecommendationResponse(
        crops=[
            CropSuggestionResponse(
                name=crop.crop_name,
                suitability=crop.score,
                reason=crop.reason,
                growth_period=crop.metadata.growth_period,
                expected_yield=crop.metadata.expected_yield,
                water_requirement=crop.metadata.water_requirement,
            )
            for crop in result.crops
        ],
        fertilizers=[
            FertilizerSuggestionResponse(
                name=fert.name,
                category=fert.category,
                type=fert.fertilizer_type,
                application=fert.application,
                quantity=fert.quantity,
                timing=fert.timing,
            )
            for fert in result.fertilizers
        ],
    )


@router.post("", response_model=RecommendationResponse)
async def create_recommendation(
    payload: RecommendationRequest,
    session_id: str = Depends(get_session_id),
    engine: RecommendationEngine = Depends(get_recommendation_engine),
    guard: SingleFlightGuard = Depends(get_session_guard),
):
    """
    Evaluate crop suitability and fertilizer actions for the given conditions.

    Returns 422 with {code, message} for the first missing input and 409
    when the session already has an evaluation pending.
    """
    try:
        with guard.hold(session_id):
            result = engine.recommend(_to_environmental_input(payload))
            if config.PRESENTATION_DELAY_SECONDS > 0:
                await asyncio.sleep(config.PRESENTATION_DELAY_SECONDS)
    except EvaluationInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except InputValidationError as e:
        logger.info(f"[Recommend] Validation failed for session {session_id}: {e.code.value}")
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=ValidationErrorDetail(code=e.code.value, message=e.message).model_dump(),
        )

    return _to_response(result)


@router.get("/soil-types", response_model=SoilTypeListResponse)
async def list_soil_types():
    """Soil categories accepted by the crop rules, with display labels."""
    return SoilTypeListResponse(
        items=[SoilTypeOption(value=value, label=label) for value, label in SOIL_TYPE_LABELS.items()]
    )


@router.get("/current-conditions", response_model=CurrentConditionsResponse)
async def get_current_conditions():
    """Default field conditions used to prefill the recommendation form."""
    return CurrentConditionsResponse(
        temperature=DEFAULT_CONDITIONS["temperature"],
        soil_type=DEFAULT_CONDITIONS["soil_type"],
        npk=NPKInput(**DEFAULT_CONDITIONS["npk"]),
    )


@router.get("/crop-rules", response_model=CropRuleListResponse)
async def list_crop_rules(engine: RecommendationEngine = Depends(get_recommendation_engine)):
    """Crop rule table in evaluation order."""
    items = [
        CropRuleInfo(
            position=position,
            crop_name=rule.crop_name,
            conditions=rule.describe_conditions(),
            min_temperature=rule.min_temperature,
            max_temperature=rule.max_temperature,
            required_soil=rule.required_soil,
            base_score=rule.base_score,
            base_reason=rule.base_reason,
            soil_scores={soil: modifier.score for soil, modifier in rule.soil_modifiers.items()},
            growth_period=rule.metadata.growth_period,
            expected_yield=rule.metadata.expected_yield,
            water_requirement=rule.metadata.water_requirement,
        )
        for position, rule in enumerate(engine.crop_rules, start=1)
    ]
    return CropRuleListResponse(items=items, total=len(items))
