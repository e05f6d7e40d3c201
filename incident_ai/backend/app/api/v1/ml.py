# incident_ai/backend/app/api/v1/ml.py

from fastapi import APIRouter, Depends, Request

from ...ml.errors import ModelNotTrained
from ...ml.feedback import FeedbackSink
from ...ml.predictor import ClassifierService
from ...schemas.classification import (
    ClassifyRequest,
    ClassifyResponse,
    FeedbackRequest,
    FeedbackResponse,
    ModelStatus,
)

router = APIRouter(prefix="/ml", tags=["ml"])


def get_classifier(request: Request) -> ClassifierService:
    """FastAPI dependency: the process-wide classifier built in create_app()."""
    return request.app.state.classifier


def get_feedback_sink(request: Request) -> FeedbackSink:
    return request.app.state.feedback_sink


@router.post("/classify", response_model=ClassifyResponse)
def classify(
    payload: ClassifyRequest,
    classifier: ClassifierService = Depends(get_classifier),
):
    """
    Suggest a priority for an incident title/description.

    When no model is trained yet the caller gets ok=false with
    reason "not_trained" and should fall back to its manual default.
    """
    try:
        result = classifier.classify(payload.title, payload.description)
    except ModelNotTrained:
        return ClassifyResponse(ok=False, reason="not_trained")

    return ClassifyResponse(
        ok=True,
        priority=result.priority_class,
        confidence=result.confidence,
        matched_rule=result.matched_rule_tag,
        matched_rules=result.matched_rule_tags,
        distribution=result.distribution,
    )


@router.post("/feedback", response_model=FeedbackResponse)
def feedback(
    payload: FeedbackRequest,
    sink: FeedbackSink = Depends(get_feedback_sink),
):
    # Fire-and-forget: a failed write is already logged by the sink
    sink.record(
        action=payload.action,
        suggested_class=payload.suggested,
        final_class=payload.final,
        timestamp=payload.ts,
    )
    return FeedbackResponse(ok=True)


@router.get("/status", response_model=ModelStatus)
def model_status(classifier: ClassifierService = Depends(get_classifier)):
    return ModelStatus(
        loaded=classifier.is_loaded,
        model_path=str(classifier.model_path) if classifier.model_path else None,
    )
