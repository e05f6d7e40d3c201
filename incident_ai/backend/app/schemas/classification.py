# incident_ai/backend/app/schemas/classification.py

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ..ml.model import PriorityClass


class ClassifyRequest(BaseModel):
    # Missing fields are treated as empty text
    title: Optional[str] = ""
    description: Optional[str] = ""


class ClassifyResponse(BaseModel):
    ok: bool
    reason: Optional[str] = None

    priority: Optional[PriorityClass] = None
    confidence: Optional[float] = None
    matched_rule: Optional[str] = None
    matched_rules: List[str] = Field(default_factory=list)
    distribution: Dict[PriorityClass, float] = Field(default_factory=dict)


class FeedbackRequest(BaseModel):
    action: Literal["accept", "override"]
    suggested: Optional[PriorityClass] = None
    final: Optional[PriorityClass] = None
    ts: Optional[datetime] = None


class FeedbackResponse(BaseModel):
    ok: bool = True


class ModelStatus(BaseModel):
    loaded: bool
    model_path: Optional[str] = None
