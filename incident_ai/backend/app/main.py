# incident_ai/backend/app/main.py
import logging
from typing import Optional

from fastapi import FastAPI

from .api.v1.ml import router as ml_router
from .config import Settings, get_settings
from .ml.feedback import FeedbackSink
from .ml.predictor import ClassifierService

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    classifier: Optional[ClassifierService] = None,
    feedback_sink: Optional[FeedbackSink] = None,
) -> FastAPI:
    """
    Build the app with one ClassifierService and one FeedbackSink per process.
    Tests pass their own instances; production builds them from settings.
    """
    settings = settings or get_settings()

    app = FastAPI(title="Incident Priority Classifier")
    app.state.settings = settings
    app.state.classifier = classifier or ClassifierService(
        model_path=settings.MODEL_PATH,
        critical_boost=settings.CRITICAL_BOOST,
        high_boost=settings.HIGH_BOOST,
    )
    app.state.feedback_sink = feedback_sink or FeedbackSink(settings.FEEDBACK_LOG_PATH)

    app.include_router(ml_router)

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


def _configure_logging() -> None:
    logging.basicConfig(
        level=get_settings().LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


_configure_logging()
app = create_app()
logger.info("[ML] Classifier model path: %s", app.state.classifier.model_path)
