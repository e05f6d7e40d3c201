# incident_ai/backend/app/config.py
import os
from pathlib import Path

from dotenv import load_dotenv

# Load settings from .env at project root
load_dotenv()

APP_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = APP_DIR.parents[2]


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}")


class Settings:
    def __init__(self):
        # Artifact written by the trainer, read by the classifier
        self.MODEL_PATH = Path(
            os.getenv("PRIORITY_MODEL_PATH", APP_DIR / "ml" / "models" / "priority_nb.joblib")
        )
        self.TRAINING_CSV_PATH = Path(
            os.getenv("TRAINING_CSV_PATH", PROJECT_ROOT / "data" / "training.csv")
        )
        self.FEEDBACK_LOG_PATH = Path(
            os.getenv("ML_FEEDBACK_LOG_PATH", PROJECT_ROOT / "data" / "ml_feedback.log")
        )

        # Domain boost magnitudes (log space). Tuning constants, not derived.
        self.CRITICAL_BOOST = _float_env("CRITICAL_BOOST", 2.0)
        self.HIGH_BOOST = _float_env("HIGH_BOOST", 1.0)

        # Laplace smoothing used when training
        self.NB_SMOOTHING = _float_env("NB_SMOOTHING", 1.0)

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def get_settings() -> Settings:
    return Settings()
