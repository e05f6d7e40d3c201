# tests/conftest.py
import pytest

from incident_ai.backend.app.ml.model import PriorityClass, TrainingExample
from incident_ai.backend.app.ml.predictor import ClassifierService
from incident_ai.backend.app.ml.train_classifier import build_model

# Two examples per class, no overlapping vocabulary between classes
CORPUS = [
    ("Graffiti on fence near meter vault", PriorityClass.LOW),
    ("Faded paint on curb marker", PriorityClass.LOW),
    ("Customer complaint about discolored tap", PriorityClass.MEDIUM),
    ("Odor complaint reported by resident downtown", PriorityClass.MEDIUM),
    ("Hydrant sheared by vehicle", PriorityClass.HIGH),
    ("Service line leak under sidewalk", PriorityClass.HIGH),
    ("Reservoir dam spillway failure", PriorityClass.CRITICAL),
    ("Treatment plant flood evacuation", PriorityClass.CRITICAL),
]


@pytest.fixture
def corpus():
    return [TrainingExample(text=text, label=label) for text, label in CORPUS]


@pytest.fixture
def model(corpus):
    return build_model(corpus)


@pytest.fixture
def classifier(model):
    return ClassifierService(model=model)
