# tests/test_predictor.py

import math
import threading
import time

import pytest

from incident_ai.backend.app.ml import predictor as predictor_module
from incident_ai.backend.app.ml.errors import ModelNotTrained
from incident_ai.backend.app.ml.model import PriorityClass, TrainingExample, save_model
from incident_ai.backend.app.ml.predictor import ClassifierService, softmax
from incident_ai.backend.app.ml.train_classifier import build_model


def test_empty_input_returns_neutral_default(classifier):
    result = classifier.classify("", "")
    assert result.priority_class == PriorityClass.MEDIUM
    assert result.confidence == 0
    assert result.matched_rule_tag is None


def test_empty_input_needs_no_model(tmp_path):
    service = ClassifierService(model_path=tmp_path / "missing.joblib")
    result = service.classify(None, "   the of ")
    assert result.priority_class == PriorityClass.MEDIUM
    assert result.confidence == 0
    assert not service.is_loaded


def test_classify_is_deterministic(classifier):
    first = classifier.classify("Hydrant sheared", "vehicle hit hydrant on Oak")
    for _ in range(5):
        assert classifier.classify("Hydrant sheared", "vehicle hit hydrant on Oak") == first


@pytest.mark.parametrize(
    "title, description",
    [
        ("Hydrant sheared", "vehicle hit it"),
        ("pipe issue", ""),
        ("Boil water advisory", "sewage overflow, chlorine leak, main break"),
        ("Résumé ☃", "日本語のテキスト"),
    ],
)
def test_confidence_is_max_of_a_distribution(classifier, title, description):
    result = classifier.classify(title, description)
    if not result.distribution:
        assert result.confidence == 0
        return
    assert set(result.distribution) == set(PriorityClass)
    assert sum(result.distribution.values()) == pytest.approx(1.0)
    assert all(0.0 <= p <= 1.0 for p in result.distribution.values())
    assert 0.0 <= result.confidence <= 1.0
    assert result.confidence == max(result.distribution.values())
    assert result.distribution[result.priority_class] == result.confidence


def test_held_out_phrase_end_to_end(classifier):
    result = classifier.classify("spillway failure at reservoir", "")
    assert result.priority_class == PriorityClass.CRITICAL
    assert result.confidence > 0.5
    assert result.matched_rule_tag is None


def test_boost_never_lowers_critical(classifier):
    plain = classifier.classify("pipe issue", "")
    boosted = classifier.classify("pipe issue, boil water advisory issued", "")

    assert boosted.distribution[PriorityClass.CRITICAL] >= plain.distribution[PriorityClass.CRITICAL]
    assert boosted.priority_class == PriorityClass.CRITICAL
    assert boosted.matched_rule_tag == "boil_water_advisory"
    assert boosted.matched_rule_tags == ["boil_water_advisory"]


def test_boost_adds_configured_amount_in_log_space(model):
    service = ClassifierService(model=model, critical_boost=3.0, high_boost=1.5)
    base, _ = service.score("hydrant vehicle", "")
    boosted, tags = service.score("hydrant vehicle", "boil water notice; main break")

    assert tags == ["boil_water_advisory", "main_break"]
    # "boil", "water", "notice", "main", "break" are not in the vocabulary
    assert boosted[PriorityClass.CRITICAL] - base[PriorityClass.CRITICAL] == pytest.approx(3.0)
    assert boosted[PriorityClass.HIGH] - base[PriorityClass.HIGH] == pytest.approx(1.5)
    assert boosted[PriorityClass.LOW] == pytest.approx(base[PriorityClass.LOW])


def test_rules_scan_raw_text_case_insensitive(classifier):
    result = classifier.classify("SEWAGE OVERFLOW", "")
    assert result.matched_rule_tag == "sewage_overflow"


def test_log_scores_match_formula(model):
    service = ClassifierService(model=model)
    scores, tags = service.score("hydrant", "")
    assert tags == []

    idx = model.vocabulary["hydrant"]
    vocab = model.vocabulary_size
    for label in PriorityClass:
        prior = math.log((model.class_document_counts[label] + 1) / (model.total_document_count + 4))
        count = model.class_token_counts[label].get(idx, 0)
        total = sum(model.class_token_counts[label].values())
        likelihood = math.log((count + model.smoothing) / (total + model.smoothing * vocab))
        assert scores[label] == pytest.approx(prior + likelihood)


def test_unknown_tokens_contribute_nothing(classifier):
    known, _ = classifier.score("hydrant", "")
    padded, _ = classifier.score("hydrant", "zzzqx blorf")
    assert padded == known


def test_classes_without_training_data_stay_in_distribution():
    model = build_model(
        [
            TrainingExample("Graffiti on fence", PriorityClass.LOW),
            TrainingExample("Hydrant sheared", PriorityClass.HIGH),
        ]
    )
    service = ClassifierService(model=model)
    result = service.classify("graffiti", "")

    assert set(result.distribution) == set(PriorityClass)
    assert result.priority_class == PriorityClass.LOW
    assert 0 < result.distribution[PriorityClass.MEDIUM] < result.distribution[PriorityClass.LOW]

    scores, _ = service.score("graffiti", "")
    # empty class: smoothed prior 1 / (N + 4), smoothing-only likelihood 1 / |V|
    expected = math.log(1 / 6) + math.log(1 / model.vocabulary_size)
    assert scores[PriorityClass.MEDIUM] == pytest.approx(expected)


def test_ties_go_to_first_class_in_order(classifier):
    # no known tokens, equal priors -> uniform distribution
    result = classifier.classify("zzzqx", "")
    assert result.distribution[PriorityClass.LOW] == pytest.approx(0.25)
    assert result.priority_class == PriorityClass.LOW


def test_softmax_is_stable_for_large_scores():
    probs = softmax({PriorityClass.LOW: -10000.0, PriorityClass.HIGH: -10001.0})
    assert sum(probs.values()) == pytest.approx(1.0)
    assert probs[PriorityClass.LOW] > probs[PriorityClass.HIGH]


def test_missing_model_raises_and_retries(tmp_path, model):
    path = tmp_path / "priority_nb.joblib"
    service = ClassifierService(model_path=path)

    with pytest.raises(ModelNotTrained):
        service.classify("Hydrant sheared", "")
    assert not service.is_loaded
    with pytest.raises(ModelNotTrained):
        service.classify("Hydrant sheared", "")

    save_model(model, path)
    result = service.classify("Hydrant sheared", "")
    assert service.is_loaded
    assert result.priority_class == PriorityClass.HIGH


def test_malformed_model_raises(tmp_path):
    path = tmp_path / "priority_nb.joblib"
    path.write_bytes(b"not a joblib file")
    service = ClassifierService(model_path=path)
    with pytest.raises(ModelNotTrained):
        service.classify("Hydrant sheared", "")
    assert not service.is_loaded


def test_no_hot_reload_after_load(tmp_path, model):
    path = save_model(model, tmp_path / "priority_nb.joblib")
    service = ClassifierService(model_path=path)
    loaded = service.load()
    path.unlink()
    assert service.load() is loaded
    assert service.classify("Hydrant sheared", "").priority_class == PriorityClass.HIGH


def test_concurrent_first_requests_load_once(tmp_path, model, monkeypatch):
    calls = []

    def slow_load(path):
        calls.append(path)
        time.sleep(0.05)
        return model

    monkeypatch.setattr(predictor_module, "load_model", slow_load)
    service = ClassifierService(model_path=tmp_path / "priority_nb.joblib")

    results = []
    threads = [
        threading.Thread(target=lambda: results.append(service.classify("Hydrant sheared", "")))
        for _ in range(8)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert len(results) == 8
    assert all(r.priority_class == PriorityClass.HIGH for r in results)
