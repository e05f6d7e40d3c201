# incident_ai/backend/app/ml/errors.py


class ModelNotTrained(Exception):
    """Raised when the priority model artifact is missing or unreadable.

    Recoverable: the classifier retries the load on the next request.
    """


class EmptyCorpus(Exception):
    """Raised by the trainer when no usable (text, label) rows are left."""
