# incident_ai/backend/app/ml/__init__.py
