# incident_ai/backend/app/api/__init__.py
