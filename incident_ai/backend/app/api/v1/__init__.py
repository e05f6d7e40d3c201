# incident_ai/backend/app/api/v1/__init__.py
