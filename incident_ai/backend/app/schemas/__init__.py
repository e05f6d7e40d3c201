# incident_ai/backend/app/schemas/__init__.py
