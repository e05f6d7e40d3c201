# incident_ai/backend/app/__init__.py
