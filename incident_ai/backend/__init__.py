# incident_ai/backend/__init__.py
