# incident_ai/__init__.py
