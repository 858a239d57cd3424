"""
Service entry points for the triage console.

Services:
    dashboard: FastAPI operator service over the feed controller
"""
