"""
REST API endpoints for the triage console.

This package provides FastAPI routers for:
- Feed: Filtered anomaly list, record selection, external records, refresh
- Mode: Mode, date and rule selection, rule catalog
- Health: Controller, poller and alert status

"""
