"""
Flight anomaly triage console.

A controller that keeps an operator's view of flight-anomaly detections in
sync with an external analysis backend, across historical, research,
rule-detail, feedback and live monitoring modes.

This package provides:
- Data models for anomaly records, modes, filter criteria and fetch outcomes
- An abstract interface for anomaly sources and an HTTP backend client
- The feed controller (request lifecycle, realtime polling, merging)
- Classification and filtering of the working set
- Throttled audible alerting
- Configuration management
"""

__version__ = "0.1.0"
