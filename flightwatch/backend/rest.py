"""
Analysis backend REST client.

Fetches anomaly records and the rule catalog from the flight analysis
backend. All endpoints are GET requests returning JSON lists.

Endpoints (relative to ``{base_url}{api_prefix}``):
    Live anomalies:       GET /live/anomalies?start_ts={s}&end_ts={e}
    Research anomalies:   GET /research/anomalies?start_ts={s}&end_ts={e}
    Rule catalog:         GET /rules
    Flights by rule:      GET /rules/{rule_id}/flights
    Tagged feedback:      GET /feedback/tagged/history?start_ts=&end_ts=&limit=&include_normal=
    Legacy feedback:      GET /feedback/history?start_ts=&end_ts=&limit=

Errors:
    Any non-2xx answer is raised as BackendError. A body that is not JSON
    or not a list is raised as MalformedResponseError.
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from flightwatch.backend.normalizer import BackendNormalizer
from flightwatch.interfaces.anomaly_source import (
    AnomalySource,
    BackendError,
    MalformedResponseError,
)
from flightwatch.models.anomaly import AnomalyRecord, RuleSummary

logger = structlog.get_logger(__name__)


class BackendRestClient(AnomalySource):
    """
    Async REST client for the analysis backend.

    The aiohttp session is created lazily on first use and reused for all
    requests until ``close()``.

    Attributes:
        base_url: Backend base URL.
        api_prefix: Path prefix of the API routes.
        timeout_seconds: Total timeout of one request.

    Example:
        >>> client = BackendRestClient(base_url="http://localhost:8000")
        >>> records = await client.get_live_anomalies(1752000000, 1752003600)
        >>> await client.close()
    """

    def __init__(
        self,
        base_url: str,
        api_prefix: str = "/api",
        timeout_seconds: float = 30,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize REST client.

        Args:
            base_url: Backend base URL.
            api_prefix: Path prefix of the API routes.
            timeout_seconds: Request timeout in seconds.
            session: Existing session to use instead of creating one.
        """
        self.base_url = base_url.rstrip("/")
        self.api_prefix = "/" + api_prefix.strip("/") if api_prefix.strip("/") else ""
        self.timeout_seconds = timeout_seconds

        self._session: Optional[aiohttp.ClientSession] = session

        logger.info(
            "backend_client_initialized",
            base_url=self.base_url,
            api_prefix=self.api_prefix,
            timeout_seconds=timeout_seconds,
        )

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session is created."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"User-Agent": "flightwatch-console/0.1"},
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("backend_client_session_closed", base_url=self.base_url)

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{self.api_prefix}{endpoint}"

    async def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Make a GET request and decode the JSON body.

        Args:
            endpoint: API endpoint path (after the prefix).
            params: Query parameters.

        Returns:
            Any: Decoded JSON body.

        Raises:
            BackendError: If the request fails or the status is not 2xx.
            MalformedResponseError: If the body is not valid JSON.
        """
        session = await self._ensure_session()
        url = self._url(endpoint)

        try:
            async with session.get(url, params=params) as response:
                if response.status >= 300:
                    error_text = await response.text()
                    logger.warning(
                        "backend_request_failed",
                        url=url,
                        status=response.status,
                        error=error_text[:200],
                    )
                    raise BackendError(
                        f"Backend request failed with status {response.status}",
                        status=response.status,
                    )

                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise MalformedResponseError(f"Invalid JSON from {endpoint}: {e}") from e

        except aiohttp.ClientError as e:
            logger.warning("backend_client_error", url=url, error=str(e))
            raise BackendError(f"Backend request failed: {e}") from e
        except asyncio.TimeoutError as e:
            logger.warning("backend_timeout", url=url, timeout=self.timeout_seconds)
            raise BackendError(f"Backend request timeout after {self.timeout_seconds}s") from e

    @staticmethod
    def _history_params(
        start_ts: int,
        end_ts: Optional[int],
        limit: int,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"start_ts": str(start_ts), "limit": str(limit)}
        if end_ts is not None:
            params["end_ts"] = str(end_ts)
        return params

    async def get_live_anomalies(self, start_ts: int, end_ts: int) -> List[AnomalyRecord]:
        """Fetch live-pipeline anomalies in ``[start_ts, end_ts]``."""
        payload = await self._get(
            "/live/anomalies",
            {"start_ts": str(start_ts), "end_ts": str(end_ts)},
        )
        records = BackendNormalizer.normalize_records(payload, source="live")

        logger.debug(
            "live_anomalies_fetched",
            start_ts=start_ts,
            end_ts=end_ts,
            count=len(records),
        )

        return records

    async def get_research_anomalies(self, start_ts: int, end_ts: int) -> List[AnomalyRecord]:
        """Fetch research-pipeline anomalies in ``[start_ts, end_ts]``."""
        payload = await self._get(
            "/research/anomalies",
            {"start_ts": str(start_ts), "end_ts": str(end_ts)},
        )
        records = BackendNormalizer.normalize_records(payload, source="research")

        logger.debug(
            "research_anomalies_fetched",
            start_ts=start_ts,
            end_ts=end_ts,
            count=len(records),
        )

        return records

    async def get_rules(self) -> List[RuleSummary]:
        """Fetch the rule catalog."""
        payload = await self._get("/rules")
        return BackendNormalizer.normalize_rules(payload)

    async def get_flights_by_rule(self, rule_id: int) -> List[AnomalyRecord]:
        """Fetch flights matched by one rule."""
        payload = await self._get(f"/rules/{rule_id}/flights")
        records = BackendNormalizer.normalize_records(payload, source=f"rule:{rule_id}")

        logger.debug("rule_flights_fetched", rule_id=rule_id, count=len(records))

        return records

    async def get_tagged_feedback_history(
        self,
        start_ts: int = 0,
        end_ts: Optional[int] = None,
        limit: int = 100,
        include_normal: bool = True,
    ) -> List[AnomalyRecord]:
        """Fetch operator-labelled flights from the curated feedback store."""
        params = self._history_params(start_ts, end_ts, limit)
        params["include_normal"] = "true" if include_normal else "false"
        payload = await self._get("/feedback/tagged/history", params)
        return BackendNormalizer.normalize_records(payload, source="feedback_tagged")

    async def get_feedback_history(
        self,
        start_ts: int = 0,
        end_ts: Optional[int] = None,
        limit: int = 100,
    ) -> List[AnomalyRecord]:
        """Fetch feedback history from the legacy store."""
        payload = await self._get(
            "/feedback/history",
            self._history_params(start_ts, end_ts, limit),
        )
        return BackendNormalizer.normalize_records(payload, source="feedback_legacy")

    def __repr__(self) -> str:
        """Return string representation."""
        return f"BackendRestClient(base_url={self.base_url}, prefix={self.api_prefix})"
