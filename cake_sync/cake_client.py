"""
CAKE Reporting API Client
Fetches Sub-Affiliate Summary reports for one affiliate, one date window at a time
"""

from typing import Any, Dict, List, Optional

import requests

from cake_sync.exceptions import RemoteError, SchemaError, TransportError
from cake_sync.settings import Settings
from cake_sync.utils.log import log_step, mask_secret
from cake_sync.utils.windows import DateWindow

SUB_AFFILIATE_SUMMARY_PATH = "/Reports/SubAffiliateSummary"


class CakeClient:
    """Client for the CAKE affiliate reporting API"""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "CakeClient":
        return cls(
            api_key=settings.CAKE_API_KEY,
            base_url=settings.CAKE_BASE_URL,
            timeout=settings.CAKE_REQUEST_TIMEOUT,
            session=session,
        )

    def close(self) -> None:
        self.session.close()

    # ============================================================
    # 📊 REPORTS
    # ============================================================

    def fetch_sub_affiliate_summary(self, affiliate_id: str, window: DateWindow) -> List[Dict[str, Any]]:
        """
        Fetch SubAffiliateSummary rows for a single window.

        Args:
            affiliate_id: CAKE affiliate whose sub-affiliates are reported
            window: Inclusive date range

        Returns:
            Raw rows from the response's `data` array (empty when absent)

        Raises:
            TransportError: the request never got a response
            RemoteError: CAKE answered with a non-2xx status
            SchemaError: the body is not the documented JSON shape
        """
        url = f"{self.base_url}{SUB_AFFILIATE_SUMMARY_PATH}"
        params = {
            "api_key": self.api_key,
            "affiliate_id": affiliate_id,
            "start_date": window.start.isoformat(),
            "end_date": window.end.isoformat(),
            "format": "json",
        }

        log_step(f"Fetching CAKE: {window} (affiliate {affiliate_id})", "PROGRESS")

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"CAKE request failed for {window}: {self._redact(str(e))}") from e

        if not response.ok:
            raise RemoteError(response.status_code, response.text, url=url)

        rows = self._extract_rows(response, window)
        log_step(f"  -> CAKE returned {len(rows)} rows for {window}")
        return rows

    def _extract_rows(self, response: requests.Response, window: DateWindow) -> List[Dict[str, Any]]:
        try:
            payload = response.json()
        except ValueError as e:
            raise SchemaError(f"CAKE response for {window} is not valid JSON") from e

        if not isinstance(payload, dict):
            raise SchemaError(
                f"CAKE response for {window} should be an object, got {type(payload).__name__}"
            )

        rows = payload.get("data")
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise SchemaError(
                f"CAKE `data` for {window} should be a list, got {type(rows).__name__}"
            )
        for idx, row in enumerate(rows):
            if not isinstance(row, dict):
                raise SchemaError(
                    f"CAKE row {idx} for {window} should be an object, got {type(row).__name__}"
                )
        return rows

    def _redact(self, text: str) -> str:
        """requests puts the full URL, api_key included, into its error messages"""
        if self.api_key:
            return text.replace(self.api_key, mask_secret(self.api_key))
        return text
