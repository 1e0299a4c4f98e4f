"""HTTP client for the annotation service."""

from typing import Any

import requests
from loguru import logger

from focus_annotator.config import ClientSettings
from focus_annotator.core.retry import RetryPolicy, call_with_retry
from focus_annotator.errors import AnnotatorServiceError

# Five retries after the first attempt, 0.5s growing by 1.8x, capped at 5s.
CLIENT_RETRY = RetryPolicy(max_attempts=6, base_delay=0.5, factor=1.8, max_delay=5.0)

WARM_UP_TIMEOUT = 5.0


class AnnotatorApi:
    """Encapsulated annotation service API."""

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        session: requests.Session | None = None,
        retry: RetryPolicy = CLIENT_RETRY,
    ) -> None:
        settings = settings or ClientSettings.from_env()
        self.base_url = settings.service_url.rstrip("/")
        self.timeout = settings.timeout
        self.retry = retry
        self.sess = session or requests.Session()
        logger.debug("API ready: service at {!r}, timeout {}s", self.base_url, self.timeout)

    def health(self) -> dict[str, Any]:
        """Return the service health document."""
        try:
            r = self.sess.get(f"{self.base_url}/health", timeout=WARM_UP_TIMEOUT)
            r.raise_for_status()
            rv: dict[str, Any] = r.json()
        except requests.RequestException as e:
            msg = f"Health check failed: {e}"
            raise AnnotatorServiceError(msg) from e
        except ValueError as e:
            msg = "Health check returned invalid JSON"
            raise AnnotatorServiceError(msg) from e
        return rv

    def warm_up(self) -> bool:
        """Probe the service once so a cold instance starts spinning up."""
        try:
            self.health()
        except AnnotatorServiceError as e:
            logger.debug("Warm-up probe failed: {}", e)
            return False
        return True

    def annotate(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST an annotate request, retrying transient failures.

        Raises:
            AnnotatorServiceError: Network failure, HTTP error status, or an
                ``ok: false`` body.
        """
        return call_with_retry(
            lambda: self._post_annotate(payload),
            self.retry,
            description="Annotate request",
        )

    def _post_annotate(self, payload: dict[str, Any]) -> dict[str, Any]:
        logger.debug("Making request: annotate ({} frame(s))", len(payload.get("frames") or []))
        try:
            r = self.sess.post(f"{self.base_url}/annotate", json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            msg = f"Annotation service unreachable: {e}"
            raise AnnotatorServiceError(msg) from e

        try:
            rv = r.json()
        except ValueError:
            rv = None

        if r.status_code >= 400:
            detail = ""
            if isinstance(rv, dict):
                detail = str(rv.get("reason") or rv.get("error") or "")
            msg = f"Annotation service returned HTTP {r.status_code}"
            if detail:
                msg += f": {detail}"
            raise AnnotatorServiceError(msg, status=r.status_code)
        if not isinstance(rv, dict):
            msg = "Annotation service returned a non-JSON body"
            raise AnnotatorServiceError(msg, status=r.status_code)
        if not rv.get("ok"):
            msg = f"Annotation failed: {rv.get('error')!r}"
            raise AnnotatorServiceError(msg, status=r.status_code)
        return rv
