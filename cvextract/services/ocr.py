"""
FJSoftLab OCR client: submit a document URL, poll the job, fetch the text.

    submit ──▶ job_id ──▶ poll (queued … every 5s, max 60) ──▶ result
                                 │
                                 ├── failed  → OcrError
                                 └── queued after last attempt → OcrTimeoutError
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

import httpx

from ..core.config import get_settings
from ..core.errors import OcrError, OcrTimeoutError
from .http import get_http_client

logger = logging.getLogger(__name__)

# Both casings are live on the provider side; the first that answers 2xx wins.
SUBMIT_PATHS = ("/api/v1/ocr", "/api/V1/ocr")
STATUS_PATH = "/api/v1/status/{job_id}"
RESULT_PATH = "/api/v1/result/{job_id}"

MAX_ATTEMPTS = 60
POLL_INTERVAL = 5.0


class OcrJobStatus(str, Enum):
    QUEUED = "queued"
    COMPLETED = "completed"
    FAILED = "failed"


class OcrClient:
    def __init__(
        self,
        api_key: str,
        base_url: str,
        http: Optional[httpx.AsyncClient] = None,
        poll_interval: float = POLL_INTERVAL,
        max_attempts: int = MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._http = http
        self._sleep = sleep

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http or get_http_client()

    def _headers(self) -> dict[str, str]:
        return {"x-authentication": self.api_key}

    async def extract(self, document_url: str) -> str:
        """Run a full job for a URL and return the extracted text."""
        job_id = await self.submit(document_url)
        await self.wait_for_completion(job_id)
        return await self.fetch_result(job_id)

    async def submit(self, document_url: str) -> str:
        if not self.api_key:
            raise OcrError("FJSOFTLAB_OCR_API_KEY is missing")

        for path in SUBMIT_PATHS:
            url = f"{self.base_url}{path}"
            try:
                resp = await self.http.post(
                    url,
                    json={"url": document_url},
                    headers={**self._headers(), "Content-Type": "application/json"},
                )
            except httpx.HTTPError as e:
                logger.warning("OCR submit to %s failed: %s", url, e)
                continue

            if resp.is_error:
                logger.warning(
                    "OCR submit to %s failed: %d %s", url, resp.status_code, resp.text[:200]
                )
                continue

            body = json_body(resp)
            job_id = body.get("job_id") or body.get("id")
            if not job_id:
                raise OcrError("OCR processing failed: no job id returned")

            logger.info("OCR job submitted: %s", job_id)
            return str(job_id)

        raise OcrError("OCR processing failed: job submission rejected")

    async def get_status(self, job_id: str) -> str:
        url = f"{self.base_url}{STATUS_PATH.format(job_id=job_id)}"
        try:
            resp = await self.http.get(url, headers=self._headers())
        except httpx.HTTPError as e:
            raise OcrError(f"OCR status check failed: {e}") from e

        if resp.is_error:
            raise OcrError(f"OCR status check failed: {resp.status_code}")

        status = json_body(resp).get("status") or ""
        return str(status).lower()

    async def wait_for_completion(self, job_id: str) -> str:
        """
        Poll until the job leaves the queued state.

        Sleeps before each check. Raises OcrError on "failed" and
        OcrTimeoutError if still queued after max_attempts checks.
        """
        status = OcrJobStatus.QUEUED.value
        attempts = 0

        while status == OcrJobStatus.QUEUED.value and attempts < self.max_attempts:
            await self._sleep(self.poll_interval)
            attempts += 1
            status = await self.get_status(job_id)
            logger.debug("OCR job %s: %s (attempt %d/%d)", job_id, status, attempts, self.max_attempts)

        if status == OcrJobStatus.FAILED.value:
            raise OcrError("OCR processing failed with status: failed")
        if status == OcrJobStatus.QUEUED.value:
            raise OcrTimeoutError(f"OCR processing timeout after {attempts} attempts")

        logger.info("OCR job %s finished with status %s after %d attempts", job_id, status, attempts)
        return status

    async def fetch_result(self, job_id: str) -> str:
        url = f"{self.base_url}{RESULT_PATH.format(job_id=job_id)}"
        try:
            resp = await self.http.get(url, headers=self._headers())
        except httpx.HTTPError as e:
            raise OcrError(f"OCR result retrieval error: {e}") from e

        if resp.is_error:
            raise OcrError(f"OCR result retrieval error: {resp.status_code} - {resp.text[:500]}")

        text = parse_result(resp.text)
        if not text:
            raise OcrError("Empty markdown returned from OCR result")
        return text


def json_body(resp: httpx.Response) -> dict:
    """Decoded JSON object of a submit or status response."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        logger.error("OCR service returned an invalid body: %s", resp.text[:200])
        raise OcrError("OCR processing failed: invalid response")
    return body


def parse_result(raw: str) -> str:
    """JSON payload with markdown/content/text, else the raw body as text."""
    try:
        parsed = json.loads(raw)
    except ValueError:
        return raw

    if isinstance(parsed, dict):
        return parsed.get("markdown") or parsed.get("content") or parsed.get("text") or ""
    if isinstance(parsed, str):
        return parsed
    return raw


def get_ocr_client() -> OcrClient:
    settings = get_settings()
    return OcrClient(
        api_key=settings.ocr_api_key,
        base_url=settings.ocr_base_url,
        poll_interval=settings.ocr_poll_interval,
        max_attempts=settings.ocr_max_attempts,
    )
