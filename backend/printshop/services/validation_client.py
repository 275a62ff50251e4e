import requests
import logging
import os
import time
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_VALIDATE_URL = os.getenv(
    "PAPER_VALIDATE_URL", "http://localhost:8000/inventory/paper-request/validate"
)


class ValidationClientError(Exception):
    """Raised when the validate endpoint cannot be reached or answers with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class PaperValidationClient:
    """Client for the barcode validation endpoint used by scanner stations.

    Retries only on 5xx responses and connection errors, sleeping
    ``backoff * attempt`` seconds between attempts.
    """

    def __init__(self, url: str = None, token: str = None, max_retries: int = 2,
                 backoff: float = 1.0, timeout: float = 10):
        self.url = url or DEFAULT_VALIDATE_URL
        self.token = token
        self.max_retries = max_retries
        self.backoff = backoff
        self.timeout = timeout
        logger.debug("PaperValidationClient initialized url=%s max_retries=%s", self.url, self.max_retries)

    def validate(self, barcode: str, paper_type: str, gsm: Any, width: Any, length: Any) -> Dict[str, Any]:
        payload = {
            "barcode_id": barcode,
            "paper_type": paper_type,
            "gsm": str(gsm),
            "width": str(width),
            "length": str(length),
        }
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        resp = None
        for attempt in range(0, self.max_retries + 1):
            try:
                logger.debug("Validating barcode=%s attempt=%s", barcode, attempt + 1)
                resp = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
            except requests.RequestException as e:
                logger.warning("Attempt %s: validate request failed: %s", attempt + 1, e)
                if attempt >= self.max_retries:
                    raise ValidationClientError(f"Failed to connect to server after {attempt + 1} attempts") from e
                time.sleep(self.backoff * (attempt + 1))
                continue

            if resp.status_code < 500:
                break
            logger.warning("Attempt %s: server error status=%s", attempt + 1, resp.status_code)
            if attempt < self.max_retries:
                time.sleep(self.backoff * (attempt + 1))

        try:
            body = resp.json()
        except ValueError:
            raise ValidationClientError("Invalid response from server", status_code=resp.status_code)

        if not resp.ok:
            message = body.get("details") or body.get("error") or "Barcode validation failed"
            raise ValidationClientError(str(message), status_code=resp.status_code, body=body)
        logger.info("Barcode %s validated valid=%s", barcode, body.get("valid"))
        return body
