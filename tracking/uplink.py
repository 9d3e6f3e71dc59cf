#Purpose: Push accepted samples to the remote location store.
#LocationPushClient is the thin HTTP adapter: PUT /api/employees/{id}/location.
#LocationUplink applies the retry policy on top of it:
#one retry after a fixed delay, only for transient network errors;
#anything else (validation, 4xx/5xx) counts as a failure straight away.
#Failure counting and the forced stop live in the session manager.

from dotenv import load_dotenv
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
import requests

from .models import LocationSample

logger = logging.getLogger(__name__)

# Example in .env:
# TRACKING_API_BASE_URL=https://crm.example.com
load_dotenv()
BASE_URL = os.getenv("TRACKING_API_BASE_URL")


class PushError(Exception):
    """Base class for location push failures."""
    transient = False


class PushNetworkError(PushError):
    """Connection failure or timeout. Worth one retry."""
    transient = True


class PushRejectedError(PushError):
    """The server answered but refused the update."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"Failed to update location: {status_code} - {message}")
        self.status_code = status_code


class LocationPushClient:
    def __init__(self,
                 base_url: Optional[str] = None,
                 timeout: float = 10,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or BASE_URL or "").rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

        if not self.base_url:
            raise ValueError("Tracking API base URL not set. Please set TRACKING_API_BASE_URL in the .env file.")

    def put_location(self, employee_id: str, lat: float, lng: float, accuracy: Optional[float]) -> Dict[str, Any]:
        url = f"{self.base_url}/api/employees/{employee_id}/location"
        try:
            response = self.session.put(
                url,
                json={"lat": lat, "lng": lng, "accuracy": accuracy},
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise PushNetworkError(str(exc)) from exc
        except requests.RequestException as exc:
            raise PushError(str(exc)) from exc

        if not response.ok:
            raise PushRejectedError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError:
            return {}


@dataclass(frozen=True)
class PushOutcome:
    ok: bool
    attempts: int
    error: Optional[str] = None

    @property
    def retried(self) -> bool:
        return self.attempts > 1


class LocationUplink:
    """
    One-retry-then-count policy over any client exposing put_location().
    """

    def __init__(self,
                 client: Any,
                 retry_delay_s: float = 3.0,
                 sleep: Callable[[float], None] = time.sleep):
        self.client = client
        self.retry_delay_s = retry_delay_s
        self._sleep = sleep

    def push(self, employee_id: str, sample: LocationSample) -> PushOutcome:
        attempts = 0
        while True:
            attempts += 1
            try:
                self.client.put_location(employee_id, sample.lat, sample.lng, sample.accuracy)
                return PushOutcome(ok=True, attempts=attempts)
            except PushError as exc:
                if exc.transient and attempts < 2:
                    logger.info("Retrying location update after network error: %s", exc)
                    self._sleep(self.retry_delay_s)
                    continue
                logger.warning("Error updating location for %s: %s", employee_id, exc)
                return PushOutcome(ok=False, attempts=attempts, error=str(exc))
