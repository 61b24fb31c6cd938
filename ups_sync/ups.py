"""Unified Push Server REST client.

Every call is a live round trip to UPS. Results are never cached because the
existence check in front of variant creation is only meaningful against the
current server state.
"""

import logging
from typing import Optional

import requests
from pydantic import ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import RegistryRejected, RegistryUnavailable
from .models import AndroidVariant

logger = logging.getLogger(__name__)

# Statuses worth retrying for idempotent requests
RETRY_STATUSES = (502, 503, 504)


def build_session(retries: int, backoff: float) -> requests.Session:
    """
    Build a session that retries transport failures with backoff.

    Connection errors are retried for every method since the request never
    reached the server. Gateway errors are only retried for GET and DELETE;
    a POST may already have created the variant.
    """
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=backoff,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=frozenset({"GET", "DELETE"}),
        raise_on_status=False,
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class UpsClient:
    """Android variant operations for one UPS application."""

    def __init__(
        self,
        base_url: str,
        application,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            base_url: UPS applications endpoint, e.g. http://ups/rest/applications
            application: Object whose get() returns the PushApplication
            timeout: Per-request timeout in seconds
            session: Preconfigured session (default: no retries)
        """
        self.base_url = base_url.rstrip("/")
        self.application = application
        self.timeout = timeout
        self.session = session or requests.Session()

    def _android_url(self, variant_id: Optional[str] = None) -> str:
        app_id = self.application.get().application_id
        url = f"{self.base_url}/{app_id}/android"
        if variant_id:
            url = f"{url}/{variant_id}"
        return url

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        logger.debug(f"UPS request {method} {url}")
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RegistryUnavailable(f"UPS {method} {url} failed: {e}") from e
        logger.debug(f"UPS responded to {method} {url} with {resp.status_code}")
        return resp

    def list_variants(self) -> list[AndroidVariant]:
        """List all Android variants. A 404 means there are none."""
        url = self._android_url()
        resp = self._send("GET", url)

        if resp.status_code == 404:
            return []
        if resp.status_code != 200:
            raise RegistryUnavailable(
                f"UPS listing variants returned status {resp.status_code}"
            )

        try:
            payload = resp.json()
            if not isinstance(payload, list):
                raise ValueError(f"expected a list, got {type(payload).__name__}")
            return [AndroidVariant.model_validate(item) for item in payload]
        except (ValueError, ValidationError) as e:
            raise RegistryUnavailable(f"UPS returned an unreadable variant list: {e}") from e

    def find_by_key(self, google_key: str) -> Optional[AndroidVariant]:
        """Find an Android variant by its Google key."""
        for variant in self.list_variants():
            if variant.google_key == google_key:
                return variant
        return None

    def create(self, variant: AndroidVariant) -> AndroidVariant:
        """
        Create an Android variant.

        The caller assigns variantID and secret. Returns the variant as
        created by UPS, or raises RegistryRejected unless UPS answers 201.
        """
        url = self._android_url()
        resp = self._send(
            "POST",
            url,
            json=variant.model_dump(by_alias=True, exclude_none=True),
            headers={"Accept": "application/json"},
        )

        if resp.status_code != 201:
            raise RegistryRejected(
                f"UPS refused to create variant {variant.name}", resp.status_code
            )

        try:
            created = AndroidVariant.model_validate(resp.json())
        except (ValueError, ValidationError):
            logger.warning(
                f"UPS created variant {variant.variant_id} without a readable body"
            )
            return variant

        # UPS may omit fields it does not echo back
        return variant.model_copy(
            update={k: v for k, v in created.model_dump().items() if v}
        )

    def delete(self, variant_id: str) -> bool:
        """Delete a variant. Returns True if UPS answered 204."""
        url = self._android_url(variant_id)
        resp = self._send("DELETE", url)
        if resp.status_code != 204:
            logger.warning(
                f"UPS refused to delete variant {variant_id}: status {resp.status_code}"
            )
            return False
        logger.info(f"Variant {variant_id} has been deleted from UPS")
        return True
