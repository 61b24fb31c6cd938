"""Push application bootstrap.

The UPS application id lives in a well-known secret that is created by the
UPS deployment, which may come up after this service. It is therefore read
on first use rather than at startup, and only cached once it was found.
"""

import base64
import binascii
import logging
from typing import Optional

from kubernetes import client
from kubernetes.client.rest import ApiException

from .errors import BootstrapError
from .kube import TRANSPORT_ERRORS
from .models import PushApplication

logger = logging.getLogger(__name__)

APPLICATION_ID_KEY = "applicationId"


class PushApplicationProvider:
    """Resolves the push application once and hands it out afterwards."""

    def __init__(self, v1: client.CoreV1Api, namespace: str, secret_name: str):
        self.v1 = v1
        self.namespace = namespace
        self.secret_name = secret_name
        self._application: Optional[PushApplication] = None

    def get(self) -> PushApplication:
        """
        Return the push application, reading the bootstrap secret if needed.

        Raises BootstrapError if the secret or its applicationId is missing.
        Failures are not cached, so the next call tries again.
        """
        if self._application is None:
            self._application = self._load()
            logger.info(f"Using UPS application {self._application.application_id}")
        return self._application

    def _load(self) -> PushApplication:
        try:
            secret = self.v1.read_namespaced_secret(
                name=self.secret_name, namespace=self.namespace
            )
        except ApiException as e:
            raise BootstrapError(
                f"Failed to read secret {self.secret_name}: {e.status} {e.reason}"
            ) from e
        except TRANSPORT_ERRORS as e:
            raise BootstrapError(f"Failed to read secret {self.secret_name}: {e}") from e

        encoded = (secret.data or {}).get(APPLICATION_ID_KEY)
        if not encoded:
            raise BootstrapError(
                f"Secret {self.secret_name} has no {APPLICATION_ID_KEY}"
            )

        try:
            application_id = base64.b64decode(encoded, validate=True).decode("utf-8").strip()
        except (binascii.Error, UnicodeDecodeError) as e:
            raise BootstrapError(
                f"Secret {self.secret_name} has an undecodable {APPLICATION_ID_KEY}: {e}"
            ) from e

        if not application_id:
            raise BootstrapError(f"Secret {self.secret_name} has an empty {APPLICATION_ID_KEY}")

        return PushApplication(application_id=application_id)
