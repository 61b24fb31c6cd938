"""Binding request secrets: decoding watch payloads and removing processed ones."""

import base64
import binascii
import logging

from kubernetes import client
from kubernetes.client.rest import ApiException

from .errors import MalformedPayload
from .kube import TRANSPORT_ERRORS, to_dict
from .models import BindingRequest

logger = logging.getLogger(__name__)

# Secret data keys
APP_TYPE_KEY = "appType"
CLIENT_ID_KEY = "clientId"
GOOGLE_KEY = "googleKey"
PROJECT_NUMBER_KEY = "projectNumber"


def _decode_value(key: str, value) -> str:
    if value is None:
        return ""
    try:
        return base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, TypeError) as e:
        raise MalformedPayload(f"Secret data {key} is not valid base64 text: {e}") from e


def decode_binding_request(obj) -> BindingRequest:
    """
    Decode a watched secret into a BindingRequest.

    Accepts a kubernetes V1Secret or its raw dict form. A secret that is
    not a binding request still decodes; check BindingRequest.is_binding.
    Data is only decoded for secrets carrying the binding label or a
    ServiceBinding owner, so an unrelated secret is never malformed.
    Raises MalformedPayload when the object is not a named secret or a
    relevant secret's data cannot be decoded.
    """
    raw = to_dict(obj)
    if not isinstance(raw, dict):
        raise MalformedPayload(f"Expected a secret, got {type(raw).__name__}")

    metadata = raw.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        raise MalformedPayload("Secret has no name")

    owner_kinds = [
        ref.get("kind", "") for ref in metadata.get("ownerReferences") or []
        if isinstance(ref, dict)
    ]
    request = BindingRequest(
        name=name,
        labels=metadata.get("labels") or {},
        owner_kinds=owner_kinds,
    )
    if not (request.is_binding or request.owned_by_binding):
        return request

    data = raw.get("data") or {}
    if not isinstance(data, dict):
        raise MalformedPayload(f"Secret {name} has non-mapping data")

    return request.model_copy(update=dict(
        app_type=_decode_value(APP_TYPE_KEY, data.get(APP_TYPE_KEY)),
        client_id=_decode_value(CLIENT_ID_KEY, data.get(CLIENT_ID_KEY)),
        google_key=_decode_value(GOOGLE_KEY, data.get(GOOGLE_KEY)),
        project_number=_decode_value(PROJECT_NUMBER_KEY, data.get(PROJECT_NUMBER_KEY)),
    ))


class BindingRequestStore:
    """Removes binding request secrets once they have been processed."""

    def __init__(self, v1: client.CoreV1Api, namespace: str):
        self.v1 = v1
        self.namespace = namespace

    def delete(self, name: str) -> bool:
        """Delete a request secret. Returns False if the delete failed."""
        try:
            self.v1.delete_namespaced_secret(name=name, namespace=self.namespace)
        except ApiException as e:
            if e.status == 404:
                logger.info(f"Secret {name} was already deleted")
                return True
            logger.error(f"Failed to delete secret {name}: {e.status} {e.reason}")
            return False
        except TRANSPORT_ERRORS as e:
            logger.error(f"Failed to delete secret {name}: {e}")
            return False
        logger.info(f"Secret {name} has been deleted")
        return True
