"""Mirror config maps describing UPS variants to other cluster consumers."""

import logging
import re
from typing import Optional

from kubernetes import client
from kubernetes.client.rest import ApiException

from .config import MIRROR_LABELS, MIRROR_SELECTOR
from .errors import MirrorReadFailed, MirrorWriteFailed
from .kube import TRANSPORT_ERRORS
from .models import MirrorRecord

logger = logging.getLogger(__name__)

VARIANT_TYPE = "android"
NAME_SUFFIX = "-config-map"
# Kubernetes object names are DNS subdomains
MAX_NAME_LENGTH = 253


def _sanitize(value: str) -> str:
    sanitized = re.sub(r"[^a-z0-9.-]+", "-", value.lower()).strip("-.")
    return sanitized[:MAX_NAME_LENGTH - len(NAME_SUFFIX)].rstrip("-.")


def mirror_name(display_name: str, google_key: str = "") -> str:
    """
    Config map name for a variant (lowercase, invalid characters -> -).

    Falls back to the Google key when the display name has nothing usable.
    Raises MirrorWriteFailed if neither yields a valid name.
    """
    base = _sanitize(display_name) or _sanitize(google_key)
    if not base:
        raise MirrorWriteFailed(
            f"No valid config map name for variant {display_name!r} ({google_key!r})"
        )
    return f"{base}{NAME_SUFFIX}"


def _to_config_map(record: MirrorRecord) -> dict:
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": record.name,
            "labels": dict(MIRROR_LABELS),
        },
        "data": {
            "name": record.variant_name,
            "description": record.description,
            "variantID": record.variant_id,
            "secret": record.secret,
            "googleKey": record.google_key,
            "projectNumber": record.project_number,
            "type": VARIANT_TYPE,
        },
    }


def _from_config_map(config_map) -> MirrorRecord:
    data = config_map.data or {}
    return MirrorRecord(
        name=config_map.metadata.name,
        variant_name=data.get("name", ""),
        description=data.get("description", ""),
        variant_id=data.get("variantID", ""),
        secret=data.get("secret", ""),
        google_key=data.get("googleKey", ""),
        project_number=data.get("projectNumber", ""),
    )


class MirrorStore:
    """Reads and writes mirror config maps in a single namespace."""

    def __init__(self, v1: client.CoreV1Api, namespace: str):
        self.v1 = v1
        self.namespace = namespace

    def put(self, record: MirrorRecord) -> None:
        """Create the config map for a record. Raises MirrorWriteFailed."""
        try:
            self.v1.create_namespaced_config_map(
                namespace=self.namespace, body=_to_config_map(record)
            )
        except ApiException as e:
            logger.error(f"Failed to create config map {record.name}: {e.status} {e.reason}")
            raise MirrorWriteFailed(f"Creating config map {record.name} failed: {e.reason}") from e
        except TRANSPORT_ERRORS as e:
            logger.error(f"Failed to create config map {record.name}: {e}")
            raise MirrorWriteFailed(f"Creating config map {record.name} failed: {e}") from e
        logger.info(f"Config map {record.name} for variant {record.variant_id} created")

    def list_records(self) -> list[MirrorRecord]:
        """List all mirror records. Raises MirrorReadFailed."""
        try:
            config_maps = self.v1.list_namespaced_config_map(
                namespace=self.namespace, label_selector=MIRROR_SELECTOR
            )
        except ApiException as e:
            logger.error(f"Failed to list config maps: {e.status} {e.reason}")
            raise MirrorReadFailed(f"Listing config maps failed: {e.reason}") from e
        except TRANSPORT_ERRORS as e:
            logger.error(f"Failed to list config maps: {e}")
            raise MirrorReadFailed(f"Listing config maps failed: {e}") from e
        return [_from_config_map(cm) for cm in config_maps.items]

    def find_by_external_key(self, google_key: str) -> Optional[MirrorRecord]:
        """Find the mirror record for a Google key, or None."""
        for record in self.list_records():
            if record.google_key == google_key:
                logger.info(f"Config map {record.name} has a matching google key")
                return record
        return None

    def delete(self, name: str) -> None:
        """Delete a mirror record. Missing records count as deleted."""
        try:
            self.v1.delete_namespaced_config_map(name=name, namespace=self.namespace)
        except ApiException as e:
            if e.status == 404:
                logger.info(f"Config map {name} was already gone")
                return
            logger.error(f"Failed to delete config map {name}: {e.status} {e.reason}")
            raise MirrorWriteFailed(f"Deleting config map {name} failed: {e.reason}") from e
        except TRANSPORT_ERRORS as e:
            logger.error(f"Failed to delete config map {name}: {e}")
            raise MirrorWriteFailed(f"Deleting config map {name} failed: {e}") from e
        logger.info(f"Config map {name} has been deleted")
