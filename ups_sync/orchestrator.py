"""Variant lifecycle across UPS and the mirror config maps.

Creation is idempotent per Google key: UPS is asked first and nothing is
written when a variant already exists.

Deletion is two-phase. The mirror config map goes first and the UPS variant
is only deleted once the config map is gone. A config map without a variant
is a visible, re-creatable dangling entry; a variant without a config map is
invisible to the cluster and leaks.
"""

import logging
import uuid

from .errors import RegistryRejected
from .mirror import MirrorStore, mirror_name
from .models import AndroidVariant, MirrorRecord, Outcome
from .ups import UpsClient

logger = logging.getLogger(__name__)


class VariantOrchestrator:
    """Ties the UPS client and the mirror store together."""

    def __init__(self, ups: UpsClient, mirror: MirrorStore):
        self.ups = ups
        self.mirror = mirror

    def create_if_absent(self, google_key: str, name: str, project_number: str) -> Outcome:
        """
        Create a variant and its mirror record unless one exists for google_key.

        Registry and mirror errors propagate. If UPS refuses the variant no
        config map is written. The config map name is worked out before
        anything is sent to UPS, so a name that cannot be stored never
        leaves a variant behind.
        """
        existing = self.ups.find_by_key(google_key)
        if existing is not None:
            logger.info(
                f"A variant for google key {google_key} already exists ({existing.variant_id})"
            )
            return Outcome.SKIPPED_EXISTING

        record_name = mirror_name(name, google_key)
        variant = AndroidVariant(
            variant_id=str(uuid.uuid4()),
            secret=str(uuid.uuid4()),
            name=name,
            google_key=google_key,
            project_number=project_number,
        )
        logger.info(f"Creating android variant {variant.variant_id} for {name}")
        created = self.ups.create(variant)

        self.mirror.put(MirrorRecord.for_variant(record_name, created))
        return Outcome.CREATED

    def delete_cascade(self, google_key: str) -> Outcome:
        """
        Delete the mirror record for google_key, then the UPS variant.

        Returns NOT_FOUND without touching UPS if no mirror record exists.
        If the mirror delete fails the error propagates and UPS is left alone.
        """
        logger.info(f"Deleting config map associated with google key {google_key}")
        record = self.mirror.find_by_external_key(google_key)
        if record is None:
            logger.info(f"No config map found for google key {google_key}")
            return Outcome.NOT_FOUND

        self.mirror.delete(record.name)

        # Look up the live id; the mirrored one may be stale
        variant = self.ups.find_by_key(google_key)
        if variant is None:
            logger.info(f"No variant found to delete (google key: {google_key})")
            return Outcome.DELETED

        logger.info(f"Deleting variant {variant.variant_id}")
        if not self.ups.delete(variant.variant_id):
            logger.error(
                f"Variant {variant.variant_id} is left in UPS without a config map"
            )
            raise RegistryRejected(f"UPS refused to delete variant {variant.variant_id}")
        return Outcome.DELETED
