"""Configuration loading for the binding sync service."""

import os

from .errors import ConfigError


def _number(name: str, default: str, cast=float):
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


NAMESPACE = os.environ.get("NAMESPACE", "default")
UPS_URL = os.environ.get("UPS_URL", "http://localhost:8080/rest/applications")
UPS_SECRET_NAME = os.environ.get("UPS_SECRET_NAME", "unified-push-server")
UPS_TIMEOUT = _number("UPS_TIMEOUT", "30")
UPS_RETRIES = _number("UPS_RETRIES", "3", int)
UPS_BACKOFF = _number("UPS_BACKOFF", "0.5")
WATCH_MAX_BACKOFF = _number("WATCH_MAX_BACKOFF", "30")
STATUS_HISTORY = _number("STATUS_HISTORY", "100", int)
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Binding request secrets
SECRET_TYPE_LABEL = "secretType"
BINDING_SECRET_TYPE = "mobile-client-binding-secret"
BINDING_OWNER_KIND = "ServiceBinding"
ANDROID_APP_TYPE = "Android"

# Mirror config maps
MIRROR_LABELS = {
    "mobile": "enabled",
    "serviceName": "ups",
    "resourceType": "binding",
}
MIRROR_SELECTOR = "resourceType=binding"
