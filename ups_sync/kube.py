"""Kubernetes client construction."""

from kubernetes import client, config
from urllib3.exceptions import HTTPError

# Raised by the client when the API server cannot be reached at all
TRANSPORT_ERRORS = (HTTPError, OSError)


def init_core_api() -> client.CoreV1Api:
    """Initialize Kubernetes client with in-cluster config."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        # Fall back to kubeconfig for local development
        config.load_kube_config()
    return client.CoreV1Api()


def to_dict(obj) -> dict:
    """Convert a kubernetes model (or an already-raw dict) to its JSON form."""
    if isinstance(obj, dict):
        return obj
    return client.ApiClient().sanitize_for_serialization(obj)
