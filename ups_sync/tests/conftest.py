"""Shared test fixtures: in-memory stand-ins for the Kubernetes API and UPS."""

import base64
import re
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from kubernetes.client.rest import ApiException

from ups_sync.bootstrap import PushApplicationProvider
from ups_sync.dispatcher import EventDispatcher
from ups_sync.intake import BindingRequestStore
from ups_sync.mirror import MirrorStore
from ups_sync.orchestrator import VariantOrchestrator
from ups_sync.status import OutcomeLog
from ups_sync.ups import UpsClient

NAMESPACE = "mobile"
APP_ID = "app-123"
UPS_URL = "http://ups/rest/applications"


def b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def binding_secret(
    name="binding-1",
    google_key="gk-1",
    client_id="app1",
    project_number="123",
    app_type="Android",
    labels=None,
    owner_kind=None,
) -> dict:
    """Raw dict form of a binding request secret, as found in watch events."""
    metadata = {
        "name": name,
        "labels": labels if labels is not None else {"secretType": "mobile-client-binding-secret"},
    }
    if owner_kind:
        metadata["ownerReferences"] = [{"kind": owner_kind, "name": "binding"}]
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": metadata,
        "data": {
            "appType": b64(app_type),
            "clientId": b64(client_id),
            "googleKey": b64(google_key),
            "projectNumber": b64(project_number),
        },
    }


class FakeCoreV1Api:
    """Just enough of CoreV1Api for secrets and config maps."""

    def __init__(self):
        self.secrets: dict[str, SimpleNamespace] = {}
        self.config_maps: dict[str, dict] = {}
        self.calls: list[str] = []

    def add_secret(self, name: str, data: dict[str, str]) -> None:
        self.secrets[name] = SimpleNamespace(
            metadata=SimpleNamespace(name=name),
            data={k: b64(v) for k, v in data.items()},
        )

    def read_namespaced_secret(self, name, namespace):
        self.calls.append("read_secret")
        if name not in self.secrets:
            raise ApiException(status=404, reason="Not Found")
        return self.secrets[name]

    def delete_namespaced_secret(self, name, namespace):
        self.calls.append("delete_secret")
        if name not in self.secrets:
            raise ApiException(status=404, reason="Not Found")
        del self.secrets[name]

    def create_namespaced_config_map(self, namespace, body):
        self.calls.append("create_config_map")
        name = body["metadata"]["name"]
        if name in self.config_maps:
            raise ApiException(status=409, reason="Conflict")
        self.config_maps[name] = body

    def list_namespaced_config_map(self, namespace, label_selector=None):
        self.calls.append("list_config_maps")
        key, _, value = (label_selector or "").partition("=")
        items = [
            SimpleNamespace(
                metadata=SimpleNamespace(name=body["metadata"]["name"]),
                data=dict(body["data"]),
            )
            for body in self.config_maps.values()
            if not key or body["metadata"]["labels"].get(key) == value
        ]
        return SimpleNamespace(items=items)

    def delete_namespaced_config_map(self, name, namespace):
        self.calls.append("delete_config_map")
        if name not in self.config_maps:
            raise ApiException(status=404, reason="Not Found")
        del self.config_maps[name]


class FakeUpsSession:
    """Emulates the UPS android variant endpoints behind requests.Session."""

    def __init__(self, app_id: str = APP_ID):
        self.base = f"{UPS_URL}/{app_id}/android"
        self.variants: dict[str, dict] = {}
        self.calls: list[tuple[str, str]] = []

    def add_variant(self, variant_id: str, google_key: str, name: str = "existing") -> None:
        self.variants[variant_id] = {
            "variantID": variant_id,
            "secret": f"secret-{variant_id}",
            "name": name,
            "googleKey": google_key,
            "projectNumber": "999",
        }

    def _response(self, status_code, body=None):
        resp = MagicMock(status_code=status_code)
        resp.json.return_value = body
        return resp

    def request(self, method, url, timeout=None, json=None, headers=None):
        self.calls.append((method, url))
        if url == self.base and method == "GET":
            return self._response(200, list(self.variants.values()))
        if url == self.base and method == "POST":
            self.variants[json["variantID"]] = dict(json)
            return self._response(201, dict(json))
        match = re.fullmatch(re.escape(self.base) + r"/([^/]+)", url)
        if match and method == "DELETE":
            if self.variants.pop(match.group(1), None) is None:
                return self._response(404)
            return self._response(204)
        return self._response(404)

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)


@pytest.fixture
def kube():
    api = FakeCoreV1Api()
    api.add_secret("unified-push-server", {"applicationId": APP_ID})
    return api


@pytest.fixture
def ups_session():
    return FakeUpsSession()


@pytest.fixture
def ups_client(kube, ups_session):
    provider = PushApplicationProvider(kube, NAMESPACE, "unified-push-server")
    return UpsClient(UPS_URL, provider, timeout=5, session=ups_session)


@pytest.fixture
def mirror(kube):
    return MirrorStore(kube, NAMESPACE)


@pytest.fixture
def orchestrator(ups_client, mirror):
    return VariantOrchestrator(ups_client, mirror)


@pytest.fixture
def dispatcher(orchestrator, kube):
    return EventDispatcher(orchestrator, BindingRequestStore(kube, NAMESPACE), OutcomeLog())
