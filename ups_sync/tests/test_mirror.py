"""Tests for the mirror config map store."""

from unittest.mock import MagicMock

import pytest
from kubernetes.client.rest import ApiException
from urllib3.exceptions import MaxRetryError, ProtocolError

from conftest import NAMESPACE

from ups_sync.errors import MirrorReadFailed, MirrorWriteFailed
from ups_sync.mirror import MirrorStore, mirror_name
from ups_sync.models import MirrorRecord


def _record(name="app1-config-map", google_key="gk-1"):
    return MirrorRecord(
        name=name,
        variant_name="app1",
        variant_id="v-1",
        secret="s-1",
        google_key=google_key,
        project_number="123",
    )


class TestMirrorName:
    """Tests for deriving config map names."""

    def test_appends_suffix(self):
        assert mirror_name("app1") == "app1-config-map"

    def test_sanitizes_invalid_characters(self):
        """Names are lowercased and invalid characters replaced."""
        assert mirror_name("My_App/One") == "my-app-one-config-map"

    def test_empty_name_falls_back_to_google_key(self):
        assert mirror_name("", "AIza-Key") == "aiza-key-config-map"

    def test_unusable_name_and_key_raise(self):
        with pytest.raises(MirrorWriteFailed):
            mirror_name("___", "")

    def test_long_names_are_truncated(self):
        name = mirror_name("a" * 300)
        assert len(name) <= 253
        assert name.endswith("-config-map")


class TestPut:
    """Tests for creating mirror records."""

    def test_creates_labelled_config_map(self, kube, mirror):
        mirror.put(_record())

        body = kube.config_maps["app1-config-map"]
        assert body["metadata"]["labels"] == {
            "mobile": "enabled",
            "serviceName": "ups",
            "resourceType": "binding",
        }
        assert body["data"] == {
            "name": "app1",
            "description": "",
            "variantID": "v-1",
            "secret": "s-1",
            "googleKey": "gk-1",
            "projectNumber": "123",
            "type": "android",
        }

    def test_api_error_raises_write_failed(self, kube, mirror):
        """Conflicts and other API errors are write failures."""
        mirror.put(_record())
        with pytest.raises(MirrorWriteFailed):
            mirror.put(_record())

    def test_unreachable_api_raises_write_failed(self):
        v1 = MagicMock()
        v1.create_namespaced_config_map.side_effect = MaxRetryError(None, "/api", reason=None)
        with pytest.raises(MirrorWriteFailed):
            MirrorStore(v1, NAMESPACE).put(_record())


class TestFindByExternalKey:
    """Tests for looking up mirror records."""

    def test_finds_matching_record(self, mirror):
        mirror.put(_record("a-config-map", "gk-a"))
        mirror.put(_record("b-config-map", "gk-b"))

        record = mirror.find_by_external_key("gk-b")

        assert record.name == "b-config-map"
        assert record.variant_id == "v-1"

    def test_missing_returns_none(self, mirror):
        mirror.put(_record("a-config-map", "gk-a"))
        assert mirror.find_by_external_key("gk-z") is None

    def test_ignores_unlabelled_config_maps(self, kube, mirror):
        """Config maps without resourceType=binding are not mirror records."""
        kube.config_maps["other"] = {
            "metadata": {"name": "other", "labels": {}},
            "data": {"googleKey": "gk-1"},
        }
        assert mirror.find_by_external_key("gk-1") is None

    def test_uses_label_selector(self):
        v1 = MagicMock()
        v1.list_namespaced_config_map.return_value = MagicMock(items=[])

        MirrorStore(v1, NAMESPACE).find_by_external_key("gk-1")

        v1.list_namespaced_config_map.assert_called_once_with(
            namespace=NAMESPACE, label_selector="resourceType=binding"
        )

    def test_list_failure_raises_read_failed(self):
        v1 = MagicMock()
        v1.list_namespaced_config_map.side_effect = ApiException(status=500, reason="boom")
        with pytest.raises(MirrorReadFailed):
            MirrorStore(v1, NAMESPACE).find_by_external_key("gk-1")

    def test_unreachable_api_raises_read_failed(self):
        v1 = MagicMock()
        v1.list_namespaced_config_map.side_effect = ProtocolError("connection reset")
        with pytest.raises(MirrorReadFailed):
            MirrorStore(v1, NAMESPACE).find_by_external_key("gk-1")


class TestDelete:
    """Tests for deleting mirror records."""

    def test_deletes_config_map(self, kube, mirror):
        mirror.put(_record())
        mirror.delete("app1-config-map")
        assert kube.config_maps == {}

    def test_missing_counts_as_deleted(self, mirror):
        mirror.delete("never-existed")

    def test_api_error_raises_write_failed(self):
        v1 = MagicMock()
        v1.delete_namespaced_config_map.side_effect = ApiException(status=403, reason="Forbidden")
        with pytest.raises(MirrorWriteFailed):
            MirrorStore(v1, NAMESPACE).delete("app1-config-map")

    def test_unreachable_api_raises_write_failed(self):
        v1 = MagicMock()
        v1.delete_namespaced_config_map.side_effect = OSError("network is unreachable")
        with pytest.raises(MirrorWriteFailed):
            MirrorStore(v1, NAMESPACE).delete("app1-config-map")
