"""Tests for the Prometheus client-side counters."""

import pytest
from prometheus_client import REGISTRY

from galaxy_fds import metrics
from galaxy_fds.auth import SigningEngine
from galaxy_fds.models import SignableRequest


def _sample(name: str, labels: dict | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


@pytest.fixture(autouse=True)
def _metrics():
    metrics.init_metrics()


class TestInitMetrics:
    """Tests for init_metrics()."""

    def test_idempotent(self):
        """A second call does not re-register collectors."""
        counter = metrics.signatures_total
        metrics.init_metrics()
        assert metrics.signatures_total is counter

    def test_counters_registered(self):
        names = {m.name for m in REGISTRY.collect()}
        assert "galaxy_fds_signatures" in names
        assert "galaxy_fds_listing_pages" in names
        assert "galaxy_fds_service_errors" in names


class TestRecording:
    """Counters move when the client signs, lists and fails."""

    def test_header_signature_counted(self, credential):
        before = _sample("galaxy_fds_signatures_total", {"mode": "header"})
        request = SignableRequest("GET", "/b", headers={"Date": "now"})
        SigningEngine().sign_request(request, credential)
        assert _sample("galaxy_fds_signatures_total", {"mode": "header"}) == before + 1

    def test_query_signature_counted(self, credential):
        before = _sample("galaxy_fds_signatures_total", {"mode": "query"})
        SigningEngine().presign("GET", "/b/o", credential, 1700000000)
        assert _sample("galaxy_fds_signatures_total", {"mode": "query"}) == before + 1

    def test_listing_page_counted(self, fds_client, recorder):
        recorder.queue(payload={"name": "b"})
        before = _sample("galaxy_fds_listing_pages_total")
        fds_client.list_objects("b")
        assert _sample("galaxy_fds_listing_pages_total") == before + 1

    def test_service_error_counted(self, fds_client, recorder):
        recorder.queue(status=503)
        labels = {"operation": "get_bucket_quota"}
        before = _sample("galaxy_fds_service_errors_total", labels)
        fds_client.get_bucket_quota("b")
        assert _sample("galaxy_fds_service_errors_total", labels) == before + 1
