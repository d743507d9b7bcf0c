"""Tests for the pub.dev registry client."""

from unittest.mock import patch

import pytest

from errors import RegistryUnavailable
from registry.pub import PubRegistryClient
from versioning.constraints import ConstraintKind
from versioning.semver import SemVer

PAYLOAD = {
    "name": "http_parser",
    "versions": [
        {
            "version": "4.0.2",
            "published": "2022-10-26T00:00:00Z",
            "pubspec": {
                "environment": {"sdk": ">=2.12.0 <3.0.0"},
                "dependencies": {"collection": "^1.15.0", "source_span": "^1.8.0"},
            },
        },
        {
            "version": "4.1.2",
            "pubspec": {
                "environment": {"sdk": "^3.4.0"},
                "dependencies": {
                    "collection": "^1.19.0",
                    "flutter": {"sdk": "flutter"},
                    "meta": None,
                },
            },
        },
        {"version": "5.0.0-dev.1", "pubspec": {"environment": {"sdk": "^3.6.0"}}},
        {"version": "3.1.4", "pubspec": {"environment": {"sdk": "weird"}}},
        {"version": "not-a-version", "pubspec": {}},
    ],
}


class TestFetchVersions:
    """Payload normalization."""

    @patch("registry.pub.get_json")
    def test_newest_first(self, mock_get_json):
        mock_get_json.return_value = PAYLOAD
        versions = PubRegistryClient().fetch_versions("http_parser")
        assert [str(v.version) for v in versions] == ["5.0.0-dev.1", "4.1.2", "4.0.2", "3.1.4"]

    @patch("registry.pub.get_json")
    def test_constraints_and_dependencies(self, mock_get_json):
        mock_get_json.return_value = PAYLOAD
        by_version = {str(v.version): v for v in PubRegistryClient().fetch_versions("http_parser")}

        latest = by_version["4.1.2"]
        assert latest.sdk_constraint.kind is ConstraintKind.CARET
        assert latest.dependencies["collection"].lower == SemVer(1, 19, 0)
        assert latest.dependencies["meta"].kind is ConstraintKind.ANY
        assert "flutter" not in latest.dependencies

        assert by_version["4.0.2"].published == "2022-10-26T00:00:00Z"
        assert by_version["3.1.4"].sdk_constraint is None

    @patch("registry.pub.get_json")
    def test_requests_package_url(self, mock_get_json):
        mock_get_json.return_value = {"versions": []}
        PubRegistryClient(endpoint="https://mirror.example/api/packages").fetch_versions("path")
        url = mock_get_json.call_args.args[0]
        assert url == "https://mirror.example/api/packages/path"
        assert mock_get_json.call_args.kwargs["context"] == "path"

    @pytest.mark.parametrize("payload", [{}, {"versions": {}}, [], None])
    @patch("registry.pub.get_json")
    def test_malformed_payload(self, mock_get_json, payload):
        mock_get_json.return_value = payload
        with pytest.raises(RegistryUnavailable, match="malformed payload"):
            PubRegistryClient().fetch_versions("http_parser")

    @patch("registry.pub.get_json")
    def test_network_failure_propagates(self, mock_get_json):
        mock_get_json.side_effect = RegistryUnavailable("http_parser", "HTTP 500")
        with pytest.raises(RegistryUnavailable):
            PubRegistryClient().fetch_versions("http_parser")


class TestCaching:
    """Answers are cached per client instance."""

    @patch("registry.pub.get_json")
    def test_results_cached(self, mock_get_json):
        mock_get_json.return_value = PAYLOAD
        client = PubRegistryClient()
        client.fetch_versions("http_parser")
        client.fetch_versions("http_parser")
        assert mock_get_json.call_count == 1

    @patch("registry.pub.get_json")
    def test_failures_cached(self, mock_get_json):
        mock_get_json.side_effect = RegistryUnavailable("gone", "HTTP 404")
        client = PubRegistryClient()
        for _ in range(2):
            with pytest.raises(RegistryUnavailable):
                client.fetch_versions("gone")
        assert mock_get_json.call_count == 1

    @patch("registry.pub.get_json")
    def test_prefetch_fills_cache(self, mock_get_json):
        def answer(url, **_kwargs):
            if url.endswith("/broken"):
                raise RegistryUnavailable("broken", "HTTP 503")
            return {"versions": [{"version": "1.0.0", "pubspec": {"environment": {"sdk": ">=2.12.0 <4.0.0"}}}]}

        mock_get_json.side_effect = answer
        client = PubRegistryClient(max_workers=2)
        client.prefetch(["a", "b", "broken", "a"])
        assert mock_get_json.call_count == 3

        assert client.fetch_versions("a")[0].version == SemVer(1, 0, 0)
        with pytest.raises(RegistryUnavailable):
            client.fetch_versions("broken")
        assert mock_get_json.call_count == 3
