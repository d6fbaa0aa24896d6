"""Tests for the gateway server."""

import json
import asyncio

import pytest

aiohttp_mod = pytest.importorskip("aiohttp")

from aiohttp import test_utils

from gateway.errors import DecodeError, TransportError
from gateway.models import DependencyEdge, PackageRecord, Repository
from gateway.server import GatewayConfig, GemGatewayServer

REPO_A_URL = "https://repo-a.example"
REPO_B_URL = "https://repo-b.example/mirror/"


def _make_server():
    return GemGatewayServer(GatewayConfig(repositories=[REPO_A_URL, REPO_B_URL]))


def _request(server, path):
    """Issue one GET against the gateway app without following redirects."""

    async def _run():
        async with test_utils.TestClient(test_utils.TestServer(server._create_app())) as client:
            resp = await client.get(path, allow_redirects=False)
            body = await resp.read()
            return resp.status, resp.headers, body

    return asyncio.run(_run())


class _CannedUpstream:
    """Replaces UpstreamClient.fetch_dependencies with canned results."""

    def __init__(self, results):
        self._results = results
        self.calls = []

    async def __call__(self, names, repository):
        self.calls.append((list(names), repository.base_url))
        result = self._results[repository.base_url]
        if isinstance(result, Exception):
            raise result
        return [
            PackageRecord(name, version, platform, tuple(DependencyEdge(*d) for d in deps), repository)
            for name, version, platform, deps in result
        ]


class TestGatewayConfig:
    """Tests for GatewayConfig."""

    def test_default_config(self):
        """Test default configuration values."""
        config = GatewayConfig()
        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.repositories == []
        assert config.timeout == 30

    def test_build_repositories_keeps_order(self):
        """Repositories are numbered by their position."""
        config = GatewayConfig(repositories=[REPO_B_URL, REPO_A_URL])
        repos = config.build_repositories()
        assert [(r.base_url, r.priority) for r in repos] == [
            ("https://repo-b.example/mirror", 0),
            ("https://repo-a.example", 1),
        ]

    def test_validate_requires_repository(self):
        """At least one repository is required."""
        with pytest.raises(ValueError, match="at least one repository"):
            GatewayConfig().validate()

    @pytest.mark.parametrize("url", ["rubygems.org", "ftp://gems.example", "/local/path"])
    def test_validate_rejects_bad_urls(self, url):
        """Repository URLs must be absolute http(s) URLs."""
        with pytest.raises(ValueError, match="Invalid repository URL"):
            GatewayConfig(repositories=[url]).validate()

    def test_validate_rejects_bad_port(self):
        """Ports outside 0-65535 are rejected."""
        with pytest.raises(ValueError, match="Invalid port"):
            GatewayConfig(repositories=[REPO_A_URL], port=70000).validate()


class TestDependenciesEndpoint:
    """Tests for /api/v1/dependencies."""

    RESULTS = {
        "https://repo-a.example": [
            ("rack", "3.0.8", "ruby", []),
        ],
        "https://repo-b.example/mirror": [
            ("rack", "3.0.8", "ruby", [("webrick", ">= 0")]),
            ("acme-internal", "1.2.0", "ruby", [("rack", "~> 3.0")]),
        ],
    }

    def test_merged_response(self):
        """Records are merged by priority and encoded as JSON."""
        server = _make_server()
        canned = _CannedUpstream(self.RESULTS)
        server._upstream.fetch_dependencies = canned

        status, headers, body = _request(server, "/api/v1/dependencies?gems=rack,acme-internal")

        assert status == 200
        assert headers["Content-Type"].startswith("application/json")
        assert json.loads(body) == [
            {"name": "rack", "number": "3.0.8", "platform": "ruby", "dependencies": []},
            {"name": "acme-internal", "number": "1.2.0", "platform": "ruby",
             "dependencies": [["rack", "~> 3.0"]]},
        ]
        assert sorted(url for _, url in canned.calls) == [
            "https://repo-a.example", "https://repo-b.example/mirror",
        ]
        assert all(names == ["rack", "acme-internal"] for names, _ in canned.calls)

    def test_json_suffix_route(self):
        """The .json variant of the endpoint is served by the same handler."""
        server = _make_server()
        server._upstream.fetch_dependencies = _CannedUpstream(self.RESULTS)

        status, _, body = _request(server, "/api/v1/dependencies.json?gems=rack")

        assert status == 200
        assert len(json.loads(body)) == 2

    def test_names_are_trimmed(self):
        """Blank names are dropped and whitespace is trimmed."""
        server = _make_server()
        canned = _CannedUpstream(self.RESULTS)
        server._upstream.fetch_dependencies = canned

        _request(server, "/api/v1/dependencies?gems=rack,%20,acme-internal%20,")

        assert all(names == ["rack", "acme-internal"] for names, _ in canned.calls)

    @pytest.mark.parametrize("path", [
        "/api/v1/dependencies",
        "/api/v1/dependencies?gems=",
        "/api/v1/dependencies?gems=,,",
    ])
    def test_empty_query_is_noop(self, path):
        """An empty gems parameter yields an empty response and no upstream calls."""
        server = _make_server()
        canned = _CannedUpstream(self.RESULTS)
        server._upstream.fetch_dependencies = canned

        status, _, body = _request(server, path)

        assert status == 200
        assert body == b""
        assert canned.calls == []
        assert server.directory_stats()["total_entries"] == 0

    def test_transport_error_returns_502(self):
        """An unreachable upstream fails the whole query."""
        server = _make_server()
        results = dict(self.RESULTS)
        results["https://repo-b.example/mirror"] = TransportError(
            Repository(REPO_B_URL, 1), "HTTP 503", status=503
        )
        server._upstream.fetch_dependencies = _CannedUpstream(results)

        status, _, body = _request(server, "/api/v1/dependencies?gems=rack")

        assert status == 502
        data = json.loads(body)
        assert data["error"] == "Upstream request failed"
        assert data["repository"] == "https://repo-b.example/mirror"
        assert data["message"] == "HTTP 503"
        assert server.directory_stats()["total_entries"] == 0

    def test_decode_error_returns_502(self):
        """A malformed upstream body fails the whole query."""
        server = _make_server()
        results = dict(self.RESULTS)
        results["https://repo-a.example"] = DecodeError(
            Repository(REPO_A_URL, 0), "malformed dependency response (1 errors)"
        )
        server._upstream.fetch_dependencies = _CannedUpstream(results)

        status, _, body = _request(server, "/api/v1/dependencies?gems=rack")

        assert status == 502
        assert json.loads(body)["repository"] == "https://repo-a.example"

    def test_unexpected_error_returns_500(self):
        """Unexpected exceptions return 500."""
        server = _make_server()
        results = dict(self.RESULTS)
        results["https://repo-a.example"] = RuntimeError("something broke")
        server._upstream.fetch_dependencies = _CannedUpstream(results)

        status, _, body = _request(server, "/api/v1/dependencies?gems=rack")

        assert status == 500
        assert json.loads(body)["error"] == "Internal gateway error"


class TestGemRedirect:
    """Tests for /gems/<identity>.gem."""

    def test_known_gem_redirects(self):
        """A gem in the directory is redirected to its repository."""
        server = _make_server()
        server._directory.update([
            PackageRecord("foo", "1.0", "ruby", repository=Repository(REPO_A_URL, 0)),
        ])

        status, headers, _ = _request(server, "/gems/foo-1.0.gem")

        assert status == 301
        assert headers["Location"] == "https://repo-a.example/gems/foo-1.0.gem"

    def test_platform_gem_redirects(self):
        """Platform gems keep their platform suffix in the redirect."""
        server = _make_server()
        server._directory.update([
            PackageRecord("nokogiri", "1.15.4", "x86_64-linux", repository=Repository(REPO_B_URL, 1)),
        ])

        status, headers, _ = _request(server, "/gems/nokogiri-1.15.4-x86_64-linux.gem")

        assert status == 301
        assert headers["Location"] == (
            "https://repo-b.example/mirror/gems/nokogiri-1.15.4-x86_64-linux.gem"
        )

    def test_unknown_gem_is_404(self):
        """Gems missing from the directory are not found."""
        server = _make_server()
        server._directory.update([
            PackageRecord("foo", "1.0", "ruby", repository=Repository(REPO_A_URL, 0)),
        ])

        status, headers, _ = _request(server, "/gems/bar-1.0.gem")

        assert status == 404
        assert "Location" not in headers

    def test_redirect_requotes_identity(self):
        """Characters decoded from the request path are quoted again in Location."""
        server = _make_server()
        server._directory.update([
            PackageRecord("odd gem", "1.0", "ruby", repository=Repository(REPO_B_URL, 1)),
        ])

        status, headers, _ = _request(server, "/gems/odd%20gem-1.0.gem")

        assert status == 301
        assert headers["Location"] == "https://repo-b.example/mirror/gems/odd%20gem-1.0.gem"

    def test_non_gem_path_is_404(self):
        """Only .gem files are redirected."""
        server = _make_server()
        server._directory.update([
            PackageRecord("foo", "1.0", "ruby", repository=Repository(REPO_A_URL, 0)),
        ])

        status, _, _ = _request(server, "/gems/foo-1.0")

        assert status == 404

    def test_query_then_redirect(self):
        """A dependency query teaches the directory where each gem lives."""
        server = _make_server()
        server._upstream.fetch_dependencies = _CannedUpstream(TestDependenciesEndpoint.RESULTS)

        async def _run():
            async with test_utils.TestClient(test_utils.TestServer(server._create_app())) as client:
                resp = await client.get("/api/v1/dependencies?gems=rack,acme-internal")
                assert resp.status == 200
                rack = await client.get("/gems/rack-3.0.8.gem", allow_redirects=False)
                internal = await client.get("/gems/acme-internal-1.2.0.gem", allow_redirects=False)
                other = await client.get("/gems/rails-7.1.0.gem", allow_redirects=False)
                return rack, internal, other

        rack, internal, other = asyncio.run(_run())

        assert rack.status == 301
        assert rack.headers["Location"] == "https://repo-a.example/gems/rack-3.0.8.gem"
        assert internal.status == 301
        assert internal.headers["Location"] == (
            "https://repo-b.example/mirror/gems/acme-internal-1.2.0.gem"
        )
        assert other.status == 404


class TestGatewayHealthCheck:
    """Tests for the health check endpoint."""

    def test_health_check_endpoint(self):
        """Health check reports repositories and directory size."""
        server = _make_server()

        status, _, body = _request(server, "/_gemgate/health")

        assert status == 200
        data = json.loads(body)
        assert data["status"] == "ok"
        assert data["repositories"] == ["https://repo-a.example", "https://repo-b.example/mirror"]
        assert data["directory"]["total_entries"] == 0

    def test_start_and_stop(self):
        """The server binds, serves and shuts down cleanly."""
        import aiohttp

        server = GemGatewayServer(GatewayConfig(port=0, repositories=[REPO_A_URL]))

        async def _run():
            await server.start()
            try:
                port = server._runner.addresses[0][1]
                async with aiohttp.ClientSession() as session:
                    async with session.get(f"http://127.0.0.1:{port}/_gemgate/health") as resp:
                        return resp.status
            finally:
                await server.stop()

        assert asyncio.run(_run()) == 200
        assert server._runner is None
