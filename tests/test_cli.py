"""Tests for the galaxy-fds command line."""

import json

import httpx
import pytest
import yaml

from galaxy_fds import cli
from galaxy_fds import client as client_module
from galaxy_fds.auth import SigningEngine
from galaxy_fds.models import Credential

DATE = "Mon, 21 Oct 2024 07:28:00 GMT"


@pytest.fixture(autouse=True)
def _credentials(monkeypatch):
    monkeypatch.setenv("GALAXY_FDS_ACCESS_KEY_ID", "AKEXAMPLE")
    monkeypatch.setenv("GALAXY_FDS_ACCESS_SECRET", "s3cr3t")
    monkeypatch.delenv("GALAXY_FDS_ENDPOINT", raising=False)


@pytest.fixture
def mock_transport(monkeypatch, recorder):
    """Route clients built by the CLI through the recording mock transport."""
    real_transport = client_module.HttpxTransport

    def build(timeout=30.0):
        return real_transport(client=httpx.Client(transport=httpx.MockTransport(recorder)))

    monkeypatch.setattr(client_module, "HttpxTransport", build)
    return recorder


class TestParseArgs:
    """Tests for parse_args()."""

    def test_presign_defaults(self):
        args = cli.parse_args(["presign", "bucket", "obj"])
        assert args.command == "presign"
        assert args.expires_in == 3600
        assert args.method == "GET"
        assert args.config is None

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.parse_args([])

    def test_global_options(self):
        args = cli.parse_args(["--log-level", "DEBUG", "--log-format", "json", "ls", "b"])
        assert args.log_level == "DEBUG"
        assert args.log_format == "json"
        assert args.delimiter is None


class TestCanonical:
    """Tests for the canonical sub-command."""

    def test_prints_canonical_and_header(self, capsys):
        argv = ["canonical", "get", "/mybucket", "--subresource", "acl", "--date", DATE]
        assert cli.main(argv) == 0
        lines = capsys.readouterr().out.splitlines()
        canonical = f"GET\n\n\n{DATE}\n\n/mybucket?acl"
        assert lines[0] == repr(canonical)
        signature = SigningEngine().sign(canonical, "s3cr3t")
        assert lines[1] == f"Galaxy-V2 AKEXAMPLE:{signature.base64_value}"


class TestPresign:
    """Tests for the presign sub-command."""

    def test_presigned_uri_verifies(self, capsys):
        assert cli.main(["presign", "bucket", "obj", "--method", "PUT"]) == 0
        uri = capsys.readouterr().out.strip()
        assert uri.startswith("http://files.fds.api.xiaomi.com/bucket/obj?GalaxyAccessKeyId=")
        SigningEngine().verify_presigned_uri(
            uri,
            "PUT",
            Credential("AKEXAMPLE", "s3cr3t"),
            base_uri="http://files.fds.api.xiaomi.com/",
        )

    def test_unknown_algorithm_exits_nonzero(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text(yaml.dump({"client": {"signing": {"algorithm": "md5"}}}))
        assert cli.main(["--config", str(path), "presign", "b", "o"]) == 1


class TestLs:
    """Tests for the ls sub-command."""

    def test_pages_through_listing(self, capsys, mock_transport):
        mock_transport.queue(
            payload={
                "name": "b",
                "truncated": True,
                "nextMarker": "m1",
                "objects": [{"name": "a.txt", "size": 3}],
                "commonPrefixes": ["logs/"],
            }
        )
        mock_transport.queue(payload={"name": "b", "objects": [{"name": "b.txt", "size": 10}]})

        assert cli.main(["ls", "b"]) == 0
        out = capsys.readouterr().out.split()
        assert out == ["logs/", "3", "a.txt", "10", "b.txt"]
        assert mock_transport.requests[1].url.params["marker"] == "m1"

    def test_service_error(self, capsys, mock_transport):
        mock_transport.queue(status=403, content=json.dumps({"code": "denied"}).encode())
        assert cli.main(["ls", "b"]) == 1
        assert "status=403" in capsys.readouterr().err


class TestConfigErrors:
    """Tests for configuration failures."""

    def test_missing_config_file(self, tmp_path):
        assert cli.main(["--config", str(tmp_path / "missing.yaml"), "ls", "b"]) == 1

    def test_invalid_config_file(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- not\n- a mapping\n")
        assert cli.main(["--config", str(path), "ls", "b"]) == 1
