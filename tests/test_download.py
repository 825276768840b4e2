"""Tests for fetching template bundles."""

from pathlib import Path

import httpx
import pytest
import yaml

from vibecheck.download import TemplateFetcher, is_url, parse_github_url
from vibecheck.exceptions import FetchError

from .conftest import SAMPLE_FILES, SAMPLE_MANIFEST

TEMPLATES_URL = "https://github.com/acme/vibes/tree/develop/templates"
RAW_PREFIX = "/acme/vibes/develop/templates/"


def _serve(files: dict[str, str]) -> httpx.MockTransport:
    """Serve files from raw.githubusercontent.com, 404 for anything else."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "raw.githubusercontent.com"
        name = request.url.path.removeprefix(RAW_PREFIX)
        if name in files:
            return httpx.Response(200, text=files[name])
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def _bundle_files() -> dict[str, str]:
    return {"templates.yml": yaml.safe_dump(SAMPLE_MANIFEST), **SAMPLE_FILES}


class TestParseGitHubUrl:
    """Test GitHub URL parsing."""

    def test_tree_url(self) -> None:
        """Test a directory URL."""
        location = parse_github_url(TEMPLATES_URL)

        assert location is not None
        assert (location.owner, location.repo, location.branch) == ("acme", "vibes", "develop")
        assert location.path == "templates"
        assert location.raw_url == (
            "https://raw.githubusercontent.com/acme/vibes/develop/templates"
        )

    def test_repository_root(self) -> None:
        """Test a URL pointing at the top of a branch."""
        location = parse_github_url("https://github.com/acme/vibes/tree/main/")

        assert location is not None
        assert location.path == ""
        assert location.raw_url.endswith("/acme/vibes/main")

    def test_rejects_other_urls(self) -> None:
        """Test URLs that do not name a branch."""
        assert parse_github_url("https://github.com/acme/vibes") is None
        assert parse_github_url("https://example.com/acme/vibes/tree/main") is None

    def test_is_url(self) -> None:
        """Test sources are classified by scheme."""
        assert is_url("https://github.com/acme/vibes")
        assert not is_url("./templates")


class TestDownload:
    """Test downloading bundles over HTTP."""

    def test_downloads_every_source(self, tmp_path: Path) -> None:
        """Test templates.yml and all referenced files land in the cache."""
        client = httpx.Client(transport=_serve(_bundle_files()))
        destination = tmp_path / "cache"

        summary = TemplateFetcher(destination, client=client).fetch(TEMPLATES_URL)

        assert summary.skipped == []
        assert summary.fetched[0] == "templates.yml"
        assert set(summary.fetched[1:]) == set(SAMPLE_FILES)
        assert (destination / "python" / "ruff.toml").read_text() == "line-length = 100\n"

    def test_missing_file_is_skipped(self, tmp_path: Path) -> None:
        """Test one unavailable file does not abort the download."""
        files = _bundle_files()
        del files["rust/coding-conventions.md"]
        client = httpx.Client(transport=_serve(files))

        summary = TemplateFetcher(tmp_path, client=client).fetch(TEMPLATES_URL)

        assert summary.skipped == ["rust/coding-conventions.md"]
        assert (tmp_path / "AGENTS.md").exists()

    def test_source_outside_cache_is_skipped(self, tmp_path: Path) -> None:
        """Test manifest sources cannot write above the template cache."""
        manifest = {
            "version": 2,
            "main": {"source": "../escaped.md", "target": "$workspace/AGENTS.md"},
            "principles": [{"source": "principles/core.md", "target": "$instructions"}],
        }
        files = {
            "templates.yml": yaml.safe_dump(manifest),
            "../escaped.md": "outside\n",
            "principles/core.md": "inside\n",
        }
        client = httpx.Client(transport=_serve(files))
        destination = tmp_path / "cache" / "templates"

        summary = TemplateFetcher(destination, client=client).fetch(TEMPLATES_URL)

        assert summary.skipped == ["../escaped.md"]
        assert summary.fetched == ["templates.yml", "principles/core.md"]
        assert not (tmp_path / "cache" / "escaped.md").exists()
        assert (destination / "principles" / "core.md").exists()

    def test_missing_manifest_is_fatal(self, tmp_path: Path) -> None:
        """Test a bundle without templates.yml."""
        client = httpx.Client(transport=_serve(SAMPLE_FILES))

        with pytest.raises(FetchError, match="HTTP 404"):
            TemplateFetcher(tmp_path, client=client).fetch(TEMPLATES_URL)

    def test_invalid_manifest_is_fatal(self, tmp_path: Path) -> None:
        """Test a downloaded templates.yml that does not parse."""
        client = httpx.Client(transport=_serve({"templates.yml": "version: 9\n"}))

        with pytest.raises(FetchError, match="unusable"):
            TemplateFetcher(tmp_path, client=client).fetch(TEMPLATES_URL)

    def test_connection_error(self, tmp_path: Path) -> None:
        """Test network failures surface as fetch errors."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler))

        with pytest.raises(FetchError, match="connection refused"):
            TemplateFetcher(tmp_path, client=client).fetch(TEMPLATES_URL)

    def test_invalid_github_url(self, tmp_path: Path) -> None:
        """Test URLs that are not GitHub tree URLs."""
        with pytest.raises(FetchError, match="Invalid GitHub URL"):
            TemplateFetcher(tmp_path).fetch("https://example.com/templates")


class TestCopyLocal:
    """Test copying bundles from disk."""

    def test_copies_directory(self, template_dir: Path, tmp_path: Path) -> None:
        """Test a local bundle is copied recursively."""
        destination = tmp_path / "cache"

        summary = TemplateFetcher(destination).fetch(str(template_dir))

        assert "templates.yml" in summary.fetched
        assert "claude/CLAUDE.md" in summary.fetched
        assert (destination / "mission.md").read_text() == SAMPLE_FILES["mission.md"]

    def test_missing_directory(self, tmp_path: Path) -> None:
        """Test a local source that does not exist."""
        with pytest.raises(FetchError, match="does not exist"):
            TemplateFetcher(tmp_path / "cache").fetch(str(tmp_path / "nope"))
