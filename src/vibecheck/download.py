"""Fetch template bundles from GitHub or a local directory."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from .exceptions import FetchError, VibeCheckError
from .manifest import MANIFEST_FILENAME, parse

logger = logging.getLogger(__name__)

RAW_BASE_URL = "https://raw.githubusercontent.com"
DEFAULT_TIMEOUT = 30.0


@dataclass
class GitHubLocation:
    """A directory inside a GitHub repository at a given branch."""

    owner: str
    repo: str
    branch: str
    path: str = ""

    @property
    def raw_url(self) -> str:
        """Base raw-content URL for files under this directory."""
        base = f"{RAW_BASE_URL}/{self.owner}/{self.repo}/{self.branch}"
        return f"{base}/{self.path}" if self.path else base


@dataclass
class FetchSummary:
    """Files fetched into the template cache."""

    destination: Path
    fetched: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def is_url(source: str) -> bool:
    """Check whether a source location is an http(s) URL."""
    return source.startswith(("http://", "https://"))


def parse_github_url(url: str) -> GitHubLocation | None:
    """Parse ``https://github.com/<owner>/<repo>/tree/<branch>/<path>``.

    Returns:
        Parsed location, or None when the URL is not a GitHub tree/blob URL
    """
    parts = url.rstrip("/").split("/")
    if "github.com" not in parts:
        return None

    idx = parts.index("github.com")
    if len(parts) < idx + 5 or parts[idx + 3] not in ("tree", "blob"):
        return None

    return GitHubLocation(
        owner=parts[idx + 1],
        repo=parts[idx + 2],
        branch=parts[idx + 4],
        path="/".join(parts[idx + 5:]),
    )


class TemplateFetcher:
    """Downloads or copies a template bundle into the local template cache."""

    def __init__(self, destination: Path, client: httpx.Client | None = None) -> None:
        """Initialize fetcher.

        Args:
            destination: Template cache directory to populate
            client: HTTP client, defaults to a new client that follows redirects
        """
        self.destination = Path(destination)
        self._client = client

    @property
    def client(self) -> httpx.Client:
        """HTTP client used for downloads, created on first use."""
        if self._client is None:
            self._client = httpx.Client(follow_redirects=True, timeout=DEFAULT_TIMEOUT)
        return self._client

    def fetch(self, source: str) -> FetchSummary:
        """Fetch templates from a URL or a local path.

        Raises:
            FetchError: If the source is unusable or templates.yml cannot be fetched
        """
        if is_url(source):
            return self.download(source)
        return self.copy_local(Path(source))

    def copy_local(self, source: Path) -> FetchSummary:
        """Copy a template bundle from a local directory."""
        if not source.is_dir():
            msg = f"Source path does not exist: {source}"
            raise FetchError(msg)

        try:
            shutil.copytree(source, self.destination, dirs_exist_ok=True)
        except (OSError, shutil.Error) as e:
            msg = f"Failed to copy templates from {source}: {e}"
            raise FetchError(msg) from e

        fetched = sorted(
            str(path.relative_to(self.destination))
            for path in self.destination.rglob("*")
            if path.is_file()
        )
        logger.info("Copied %d template file(s) from %s", len(fetched), source)
        return FetchSummary(self.destination, fetched=fetched)

    def download(self, url: str) -> FetchSummary:
        """Download templates.yml and every file it references from GitHub."""
        location = parse_github_url(url)
        if location is None:
            msg = (
                "Invalid GitHub URL format. "
                "Expected: https://github.com/owner/repo/tree/branch/path"
            )
            raise FetchError(msg, details={"url": url})

        logger.info(
            "Downloading templates from %s/%s (branch: %s)",
            location.owner,
            location.repo,
            location.branch,
        )

        manifest_path = self.destination / MANIFEST_FILENAME
        self._download_file(f"{location.raw_url}/{MANIFEST_FILENAME}", manifest_path)

        try:
            manifest = parse(manifest_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, VibeCheckError) as e:
            msg = f"Downloaded templates.yml is unusable: {e}"
            raise FetchError(msg) from e

        summary = FetchSummary(self.destination, fetched=[MANIFEST_FILENAME])
        root = self.destination.resolve()
        for source in manifest.all_sources():
            dest_path = self.destination / source
            if not dest_path.resolve().is_relative_to(root):
                logger.warning("Skipping %s: path escapes the template cache", source)
                summary.skipped.append(source)
                continue
            try:
                self._download_file(f"{location.raw_url}/{source}", dest_path)
            except FetchError as e:
                logger.warning("Skipping %s: %s", source, e)
                summary.skipped.append(source)
            else:
                summary.fetched.append(source)

        return summary

    def _download_file(self, url: str, dest_path: Path) -> None:
        try:
            response = self.client.get(url)
        except httpx.HTTPError as e:
            msg = f"Failed to download {url}: {e}"
            raise FetchError(msg) from e

        if response.status_code != 200:
            msg = f"Failed to download {url}: HTTP {response.status_code}"
            raise FetchError(msg, details={"status": response.status_code})

        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            dest_path.write_bytes(response.content)
        except OSError as e:
            msg = f"Failed to write {dest_path}: {e}"
            raise FetchError(msg) from e
