"""Release asset upload adapters."""

from __future__ import annotations

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote

import requests
from requests import Response, Session
from requests.exceptions import RequestException

from .errors import ConfigurationError, PublishError
from .schemas.release import ReleaseTarget, UploadRecord

logger = logging.getLogger(__name__)

DEFAULT_GITHUB_API = "https://api.github.com"


class StorageAdapter(ABC):
    name: str

    @abstractmethod
    def upload(self, file_path: Path, asset_name: str, target: ReleaseTarget, logs: List[str]) -> UploadRecord:
        ...


class NoOpAdapter(StorageAdapter):
    name = "noop"

    def upload(self, file_path: Path, asset_name: str, target: ReleaseTarget, logs: List[str]) -> UploadRecord:
        logs.append(f"NoOp adapter selected; skipping upload of {file_path} as {asset_name}@{target.tag}.")
        return UploadRecord(
            file_path=file_path,
            asset_name=asset_name,
            tag=target.tag,
            adapter=self.name,
            status="skipped",
        )


class GitHubReleasesAdapter(StorageAdapter):
    """Attach assets to a GitHub release through the REST API.

    The release for the tag is created when it does not exist yet. Existing
    assets with the same name are not replaced; GitHub rejects the upload and
    the rejection is reported as a :class:`PublishError`.
    """

    name = "github"

    def __init__(
        self,
        repo: str,
        *,
        github_api: str = DEFAULT_GITHUB_API,
        session: Optional[Session] = None,
        timeout: int = 60,
    ) -> None:
        self.repo = repo
        self.github_api = github_api.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def upload(self, file_path: Path, asset_name: str, target: ReleaseTarget, logs: List[str]) -> UploadRecord:
        release = self._ensure_release(target, logs)
        upload_url = str(release.get("upload_url", "")).split("{", 1)[0]
        if not upload_url:
            raise PublishError(f"Release {self.repo}@{target.tag} did not report an upload URL.")

        logs.append(f"Uploading {file_path.name} as {asset_name} to {self.repo}@{target.tag}.")
        headers = {**_auth_headers(target), "Content-Type": "application/octet-stream"}
        response = self._request(
            "post",
            upload_url,
            headers=headers,
            params={"name": asset_name},
            data=file_path.read_bytes(),
        )
        if response.status_code != 201:
            raise PublishError(
                f"Asset upload for {asset_name} returned {response.status_code}: {response.text or response.reason}"
            )
        payload = _json(response)
        return UploadRecord(
            file_path=file_path,
            asset_name=asset_name,
            tag=target.tag,
            adapter=self.name,
            url=payload.get("browser_download_url") or release.get("html_url"),
        )

    def _ensure_release(self, target: ReleaseTarget, logs: List[str]) -> Dict[str, object]:
        release = self._find_release(target)
        if release is not None:
            return release

        logs.append(f"Release {target.tag} not found; creating it.")
        response = self._request(
            "post",
            f"{self.github_api}/repos/{self.repo}/releases",
            headers=_auth_headers(target),
            json={"tag_name": target.tag, "name": target.tag},
        )
        if response.status_code == 201:
            return _json(response)
        if response.status_code == 422:
            # A sibling context created the release between lookup and creation.
            release = self._find_release(target)
            if release is not None:
                logs.append(f"Release {target.tag} was created concurrently; reusing it.")
                return release
        raise PublishError(
            f"Release creation for {self.repo}@{target.tag} returned {response.status_code}: "
            f"{response.text or response.reason}"
        )

    def _find_release(self, target: ReleaseTarget) -> Optional[Dict[str, object]]:
        url = f"{self.github_api}/repos/{self.repo}/releases/tags/{quote(target.tag, safe='')}"
        response = self._request("get", url, headers=_auth_headers(target))
        if response.status_code == 200:
            return _json(response)
        if response.status_code == 404:
            return None
        raise PublishError(
            f"Release lookup for {self.repo}@{target.tag} returned {response.status_code}: "
            f"{response.text or response.reason}"
        )

    def _request(self, method: str, url: str, **kwargs: object) -> Response:
        try:
            return getattr(self.session, method)(url, timeout=self.timeout, **kwargs)
        except RequestException as exc:
            raise PublishError(f"Request to {url} failed: {exc}") from exc


class GhCliAdapter(StorageAdapter):
    """Attach assets with ``gh release upload``."""

    name = "gh"

    def __init__(self, repo: Optional[str] = None, *, gh: str = "gh") -> None:
        self.repo = repo
        self.gh = gh

    def upload(self, file_path: Path, asset_name: str, target: ReleaseTarget, logs: List[str]) -> UploadRecord:
        # gh names assets after the file; a differing asset name becomes the display label.
        source = str(file_path) if file_path.name == asset_name else f"{file_path}#{asset_name}"
        command = [self.gh, "release", "upload", target.tag, source]
        if self.repo:
            command += ["--repo", self.repo]
        logs.append(f"Uploading {asset_name} to release {target.tag} via gh CLI.")
        try:
            proc = subprocess.run(
                command,
                env={**os.environ, "GH_TOKEN": target.repo_token.get_secret_value()},
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise PublishError(f"Unable to run {self.gh}: {exc}") from exc
        if proc.stdout:
            logs.append(proc.stdout.strip())
        if proc.stderr:
            logs.append(proc.stderr.strip())
        if proc.returncode != 0:
            raise PublishError(f"gh release upload exited with status {proc.returncode} for {asset_name}.")
        url = f"https://github.com/{self.repo}/releases/tag/{target.tag}" if self.repo else None
        return UploadRecord(
            file_path=file_path,
            asset_name=asset_name,
            tag=target.tag,
            adapter=self.name,
            url=url,
        )


def build_adapter(
    name: str,
    *,
    repository: Optional[str] = None,
    github_api: str = DEFAULT_GITHUB_API,
    session: Optional[Session] = None,
) -> StorageAdapter:
    lowered = (name or "noop").lower()
    if lowered in ("noop", "none"):
        return NoOpAdapter()
    if lowered == "github":
        if not repository:
            raise ConfigurationError("GitHub adapter requires a repository (owner/name); set GITHUB_REPOSITORY.")
        return GitHubReleasesAdapter(repository, github_api=github_api, session=session)
    if lowered == "gh":
        return GhCliAdapter(repository)
    raise ConfigurationError(f"Unknown publish adapter '{name}'")


def publish_artifact(
    adapter: StorageAdapter,
    file_path: Path,
    asset_name: str,
    target: ReleaseTarget,
    logs: List[str],
) -> UploadRecord:
    """Upload one built file under ``asset_name`` to the release for ``target.tag``."""

    if not file_path.is_file():
        raise PublishError(f"Artifact {file_path} not found; nothing to upload as {asset_name}.")
    logger.info("Publishing %s to %s via %s", asset_name, target.tag, adapter.name)
    return adapter.upload(file_path, asset_name, target, logs)


def _auth_headers(target: ReleaseTarget) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {target.repo_token.get_secret_value()}",
        "Accept": "application/vnd.github+json",
    }


def _json(response: Response) -> Dict[str, object]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise PublishError(f"Release host returned invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise PublishError("Release host returned an unexpected payload.")
    return payload


__all__ = [
    "DEFAULT_GITHUB_API",
    "GhCliAdapter",
    "GitHubReleasesAdapter",
    "NoOpAdapter",
    "StorageAdapter",
    "build_adapter",
    "publish_artifact",
]
