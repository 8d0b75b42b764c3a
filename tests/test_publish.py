from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest import mock

import pytest
from requests.exceptions import ConnectionError as RequestsConnectionError

from native_release.errors import ConfigurationError, PublishError
from native_release.publish import (
    GhCliAdapter,
    GitHubReleasesAdapter,
    NoOpAdapter,
    build_adapter,
    publish_artifact,
)
from native_release.schemas.release import ReleaseTarget

UPLOAD_URL = "https://uploads.github.com/repos/acme/native/releases/7/assets{?name,label}"


class _FakeResponse:
    def __init__(self, status_code: int, payload: Optional[Dict[str, Any]] = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text
        self.reason = "reason"

    def json(self) -> Dict[str, Any]:
        return self._payload


class _FakeSession:
    def __init__(self, responses: List[_FakeResponse]) -> None:
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, **kwargs: Any) -> _FakeResponse:
        self.calls.append({"method": "get", "url": url, **kwargs})
        return self.responses.pop(0)

    def post(self, url: str, **kwargs: Any) -> _FakeResponse:
        self.calls.append({"method": "post", "url": url, **kwargs})
        return self.responses.pop(0)


class _FailingSession:
    def get(self, url: str, **kwargs: Any) -> _FakeResponse:
        raise RequestsConnectionError("connection reset")


@pytest.fixture()
def artifact(tmp_path: Path) -> Path:
    path = tmp_path / "lib_x64.so"
    path.write_bytes(b"\x7fELF")
    return path


def test_upload_to_existing_release(artifact: Path, target: ReleaseTarget) -> None:
    session = _FakeSession(
        [
            _FakeResponse(200, {"upload_url": UPLOAD_URL, "html_url": "https://github.com/acme/native/releases/v1.0.0"}),
            _FakeResponse(201, {"browser_download_url": "https://github.com/acme/native/releases/download/v1.0.0/lib_x64.so"}),
        ]
    )
    adapter = GitHubReleasesAdapter("acme/native", session=session)  # type: ignore[arg-type]
    logs: List[str] = []

    record = publish_artifact(adapter, artifact, "lib_x64.so", target, logs)

    assert record.asset_name == "lib_x64.so"
    assert record.tag == "v1.0.0"
    assert record.url.endswith("/v1.0.0/lib_x64.so")
    lookup, upload = session.calls
    assert lookup["url"] == "https://api.github.com/repos/acme/native/releases/tags/v1.0.0"
    assert upload["url"] == "https://uploads.github.com/repos/acme/native/releases/7/assets"
    assert upload["params"] == {"name": "lib_x64.so"}
    assert upload["data"] == b"\x7fELF"
    assert upload["headers"]["Authorization"] == "Bearer secret-token"
    assert all("secret-token" not in line for line in logs)


def test_missing_release_is_created(artifact: Path, target: ReleaseTarget) -> None:
    session = _FakeSession(
        [
            _FakeResponse(404, text="Not Found"),
            _FakeResponse(201, {"upload_url": UPLOAD_URL}),
            _FakeResponse(201, {}),
        ]
    )
    adapter = GitHubReleasesAdapter("acme/native", session=session)  # type: ignore[arg-type]

    adapter.upload(artifact, "lib_x64.so", target, [])

    create = session.calls[1]
    assert create["url"] == "https://api.github.com/repos/acme/native/releases"
    assert create["json"] == {"tag_name": "v1.0.0", "name": "v1.0.0"}


def test_existing_asset_conflict_is_not_deduplicated(artifact: Path, target: ReleaseTarget) -> None:
    session = _FakeSession(
        [
            _FakeResponse(200, {"upload_url": UPLOAD_URL}),
            _FakeResponse(422, text='{"errors":[{"code":"already_exists"}]}'),
        ]
    )
    adapter = GitHubReleasesAdapter("acme/native", session=session)  # type: ignore[arg-type]

    with pytest.raises(PublishError) as excinfo:
        adapter.upload(artifact, "lib_x64.so", target, [])
    assert "422" in str(excinfo.value)


def test_auth_failure_on_lookup(artifact: Path, target: ReleaseTarget) -> None:
    session = _FakeSession([_FakeResponse(401, text="Bad credentials")])
    adapter = GitHubReleasesAdapter("acme/native", session=session)  # type: ignore[arg-type]
    with pytest.raises(PublishError):
        adapter.upload(artifact, "lib_x64.so", target, [])


def test_network_error_becomes_publish_error(artifact: Path, target: ReleaseTarget) -> None:
    adapter = GitHubReleasesAdapter("acme/native", session=_FailingSession())  # type: ignore[arg-type]
    with pytest.raises(PublishError) as excinfo:
        adapter.upload(artifact, "lib_x64.so", target, [])
    assert "connection reset" in str(excinfo.value)


def test_missing_artifact_fails_before_upload(tmp_path: Path, target: ReleaseTarget) -> None:
    session = _FakeSession([])
    adapter = GitHubReleasesAdapter("acme/native", session=session)  # type: ignore[arg-type]
    with pytest.raises(PublishError):
        publish_artifact(adapter, tmp_path / "absent.so", "absent.so", target, [])
    assert session.calls == []


def test_gh_cli_adapter_passes_token_in_env(artifact: Path, target: ReleaseTarget) -> None:
    adapter = GhCliAdapter("acme/native")
    logs: List[str] = []
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=0, stdout="", stderr="")
        record = adapter.upload(artifact, "lib_x64.so", target, logs)

    command = run_mock.call_args.args[0]
    assert command == ["gh", "release", "upload", "v1.0.0", str(artifact), "--repo", "acme/native"]
    assert run_mock.call_args.kwargs["env"]["GH_TOKEN"] == "secret-token"
    assert record.adapter == "gh"
    assert all("secret-token" not in line for line in logs)


def test_gh_cli_adapter_failure(artifact: Path, target: ReleaseTarget) -> None:
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=1, stdout="", stderr="HTTP 422")
        with pytest.raises(PublishError):
            GhCliAdapter("acme/native").upload(artifact, "lib_x64.so", target, [])


def test_noop_adapter_skips(artifact: Path, target: ReleaseTarget) -> None:
    record = NoOpAdapter().upload(artifact, "lib_x64.so", target, [])
    assert record.status == "skipped"


def test_build_adapter_github_requires_repository() -> None:
    with pytest.raises(ConfigurationError):
        build_adapter("github")


def test_build_adapter_variants() -> None:
    assert isinstance(build_adapter("github", repository="acme/native"), GitHubReleasesAdapter)
    assert isinstance(build_adapter("gh"), GhCliAdapter)
    assert isinstance(build_adapter("noop"), NoOpAdapter)
    with pytest.raises(ConfigurationError):
        build_adapter("s3")


def test_release_created_concurrently_is_reused(artifact: Path, target: ReleaseTarget) -> None:
    session = _FakeSession(
        [
            _FakeResponse(404, text="Not Found"),
            _FakeResponse(422, text='{"errors":[{"resource":"Release","code":"already_exists","field":"tag_name"}]}'),
            _FakeResponse(200, {"upload_url": UPLOAD_URL}),
            _FakeResponse(201, {"browser_download_url": "https://github.com/acme/native/releases/download/v1.0.0/lib_x64.so"}),
        ]
    )
    adapter = GitHubReleasesAdapter("acme/native", session=session)  # type: ignore[arg-type]
    logs: List[str] = []

    record = adapter.upload(artifact, "lib_x64.so", target, logs)

    assert record.status == "succeeded"
    assert [call["method"] for call in session.calls] == ["get", "post", "get", "post"]
    assert session.calls[2]["url"] == "https://api.github.com/repos/acme/native/releases/tags/v1.0.0"
    assert any("created concurrently" in line for line in logs)


def test_create_rejection_without_release_is_publish_error(artifact: Path, target: ReleaseTarget) -> None:
    session = _FakeSession(
        [
            _FakeResponse(404, text="Not Found"),
            _FakeResponse(422, text='{"message":"Validation Failed"}'),
            _FakeResponse(404, text="Not Found"),
        ]
    )
    adapter = GitHubReleasesAdapter("acme/native", session=session)  # type: ignore[arg-type]

    with pytest.raises(PublishError) as excinfo:
        adapter.upload(artifact, "lib_x64.so", target, [])
    assert "Release creation" in str(excinfo.value)


def test_release_lookup_quotes_tag(artifact: Path) -> None:
    target = ReleaseTarget.from_ref("refs/tags/release/v1#2", "secret-token", repository="acme/native")
    session = _FakeSession(
        [
            _FakeResponse(200, {"upload_url": UPLOAD_URL}),
            _FakeResponse(201, {}),
        ]
    )
    adapter = GitHubReleasesAdapter("acme/native", session=session)  # type: ignore[arg-type]

    adapter.upload(artifact, "lib_x64.so", target, [])

    assert session.calls[0]["url"] == "https://api.github.com/repos/acme/native/releases/tags/release%2Fv1%232"
