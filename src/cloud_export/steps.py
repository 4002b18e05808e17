"""Export step definitions: one frozen dataclass per provider."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cloud_export.config import (
    DEFAULT_AUTH_CALLBACK_PORT,
    DEFAULT_TOKEN_CACHE_PATH,
    read_config,
)
from cloud_export.errors import ConfigError

GITHUB_API_URL = "https://api.github.com"


@dataclass(frozen=True)
class CloudflareCredentials:
    """API token with read access to zones, DNS and email routing."""

    token: str = field(repr=False)


@dataclass(frozen=True)
class CloudflareFeatures:
    details: bool = False
    stabilize_data: bool = False


@dataclass(frozen=True)
class CloudflareTarget:
    overview: str | None = None
    details: str | None = None


@dataclass(frozen=True)
class CloudflareStep:
    """Export all zones of a Cloudflare account."""

    id: str
    credentials: CloudflareCredentials
    features: CloudflareFeatures = CloudflareFeatures()
    target: CloudflareTarget = CloudflareTarget()


@dataclass(frozen=True)
class GitHubCredentials:
    username: str
    access_token: str = field(repr=False)
    api_url: str = GITHUB_API_URL


@dataclass(frozen=True)
class GitHubFeatures:
    issue_comments: bool = False


@dataclass(frozen=True)
class GitHubTarget:
    issues: str | None = None


@dataclass(frozen=True)
class GitHubStep:
    """Export issues (and optionally comments) of a list of repositories."""

    id: str
    credentials: GitHubCredentials
    repositories: tuple[str, ...]
    features: GitHubFeatures = GitHubFeatures()
    target: GitHubTarget = GitHubTarget()


@dataclass(frozen=True)
class GoogleCredentials:
    """OAuth client of type "installed application"."""

    client_id: str
    client_secret: str = field(repr=False)


@dataclass(frozen=True)
class GoogleFeatures:
    calendars: bool = False
    contacts: bool = False
    stabilize_data: bool = False
    event_details: bool = False
    calendar_export: bool = False


@dataclass(frozen=True)
class GoogleTarget:
    calendars: str | None = None
    contacts: str | None = None


@dataclass(frozen=True)
class GoogleStep:
    """Export calendars and contacts of a Google account."""

    id: str
    credentials: GoogleCredentials
    token_cache_path: str = str(DEFAULT_TOKEN_CACHE_PATH)
    auth_port: int = DEFAULT_AUTH_CALLBACK_PORT
    # None exports every calendar in the calendar list
    calendar_ids: tuple[str, ...] | None = None
    features: GoogleFeatures = GoogleFeatures()
    target: GoogleTarget = GoogleTarget()


ExecutionStep = CloudflareStep | GitHubStep | GoogleStep


def _require(raw: dict[str, Any], key: str, step_id: str) -> Any:
    try:
        return raw[key]
    except (KeyError, TypeError):
        msg = f"step {step_id!r}: missing required key {key!r}"
        raise ConfigError(msg) from None


def _section(raw: dict[str, Any], key: str, step_id: str) -> dict[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        msg = f"step {step_id!r}: {key!r} must be an object, got {type(value).__name__}"
        raise ConfigError(msg)
    return value


def parse_step(raw: dict[str, Any]) -> ExecutionStep:
    """Build an ExecutionStep from one (already substituted) config record."""
    if not isinstance(raw, dict):
        msg = f"step must be an object, got {type(raw).__name__}"
        raise ConfigError(msg)
    step_type = raw.get("type")
    step_id = str(raw.get("id") or step_type)
    credentials = _section(raw, "credentials", step_id)
    features = _section(raw, "features", step_id)
    target = _section(raw, "target", step_id)

    match step_type:
        case "Cloudflare":
            return CloudflareStep(
                id=step_id,
                credentials=CloudflareCredentials(token=_require(credentials, "token", step_id)),
                features=CloudflareFeatures(
                    details=bool(features.get("details", False)),
                    stabilize_data=bool(features.get("stabilizeData", False)),
                ),
                target=CloudflareTarget(
                    overview=target.get("overview"),
                    details=target.get("details"),
                ),
            )
        case "GitHub":
            repositories = _require(raw, "repositories", step_id)
            if isinstance(repositories, str) or not isinstance(repositories, list):
                msg = f"step {step_id!r}: 'repositories' must be a list of 'owner/name' strings"
                raise ConfigError(msg)
            return GitHubStep(
                id=step_id,
                credentials=GitHubCredentials(
                    username=_require(credentials, "username", step_id),
                    access_token=_require(credentials, "accessToken", step_id),
                    api_url=credentials.get("apiUrl") or GITHUB_API_URL,
                ),
                repositories=tuple(repositories),
                features=GitHubFeatures(issue_comments=bool(features.get("issueComments", False))),
                target=GitHubTarget(issues=target.get("issues")),
            )
        case "Google":
            installed = _section(credentials, "installed", step_id)
            calendar_ids = raw.get("calendars")
            return GoogleStep(
                id=step_id,
                credentials=GoogleCredentials(
                    client_id=_require(installed, "client_id", step_id),
                    client_secret=_require(installed, "client_secret", step_id),
                ),
                token_cache_path=str(raw.get("tokenCachePath") or DEFAULT_TOKEN_CACHE_PATH),
                auth_port=int(raw.get("authPort") or DEFAULT_AUTH_CALLBACK_PORT),
                calendar_ids=tuple(calendar_ids) if calendar_ids is not None else None,
                features=GoogleFeatures(
                    calendars=bool(features.get("calendars", False)),
                    contacts=bool(features.get("contacts", False)),
                    stabilize_data=bool(features.get("stabilizeData", False)),
                    event_details=bool(features.get("eventDetails", False)),
                    calendar_export=bool(features.get("calendarExport", False)),
                ),
                target=GoogleTarget(
                    calendars=target.get("calendars"),
                    contacts=target.get("contacts"),
                ),
            )
        case _:
            msg = f"step {step_id!r}: unknown step type {step_type!r}"
            raise ConfigError(msg)


def load_steps(path: Path, environ: Mapping[str, str] | None = None) -> list[ExecutionStep]:
    """Load, substitute and parse every step of a config file."""
    return [parse_step(raw) for raw in read_config(path, environ)]
