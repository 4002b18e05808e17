"""Run export steps concurrently and persist their results."""

import asyncio
from collections.abc import Sequence
from pathlib import Path
from typing import Any, assert_never

import httpx
from loguru import logger

from cloud_export.api import GitHubApi
from cloud_export.auth import CloudflareAuthorizer, GoogleAuthorizer
from cloud_export.protocols import WriterProtocol
from cloud_export.providers.cloudflare import CloudflareZonesProvider
from cloud_export.providers.github import GitHubIssuesProvider
from cloud_export.providers.google import GoogleData, GoogleExporter, google_scopes
from cloud_export.steps import CloudflareStep, ExecutionStep, GitHubStep, GoogleStep

CloudflareResult = list[dict[str, Any]]
GitHubResult = dict[str, list[dict[str, Any]]]
StepResult = CloudflareResult | GitHubResult | GoogleData


class Executor:
    """Execute export steps concurrently.

    Steps do not depend on each other. A failing step does not stop the
    others; once every step has settled, the first failure (in step order)
    is raised.
    """

    def __init__(
        self,
        steps: Sequence[ExecutionStep],
        writer: WriterProtocol,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        listen_host: str = "localhost",
    ) -> None:
        self.steps = list(steps)
        self._writer = writer
        self._transport = transport
        self._google_flow_lock = asyncio.Lock()
        self._google_authorizers = self._build_google_authorizers(listen_host)

    def _build_google_authorizers(self, listen_host: str) -> dict[Path, GoogleAuthorizer]:
        """One authorizer per token cache file, requesting the scopes of all its steps."""
        scopes_by_cache: dict[Path, list[str]] = {}
        first_step: dict[Path, GoogleStep] = {}
        for step in self.steps:
            if isinstance(step, GoogleStep):
                cache_path = Path(step.token_cache_path).expanduser().resolve()
                scopes_by_cache.setdefault(cache_path, []).extend(google_scopes(step.features))
                first_step.setdefault(cache_path, step)

        return {
            cache_path: GoogleAuthorizer(
                step.credentials,
                cache_path,
                step.auth_port,
                scopes_by_cache[cache_path],
                flow_lock=self._google_flow_lock,
                listen_host=listen_host,
                transport=self._transport,
                log=logger.bind(step=f"{step.id}-Auth"),
            )
            for cache_path, step in first_step.items()
        }

    async def execute(self) -> list[StepResult]:
        """Run all steps and return their results in step order."""
        logger.info("Executing {} step(s)", len(self.steps))
        try:
            outcomes = await asyncio.gather(
                *(self.execute_step(step) for step in self.steps),
                return_exceptions=True,
            )
        finally:
            for authorizer in self._google_authorizers.values():
                await authorizer.aclose()

        failures: list[BaseException] = []
        for step, outcome in zip(self.steps, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.opt(exception=outcome).error("Step {!r} failed: {}", step.id, outcome)
                failures.append(outcome)
        if failures:
            raise failures[0]

        logger.success("Done")
        return outcomes  # type: ignore[return-value]

    async def execute_step(self, step: ExecutionStep) -> StepResult:
        logger.bind(step=step.id).info("Starting to export {}", step.id)
        match step:
            case CloudflareStep():
                return await self._execute_cloudflare(step)
            case GitHubStep():
                return await self._execute_github(step)
            case GoogleStep():
                return await self._execute_google(step)
            case _:
                assert_never(step)

    async def _execute_cloudflare(self, step: CloudflareStep) -> CloudflareResult:
        log = logger.bind(step=step.id)
        authorizer = CloudflareAuthorizer(step.credentials, transport=self._transport)
        try:
            provider = CloudflareZonesProvider(authorizer.get_client(), log=log)
            zones = await provider.get_zones(
                details=step.features.details,
                stabilize=step.features.stabilize_data,
            )
        finally:
            await authorizer.aclose()

        if step.target.overview:
            self._writer.make_data_file(Path(step.target.overview) / "zones.json", data=zones)
        if step.features.details and step.target.details:
            for zone in zones:
                export = (zone.get("dnsRecords") or {}).get("export") or ""
                self._writer.make_data_file(
                    Path(step.target.details) / f"{zone['zone']['name']}.txt", contents=export
                )

        return zones

    async def _execute_github(self, step: GitHubStep) -> GitHubResult:
        log = logger.bind(step=step.id)
        result: GitHubResult = {}
        credentials = step.credentials
        async with GitHubApi(
            credentials.api_url,
            credentials.username,
            credentials.access_token,
            transport=self._transport,
        ) as api:
            provider = GitHubIssuesProvider(api, log=log)
            for repository in step.repositories:
                issues = await provider.get_issues(
                    repository, fetch_comments=step.features.issue_comments
                )
                result[repository] = issues

                if step.target.issues:
                    fname = f"{repository.replace('/', '-')}.ghissues.json"
                    self._writer.make_data_file(Path(step.target.issues) / fname, data=issues)

        return result

    async def _execute_google(self, step: GoogleStep) -> GoogleData:
        cache_path = Path(step.token_cache_path).expanduser().resolve()
        exporter = GoogleExporter(
            self._google_authorizers[cache_path],
            step.features,
            step_id=step.id,
            calendar_ids=step.calendar_ids,
            log=logger.bind(step=step.id),
        )
        data = await exporter.get_data()

        if data.calendars is not None and step.target.calendars:
            target = Path(step.target.calendars)
            self._writer.make_data_file(target / "calendar.json", data=data.calendars)
            for calendar in data.calendars:
                export = calendar["events"]["export"]
                if export is not None:
                    self._writer.make_data_file(
                        target / f"{calendar['calendar']['id']}.ics", contents=export
                    )

        if data.contacts is not None and step.target.contacts:
            target = Path(step.target.contacts)
            self._writer.make_data_file(
                target / "contacts.json",
                data={"contactGroups": data.contacts.contact_groups, "contacts": data.contacts.contacts},
            )
            self._writer.make_data_file(target / "contacts.csv", contents=data.contacts.csv)

        return data
