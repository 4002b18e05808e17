"""Export Cloudflare zones with their DNS records, settings and email routing."""

import asyncio
from typing import TYPE_CHECKING, Any

from loguru import logger

from cloud_export.api import CloudflareApi
from cloud_export.pagination import walk_pages
from cloud_export.stabilize import stabilize_zone_export

if TYPE_CHECKING:
    from loguru import Logger

ZONES_PAGE_SIZE = 50
DNS_RECORDS_PAGE_SIZE = 100
EMAIL_RULES_PAGE_SIZE = 50


class CloudflareZonesProvider:
    """Fetch every zone the API token can see."""

    def __init__(self, api: CloudflareApi, log: "Logger | None" = None) -> None:
        self.api = api
        self.log = log or logger

    async def get_zones(self, *, details: bool, stabilize: bool = False) -> list[dict[str, Any]]:
        """Return one entry per zone.

        Args:
            details: Also fetch DNS records, the BIND export, settings and
                email routing of each zone.
            stabilize: Neutralize the volatile parts of the BIND export.
        """
        # Zone listing is walked like any other listing, even though small
        # accounts fit on a single page.
        zones = await walk_pages(
            self.api.page_fetcher("/zones"),
            page_size=ZONES_PAGE_SIZE,
            description="zones",
            log=self.log,
        )

        result: list[dict[str, Any]] = []
        for zone in zones:
            entry: dict[str, Any] = {"zone": zone}
            if details:
                entry.update(await self._get_zone_details(zone, stabilize=stabilize))
            result.append(entry)
        return result

    async def _get_zone_details(self, zone: dict[str, Any], *, stabilize: bool) -> dict[str, Any]:
        """Fetch the detail endpoints of one zone concurrently.

        If one request fails, the others are cancelled before the failure
        propagates, so none outlives the API client.
        """
        zone_id = zone["id"]
        zone_name = zone.get("name", zone_id)
        self.log.info("Fetching details of zone {!r}", zone_name)
        try:
            async with asyncio.TaskGroup() as tg:
                records = tg.create_task(
                    walk_pages(
                        self.api.page_fetcher(f"/zones/{zone_id}/dns_records"),
                        page_size=DNS_RECORDS_PAGE_SIZE,
                        description=f"DNS records of zone {zone_name!r}",
                        log=self.log,
                    )
                )
                export = tg.create_task(self.api.get_text(f"/zones/{zone_id}/dns_records/export"))
                settings = tg.create_task(self.api.get_result(f"/zones/{zone_id}/settings"))
                routing = tg.create_task(self.api.get_result(f"/zones/{zone_id}/email/routing"))
                rules = tg.create_task(
                    walk_pages(
                        self.api.page_fetcher(f"/zones/{zone_id}/email/routing/rules"),
                        page_size=EMAIL_RULES_PAGE_SIZE,
                        description=f"email routing rules of zone {zone_name!r}",
                        log=self.log,
                    )
                )
        except ExceptionGroup as eg:
            # Callers see the first failure itself, not the group
            raise eg.exceptions[0] from None

        return {
            "dnsRecords": {
                "data": records.result(),
                "export": stabilize_zone_export(export.result(), enabled=stabilize),
            },
            "settings": settings.result(),
            "emails": {"routing": routing.result(), "rules": rules.result()},
        }
