"""
Back-fill ``unique_identifier`` and ``custom_url`` on HubSpot contacts.

A run fetches every contact of the portal, picks the ones missing both
properties and patches them one at a time with a freshly generated
identifier and the landing URL built from it.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from app.clients.hubspot import HubSpotContactsClient
from app.clients.job_store import BackfillJobStore
from app.core.config import BackfillSettings
from app.schemas.contact import Contact
from app.schemas.jobs import BackfillSummary
from app.services.identifiers import generate_identifier

logger = logging.getLogger(__name__)

DEFAULT_URL_TEMPLATE = "https://www.wintactix.com/?{identifier}"


def _is_blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def needs_backfill(contact: Contact) -> bool:
    """Only contacts missing both properties are eligible."""
    properties = contact.properties
    return _is_blank(properties.custom_url) and _is_blank(properties.unique_identifier)


def build_custom_url(identifier: str, template: str = DEFAULT_URL_TEMPLATE) -> str:
    return template.format(identifier=identifier)


class BackfillService:
    """Drive the fetch-then-update loop for one portal."""

    def __init__(
        self,
        contacts_client: HubSpotContactsClient,
        job_store: BackfillJobStore,
        backfill_settings: BackfillSettings,
        identifier_factory: Callable[[int], str] = generate_identifier,
    ) -> None:
        self._contacts = contacts_client
        self._jobs = job_store
        self._settings = backfill_settings
        self._new_identifier = identifier_factory

    async def run(self, portal_id: str, access_token: str) -> BackfillSummary:
        """
        Back-fill every eligible contact of ``portal_id``.

        A failed contact fetch aborts the run before anything is patched. A
        failed patch only skips that contact.
        """
        logger.info("Starting contact backfill for portal %s", portal_id)
        try:
            contacts = await self._contacts.fetch_all_contacts(access_token)
        except Exception:
            logger.exception("Error fetching HubSpot contacts for portal %s", portal_id)
            raise

        summary = BackfillSummary(contacts_seen=len(contacts))
        for contact in contacts:
            if not needs_backfill(contact):
                continue

            summary.contacts_eligible += 1
            identifier = self._new_identifier(self._settings.identifier_length)
            custom_url = build_custom_url(identifier, self._settings.url_template)
            contact.properties.unique_identifier = identifier
            contact.properties.custom_url = custom_url

            updated = await self._contacts.update_contact(
                contact.id, identifier, custom_url, access_token
            )
            if updated:
                summary.contacts_updated += 1
            else:
                summary.contacts_failed += 1

        logger.info(
            "Finished contact backfill for portal %s: %s seen, %s eligible, "
            "%s updated, %s failed",
            portal_id,
            summary.contacts_seen,
            summary.contacts_eligible,
            summary.contacts_updated,
            summary.contacts_failed,
        )
        return summary

    async def run_job(self, job_id: str, portal_id: str, access_token: str) -> None:
        """Background entry point recording the run outcome on the job."""
        self._jobs.mark_running(job_id)
        try:
            summary = await self.run(portal_id, access_token)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Backfill job %s failed: %s", job_id, exc)
            self._jobs.mark_failed(job_id, str(exc) or exc.__class__.__name__)
            return
        self._jobs.mark_completed(job_id, summary)


__all__ = [
    "BackfillService",
    "DEFAULT_URL_TEMPLATE",
    "build_custom_url",
    "needs_backfill",
]
