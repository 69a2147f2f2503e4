"""
Repair passes for two-phase writes a crash left half done.

- project deletes whose task cascade did not complete
- invite accepts claimed but never linked to their user

Runs at API startup against the live storage, before requests are served.
"""

from __future__ import annotations

import logging

from projecthub.services.invites import InviteService
from projecthub.services.projects import ProjectService
from projecthub.storage.base import StorageProvider

logger = logging.getLogger(__name__)


async def reconcile(storage: StorageProvider) -> dict[str, int]:
    invites = await InviteService(storage).reconcile()
    tasks = await ProjectService(storage).reconcile_deleted()
    counts = {
        "tasks_cascaded": tasks,
        "invites_linked": invites["linked"],
        "invites_released": invites["released"],
    }
    if any(counts.values()):
        logger.warning(f"Startup repair: {counts}")
    return counts
