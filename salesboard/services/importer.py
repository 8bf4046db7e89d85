from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.core.config import get_settings
from salesboard.domain.models import Service
from salesboard.domain.schemas import ClientServiceRecord, ServiceEntry, parse_payload
from salesboard.persistence.guards import require_tenant_id
from salesboard.persistence.repos import clients as clients_repo
from salesboard.persistence.repos import services as services_repo
from salesboard.services.tenancy import require_active_tenant


logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    services_created: int = 0
    services_found: int = 0
    associations_created: int = 0
    associations_existing: int = 0
    entries_skipped: int = 0
    missing_clients: list[str] = field(default_factory=list)

    @property
    def clients_missing(self) -> int:
        return len(self.missing_clients)

    @property
    def counts(self) -> dict[str, int]:
        return {
            "services_created": self.services_created,
            "services_found": self.services_found,
            "associations_created": self.associations_created,
            "associations_existing": self.associations_existing,
            "entries_skipped": self.entries_skipped,
            "clients_missing": self.clients_missing,
        }


def is_metadata_entry(entry: ServiceEntry, markers: Iterable[str] | None = None) -> bool:
    # Source sheets carry pseudo-services such as "Vendedor (Nombre Completo)" that hold people, not services.
    markers = get_settings().import_skip_markers if markers is None else markers
    return any(marker in entry.servicio for marker in markers)


def parse_records(records: Iterable[dict[str, Any] | ClientServiceRecord]) -> list[ClientServiceRecord]:
    parsed: list[ClientServiceRecord] = []
    for record in records:
        if isinstance(record, ClientServiceRecord):
            parsed.append(record)
        else:
            parsed.append(parse_payload(ClientServiceRecord, record))
    return parsed


async def import_client_services(
    session: AsyncSession,
    tenant_id: UUID | str,
    records: Iterable[dict[str, Any] | ClientServiceRecord],
) -> ImportSummary:
    resolved = require_tenant_id(tenant_id)
    await require_active_tenant(session, resolved)
    settings = get_settings()
    parsed = parse_records(records)
    summary = ImportSummary()
    services: dict[str, Service] = {}

    for record in parsed:
        entries = []
        for entry in record.servicios:
            if is_metadata_entry(entry, settings.import_skip_markers) or not entry.servicio.strip():
                summary.entries_skipped += 1
                continue
            entries.append(entry)

        for entry in entries:
            name = entry.servicio.strip()
            if name in services:
                continue
            service, created = await services_repo.get_or_create_service(
                session,
                resolved,
                nombre=name,
                categoria=entry.categoria or settings.import_default_category,
            )
            services[name] = service
            if created:
                summary.services_created += 1
            else:
                summary.services_found += 1

        client = await clients_repo.get_client_by_name(session, resolved, record.cliente)
        if client is None:
            logger.warning("import_client_missing tenant_id=%s cliente=%s", resolved, record.cliente)
            summary.missing_clients.append(record.cliente)
            continue

        for entry in entries:
            service = services[entry.servicio.strip()]
            _, created = await services_repo.get_or_create_client_service(
                session,
                resolved,
                client_id=client.id,
                service_id=service.id,
                nota=entry.nota,
            )
            if created:
                summary.associations_created += 1
            else:
                summary.associations_existing += 1

    await session.commit()
    logger.info(
        "client_services_imported tenant_id=%s records=%s services_created=%s associations_created=%s missing_clients=%s",
        resolved,
        len(parsed),
        summary.services_created,
        summary.associations_created,
        summary.clients_missing,
    )
    return summary
