"""Read-time joins between appointments, doctors and profiles.

The store is queried one record kind at a time; related rows are fetched in a
single batched ``IN`` query per kind and attached in memory. Rows whose
related record is missing get a placeholder instead of being dropped.
"""

from collections.abc import Awaitable, Callable, Hashable, Iterable, Sequence
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediconnect.models.doctors import doctors
from mediconnect.models.profiles import profiles

logger = structlog.get_logger()

UNKNOWN = "Unknown"

UNKNOWN_PATIENT: dict[str, Any] = {
    "full_name": UNKNOWN,
    "age": 0,
    "gender": UNKNOWN,
    "phone": "",
}
UNKNOWN_DOCTOR_PROFILE: dict[str, Any] = {
    "full_name": UNKNOWN,
    "avatar_url": None,
}

BatchFetch = Callable[[list[Any]], Awaitable[Sequence[dict[str, Any]]]]


def distinct_keys(rows: Iterable[dict[str, Any]], key: str) -> list[Any]:
    """Distinct non-null values of ``key`` in first-seen order."""
    seen: dict[Hashable, None] = {}
    for row in rows:
        value = row.get(key)
        if value is not None:
            seen.setdefault(value, None)
    return list(seen)


async def fetch_related(
    rows: Sequence[dict[str, Any]],
    foreign_key: str,
    fetch: BatchFetch,
    related_key: str,
) -> dict[Any, dict[str, Any]]:
    """
    Fetch the records referenced by ``rows[*][foreign_key]`` in one call.

    Returns:
        Related records indexed by ``related_key``; empty when nothing is referenced
    """
    keys = distinct_keys(rows, foreign_key)
    if not keys:
        return {}

    try:
        related = await fetch(keys)
    except SQLAlchemyError as e:
        # Enrichment is best effort: rows still render with placeholders
        logger.warning("join_fetch_failed", foreign_key=foreign_key, keys=len(keys), error=str(e))
        return {}

    return {record[related_key]: record for record in related}


def attach(
    rows: Sequence[dict[str, Any]],
    foreign_key: str,
    index: dict[Any, dict[str, Any]],
    attach_as: str,
    placeholder: dict[str, Any],
    fields: Sequence[str] | None = None,
) -> list[dict[str, Any]]:
    """
    Copy each row and attach its related record under ``attach_as``.

    Missing records, and missing or null ``fields`` of found records, are
    filled from ``placeholder``.
    """
    wanted = list(fields) if fields is not None else list(placeholder)
    joined = []
    for row in rows:
        related = index.get(row.get(foreign_key))
        if related is None:
            summary = dict(placeholder)
        else:
            summary = {
                name: related.get(name) if related.get(name) is not None else placeholder.get(name)
                for name in wanted
            }
        joined.append({**row, attach_as: summary})
    return joined


class JoinService:
    """Batched lookups of doctors and profiles for display."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _fetch(self, stmt: Any) -> list[dict[str, Any]]:
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError:
            # Leave the session usable; the caller decides how to degrade
            await self.db.rollback()
            raise
        return [dict(row) for row in result.mappings().all()]

    async def fetch_profiles(self, user_ids: list[UUID]) -> list[dict[str, Any]]:
        """Profiles for a set of identities, in one query."""
        return await self._fetch(select(profiles).where(profiles.c.user_id.in_(user_ids)))

    async def fetch_doctors(self, doctor_ids: list[UUID]) -> list[dict[str, Any]]:
        """Doctor records for a set of doctor ids, in one query."""
        return await self._fetch(select(doctors).where(doctors.c.id.in_(doctor_ids)))

    async def with_patient_profiles(
        self, appointment_rows: Sequence[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Attach the patient's profile to each appointment (doctor-facing view)."""
        index = await fetch_related(
            appointment_rows, "patient_id", self.fetch_profiles, "user_id"
        )
        return attach(appointment_rows, "patient_id", index, "patient", UNKNOWN_PATIENT)

    async def with_doctor_details(
        self, appointment_rows: Sequence[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """
        Attach doctor name and specialization to each appointment (patient-facing view).

        Two sequential batched fetches: doctor records, then their owners' profiles.
        """
        doctor_index = await fetch_related(appointment_rows, "doctor_id", self.fetch_doctors, "id")
        doctor_rows = list(doctor_index.values())
        profile_index = await fetch_related(doctor_rows, "user_id", self.fetch_profiles, "user_id")

        joined = []
        for row in appointment_rows:
            doctor = doctor_index.get(row["doctor_id"])
            profile = profile_index.get(doctor["user_id"]) if doctor else None
            joined.append(
                {
                    **row,
                    "doctor": {
                        "specialization": (doctor or {}).get("specialization") or UNKNOWN,
                        "full_name": (profile or {}).get("full_name") or UNKNOWN,
                    },
                }
            )
        return joined

    async def with_doctor_profiles(
        self, doctor_rows: Sequence[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Attach the owner's profile to each doctor record (directory view)."""
        index = await fetch_related(doctor_rows, "user_id", self.fetch_profiles, "user_id")
        return attach(doctor_rows, "user_id", index, "profile", UNKNOWN_DOCTOR_PROFILE)
