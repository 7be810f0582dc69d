"""Profile directory lookups."""

from __future__ import annotations

from app.config import STUDENT_ROLE
from app.parsers.transforms import _to_text
from app.schemas import Student
from app.services import _remote
from backoffice.platform import PlatformClient


async def list_students(platform: PlatformClient) -> list[Student]:
    """Profiles offered as bank-slip recipients (role ``student`` only), by name."""
    rows = await _remote.select(
        platform, "profiles", columns="id,name,email,role", order="name",
        failure="Failed to fetch students.",
    )
    return [
        Student(
            id=str(r["id"]),
            name=_to_text(r.get("name")) or "",
            email=_to_text(r.get("email")),
            role=str(r.get("role") or ""),
        )
        for r in rows
        if r.get("role") == STUDENT_ROLE
    ]
