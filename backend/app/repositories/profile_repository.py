"""Repository for Profile (Profile Store) operations.

Only the columns owned by the verification flow are written here: id,
email and role. Display fields are never touched.
"""

import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.profile import Profile


class ProfileRepository:
    """Stateless repository for Profile table operations.

    All methods are static; there is no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Profile | None:
        """Fetch a profile by email (case-insensitive).

        Rows inserted out-of-band may carry mixed-case emails, so both sides
        are lowercased in SQL.

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            Profile if found, None otherwise.
        """
        stmt = select(Profile).where(func.lower(Profile.email) == email.lower())
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        profile_id: uuid.UUID,
        email: str,
        role: str,
    ) -> Profile:
        """Insert a profile row.

        Args:
            db: Async database session.
            profile_id: Identity Directory id to mirror.
            email: Profile email.
            role: Computed role.

        Returns:
            Created Profile.

        Raises:
            sqlalchemy.exc.IntegrityError: If the id or email already exists.
        """
        profile = Profile(id=profile_id, email=email, role=role)
        db.add(profile)
        await db.flush()
        return profile

    @staticmethod
    async def update_role(db: AsyncSession, profile_id: uuid.UUID, role: str) -> bool:
        """Set the role on a profile row.

        Args:
            db: Async database session.
            profile_id: Row to update.
            role: New role.

        Returns:
            True if a row was updated.
        """
        stmt = (
            update(Profile)
            .where(Profile.id == profile_id)
            .values(role=role, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1

    @staticmethod
    async def reassign_id(
        db: AsyncSession,
        old_id: uuid.UUID,
        new_id: uuid.UUID,
        role: str,
    ) -> bool:
        """Move a profile row onto a new primary key and set its role.

        Single UPDATE so display_name, phone and profile_path are carried
        over untouched.

        Args:
            db: Async database session.
            old_id: Current primary key of the row.
            new_id: Identity Directory id to adopt.
            role: New role.

        Returns:
            True if a row was updated.

        Raises:
            sqlalchemy.exc.IntegrityError: If new_id belongs to another row.
        """
        stmt = (
            update(Profile)
            .where(Profile.id == old_id)
            .values(id=new_id, role=role, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1
