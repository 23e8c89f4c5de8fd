"""University lookups."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.models.university import University


async def list_active_universities(db: AsyncSession) -> list[University]:
    rows = await db.scalars(select(University).where(University.is_active.is_(True)).order_by(University.name.asc()))
    return list(rows.all())


async def get_university(db: AsyncSession, university_id: int) -> University | None:
    return await db.get(University, university_id)
