"""Student account operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.models.user import FavoriteItem, User


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    return await db.scalar(select(User).where(User.email == email.strip().lower()).limit(1))


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    return await db.get(User, user_id)


async def create_user(
    db: AsyncSession,
    *,
    full_name: str,
    email: str,
    hashed_password: str,
    phone: str | None = None,
    university_id: int | None = None,
) -> User:
    user = User(
        full_name=full_name.strip(),
        email=email.strip().lower(),
        password_hash=hashed_password,
        phone=phone,
        university_id=university_id,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def top_favorites(db: AsyncSession, user_id: int, limit: int = 3) -> list[FavoriteItem]:
    rows = await db.scalars(
        select(FavoriteItem)
        .where(FavoriteItem.user_id == user_id)
        .order_by(FavoriteItem.order_count.desc(), FavoriteItem.id.asc())
        .limit(limit)
    )
    return list(rows.all())
