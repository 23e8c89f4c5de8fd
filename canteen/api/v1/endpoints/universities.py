"""University directory endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.db.session import get_db
from canteen.schemas.university import UniversityRead
from canteen.services.university_service import get_university, list_active_universities

router: APIRouter = APIRouter()


@router.get("", response_model=list[UniversityRead])
async def get_universities(db: AsyncSession = Depends(get_db)) -> list[UniversityRead]:
    """Active universities in name order, for the registration form."""
    universities = await list_active_universities(db)
    return [UniversityRead.model_validate(university) for university in universities]


@router.get("/{university_id}", response_model=UniversityRead)
async def get_university_by_id(university_id: int, db: AsyncSession = Depends(get_db)) -> UniversityRead:
    university = await get_university(db, university_id)
    if university is None:
        raise HTTPException(status_code=404, detail="University not found")
    return UniversityRead.model_validate(university)
