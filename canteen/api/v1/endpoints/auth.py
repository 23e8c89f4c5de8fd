"""Student authentication endpoints (API JWT)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.core.security import STUDENT, create_access_token, get_current_student, get_password_hash, verify_password
from canteen.db.session import get_db
from canteen.models.university import University
from canteen.models.user import User
from canteen.schemas.auth import FavoriteRead, LoginRequest, RegisterRequest, StudentResponse, TokenResponse
from canteen.services.university_service import get_university
from canteen.services.user_service import create_user, get_user_by_email, top_favorites

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: AsyncSession = Depends(get_db)) -> StudentResponse:
    if "@" not in payload.email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Valid email is required")
    if await get_user_by_email(db=db, email=payload.email) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    if payload.university_id is not None:
        university: University | None = await get_university(db, payload.university_id)
        if university is None or not university.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown university")
    user = await create_user(
        db=db,
        full_name=payload.full_name,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        phone=payload.phone,
        university_id=payload.university_id,
    )
    logger.info("[AUTH] Registered student user_id=%s", user.id)
    return StudentResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    user: User | None = await get_user_by_email(db=db, email=payload.email)
    if user is None or not user.is_active or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")
    return TokenResponse(access_token=create_access_token(user.id, STUDENT))


@router.get("/me", response_model=StudentResponse)
async def me(current_user: User = Depends(get_current_student)) -> StudentResponse:
    return StudentResponse.model_validate(current_user)


@router.get("/me/favorites", response_model=list[FavoriteRead])
async def my_favorites(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_student),
) -> list[FavoriteRead]:
    favorites = await top_favorites(db, current_user.id)
    return [FavoriteRead.model_validate(favorite) for favorite in favorites]
