"""Outlet browsing endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.db.session import get_db
from canteen.models.outlet import Outlet
from canteen.schemas.outlet import MenuItemRead, OutletMenuResponse, OutletRead
from canteen.services.outlet_service import list_available_menu, list_outlets

router: APIRouter = APIRouter()


@router.get("", response_model=list[OutletRead])
async def get_outlets(
    university_id: int | None = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_db),
) -> list[OutletRead]:
    outlets = await list_outlets(db, university_id=university_id)
    return [OutletRead.model_validate(outlet) for outlet in outlets]


@router.get("/{outlet_id}/menu", response_model=OutletMenuResponse)
async def get_outlet_menu(outlet_id: int, db: AsyncSession = Depends(get_db)) -> OutletMenuResponse:
    outlet: Outlet | None = await db.get(Outlet, outlet_id)
    if outlet is None or not outlet.is_verified:
        raise HTTPException(status_code=404, detail="Outlet not found")
    grouped = await list_available_menu(db, outlet.id)
    return OutletMenuResponse(
        outlet=OutletRead.model_validate(outlet),
        categories={
            category: [MenuItemRead.model_validate(item) for item in items]
            for category, items in grouped.items()
        },
    )
