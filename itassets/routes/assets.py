from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas.assets import (
    AIRecommendation,
    AssetCategory,
    AssetCondition,
    AssetCreate,
    AssetFilters,
    AssetHistoryResponse,
    AssetResponse,
    AssetUpdate,
    AssetWithRelations,
    DeleteResult,
)
from ..services import assets as asset_service
from ..services import reporting
from ..services.recommendations import get_ai_recommendations

router = APIRouter(prefix="/assets", tags=["assets"])


@router.get("", response_model=List[AssetResponse])
def list_assets(
    search: Optional[str] = Query(None),
    category: Optional[AssetCategory] = Query(None),
    condition: Optional[AssetCondition] = Query(None),
    owner: Optional[str] = Query(None, description='"" or "null" selects assets without an owner'),
    is_archived: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
):
    """List assets with filters"""
    filters = AssetFilters(
        search=search,
        category=category,
        condition=condition,
        owner=owner,
        is_archived=is_archived,
    )
    return reporting.list_assets(db, filters)


@router.post("", response_model=AssetResponse)
def create_asset(asset: AssetCreate, db: Session = Depends(get_db)):
    return asset_service.create_asset(db, asset)


@router.get("/{asset_id}", response_model=AssetWithRelations)
def get_asset(asset_id: str, db: Session = Depends(get_db)):
    """Asset detail with complaints, history and maintenance schedules"""
    asset = asset_service.get_asset_by_id(db, asset_id)
    if not asset:
        raise HTTPException(status_code=404, detail="Asset not found")
    return asset


@router.patch("/{asset_id}", response_model=AssetResponse)
def update_asset(asset_id: str, asset_update: AssetUpdate, db: Session = Depends(get_db)):
    return asset_service.update_asset(db, asset_id, asset_update)


@router.delete("/{asset_id}", response_model=DeleteResult)
def delete_asset(asset_id: str, permanent: bool = Query(False), db: Session = Depends(get_db)):
    """Archive the asset, or remove it with all dependent rows when permanent=true"""
    return asset_service.delete_asset(db, asset_id, permanent=permanent)


@router.post("/{asset_id}/restore", response_model=AssetResponse)
def restore_asset(asset_id: str, db: Session = Depends(get_db)):
    return asset_service.restore_asset(db, asset_id)


@router.get("/{asset_id}/history", response_model=List[AssetHistoryResponse])
def get_asset_history(asset_id: str, db: Session = Depends(get_db)):
    return asset_service.get_asset_history(db, asset_id)


@router.get("/{asset_id}/recommendations", response_model=AIRecommendation)
def get_recommendations(asset_id: str, db: Session = Depends(get_db)):
    return get_ai_recommendations(db, asset_id)
