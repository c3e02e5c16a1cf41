from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas.complaints import ComplaintCreate, ComplaintResponse, ComplaintStatus, ComplaintUpdate
from ..services import complaints as complaint_service

router = APIRouter(prefix="/complaints", tags=["complaints"])


@router.get("", response_model=List[ComplaintResponse])
def list_complaints(
    asset_id: Optional[str] = Query(None),
    status: Optional[ComplaintStatus] = Query(None),
    db: Session = Depends(get_db),
):
    return complaint_service.get_complaints(db, asset_id=asset_id, status=status)


@router.post("", response_model=ComplaintResponse)
def create_complaint(complaint: ComplaintCreate, db: Session = Depends(get_db)):
    return complaint_service.create_complaint(db, complaint)


@router.patch("/{complaint_id}", response_model=ComplaintResponse)
def update_complaint(complaint_id: str, complaint_update: ComplaintUpdate, db: Session = Depends(get_db)):
    """Update a complaint; resolving the last open one may heal the asset"""
    return complaint_service.update_complaint(db, complaint_id, complaint_update)
