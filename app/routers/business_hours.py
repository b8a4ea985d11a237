from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from app.db import get_db
from app.models.business_hours import BusinessHours
from app.schemas.business_hours import BusinessHoursResponse, BusinessHoursUpdate
from app.utils.auth import get_current_tenant
import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/business-hours",
    tags=["business hours"],
)


@router.get("/", response_model=List[BusinessHoursResponse])
def get_business_hours(db: Session = Depends(get_db), tenant: dict = Depends(get_current_tenant)):
    """
    Retrieve the tenant's weekly opening hours, Sunday first.
    """
    return db.query(BusinessHours).filter(
        BusinessHours.tenant_id == tenant["tenant_id"]
    ).order_by(BusinessHours.day_of_week).all()


@router.put("/", response_model=List[BusinessHoursResponse], status_code=status.HTTP_200_OK)
def update_business_hours(
    update: BusinessHoursUpdate,
    db: Session = Depends(get_db),
    tenant: dict = Depends(get_current_tenant),
):
    """
    Replace the tenant's weekly opening hours.

    - **hours**: one entry per configured weekday (0 = Sunday). A close time at
      or before the open time keeps the venue open past midnight. Weekdays left
      out have no opening restriction.
    """
    tenant_id = tenant["tenant_id"]
    db.query(BusinessHours).filter(BusinessHours.tenant_id == tenant_id).delete()
    for day in update.hours:
        db.add(
            BusinessHours(
                tenant_id=tenant_id,
                day_of_week=day.day_of_week,
                open_time=None if day.is_closed else day.open_time,
                close_time=None if day.is_closed else day.close_time,
                is_closed=day.is_closed,
            )
        )
    db.commit()
    logger.debug(f"Replaced business hours for tenant {tenant_id}: {len(update.hours)} days")
    return get_business_hours(db, tenant)
