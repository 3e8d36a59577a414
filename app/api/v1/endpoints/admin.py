"""
Admin API endpoints for reviewing and managing generator listings
"""

import logging
import secrets
import time
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, ValidationError

from app.api.dependencies import (
    get_current_admin,
    get_generator_service,
    get_sold_workflow_service,
    get_user_service,
)
from app.exceptions import DuplicateListingError, InvalidStatusTransitionError, ListingNotFoundError
from app.models.generator import (
    BRAND_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    LOCATION_MAX_LENGTH,
    MODEL_MAX_LENGTH,
    AuditTrail,
    Generator,
    MediaItem,
)
from app.models.status_enums import GeneratorStatus, ReviewAction
from app.models.user import WHATSAPP_ID_PATTERN
from app.services.generator_service import GeneratorService
from app.services.sold_workflow_service import SoldWorkflowService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_admin)])


class ReviewRequest(BaseModel):
    """Request model for approving or rejecting a listing"""
    action: ReviewAction
    reason: Optional[str] = None
    approved_by: Optional[str] = None


class GeneratorUpdate(BaseModel):
    """Request model for correcting listing details"""
    brand: Optional[str] = Field(default=None, max_length=BRAND_MAX_LENGTH)
    model: Optional[str] = Field(default=None, max_length=MODEL_MAX_LENGTH)
    price: Optional[float] = Field(default=None, gt=0)
    hours_run: Optional[float] = Field(default=None, ge=0)
    location_text: Optional[str] = Field(default=None, max_length=LOCATION_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)


class ManualGeneratorCreate(BaseModel):
    """Request model for a listing entered by an admin"""
    brand: str = Field(..., min_length=1, max_length=BRAND_MAX_LENGTH)
    model: str = Field(..., min_length=1, max_length=MODEL_MAX_LENGTH)
    price: float = Field(..., gt=0)
    hours_run: float = Field(..., ge=0)
    location_text: str = Field(..., min_length=1, max_length=LOCATION_MAX_LENGTH)
    description: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    seller_whatsapp_id: str = Field(..., pattern=WHATSAPP_ID_PATTERN)
    seller_display_name: Optional[str] = None
    images: List[Union[str, MediaItem]] = Field(default_factory=list)


class GeneratorListResponse(BaseModel):
    """Paginated listings plus per-status counts"""
    generators: List[Generator]
    pagination: Dict[str, Any]
    status_stats: Dict[str, int]


def _require_object_id(generator_id: str) -> None:
    if not ObjectId.is_valid(generator_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid generator ID format")


def _manual_images(images: List[Union[str, MediaItem]]) -> List[MediaItem]:
    stamp = int(time.time() * 1000)
    processed = []
    for index, image in enumerate(images):
        if isinstance(image, str):
            image = MediaItem(url=image)
        processed.append(
            MediaItem(
                url=image.url,
                filename=image.filename or f"manual_upload_{stamp}_{index}",
                size=image.size or 0,
                mimetype=image.mimetype or "image/jpeg",
            )
        )
    return processed


@router.get("/generators", response_model=GeneratorListResponse)
async def list_generators(
    status_filter: str = Query(GeneratorStatus.PENDING_REVIEW.value, alias="status"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: GeneratorService = Depends(get_generator_service),
):
    """Listings for the review dashboard; status=all disables the status filter"""
    try:
        generators, total = await service.list_generators(status_filter, search, page, limit)
        status_stats = await service.get_status_counts()
    except Exception as e:
        logger.error("Error fetching admin generators: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch generators: {str(e)}",
        )

    total_pages = (total + limit - 1) // limit
    return GeneratorListResponse(
        generators=generators,
        pagination={
            "current_page": page,
            "total_pages": total_pages,
            "total_count": total,
            "limit": limit,
            "has_next_page": page < total_pages,
            "has_prev_page": page > 1,
        },
        status_stats=status_stats,
    )


@router.put("/generators/{generator_id}", response_model=Generator)
async def review_generator(
    generator_id: str,
    review: ReviewRequest,
    admin: dict = Depends(get_current_admin),
    service: GeneratorService = Depends(get_generator_service),
):
    """Approve (-> for_sale) or reject (-> rejected) a pending listing"""
    _require_object_id(generator_id)
    try:
        return await service.review_generator(
            generator_id,
            review.action,
            reason=review.reason,
            approved_by=review.approved_by or admin.get("sub"),
        )
    except ListingNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Generator not found")
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error("Error updating generator %s: %s", generator_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update generator: {str(e)}",
        )


@router.patch("/generators/{generator_id}", response_model=Generator)
async def update_generator(
    generator_id: str,
    update: GeneratorUpdate,
    service: GeneratorService = Depends(get_generator_service),
):
    """Correct the details of a listing, e.g. one that failed parsing"""
    _require_object_id(generator_id)
    changes = update.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    try:
        return await service.update_details(generator_id, changes)
    except ListingNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Generator not found")
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/generators/manual", response_model=Generator, status_code=status.HTTP_201_CREATED)
async def create_manual_generator(
    data: ManualGeneratorCreate,
    admin: dict = Depends(get_current_admin),
    generator_service: GeneratorService = Depends(get_generator_service),
    user_service: UserService = Depends(get_user_service),
):
    """Add a listing by hand; it goes straight to for_sale"""
    try:
        seller = await user_service.find_or_create(data.seller_whatsapp_id, data.seller_display_name)
        now = datetime.now(UTC)

        generator = Generator(
            brand=data.brand.strip(),
            model=data.model.strip(),
            price=data.price,
            hours_run=data.hours_run,
            location_text=data.location_text.strip(),
            description=data.description.strip(),
            images=_manual_images(data.images),
            seller_id=seller.id,
            status=GeneratorStatus.FOR_SALE,
            audit_trail=AuditTrail(
                whatsapp_message_id=f"manual_{int(time.time() * 1000)}_{secrets.token_hex(4)}",
                original_message_text=f"Manually added by admin: {data.brand} {data.model}",
                parsed_at=now,
                approved_by=admin.get("sub"),
                approved_at=now,
            ),
        )

        generator = await generator_service.create_generator(generator)
        await user_service.increment_total_listings(seller.id)

    except DuplicateListingError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except Exception as e:
        logger.error("Error creating manual generator: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create generator: {str(e)}",
        )

    logger.info("Manual generator %s created for seller %s", generator.id, seller.id)
    return generator


@router.get("/sold-stats")
async def get_sold_stats(
    seller_id: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    service: SoldWorkflowService = Depends(get_sold_workflow_service),
):
    """SOLD workflow statistics and the most recent sales"""
    if seller_id is not None and not ObjectId.is_valid(seller_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid seller ID format")

    try:
        stats = await service.get_sold_workflow_stats(seller_id)
        recent = await service.get_recent_sold_activities(limit)
    except Exception as e:
        logger.error("Error getting SOLD workflow stats: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get sold stats: {str(e)}",
        )

    return {
        "stats": stats,
        "recent_sold": [
            {
                "id": generator.id,
                "brand": generator.brand,
                "model": generator.model,
                "price": generator.price,
                "sold_date": generator.sold_date,
                "sold_price": generator.sold_price,
                "seller_id": generator.seller_id,
            }
            for generator in recent
        ],
    }
