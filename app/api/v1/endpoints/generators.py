"""
Public read access to listings that are for sale
"""

import logging

from bson import ObjectId
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from app.api.dependencies import get_generator_service
from app.models.generator import Generator
from app.models.status_enums import GeneratorStatus
from app.services.generator_service import GeneratorService
from app.utils.listing_fields import format_price, listing_age

logger = logging.getLogger(__name__)

router = APIRouter()


class GeneratorPublicResponse(Generator):
    """Listing with presentation fields computed on read"""
    formatted_price: str
    listing_age: str

    @classmethod
    def from_generator(cls, generator: Generator) -> "GeneratorPublicResponse":
        return cls(
            **generator.model_dump(),
            formatted_price=format_price(generator.price),
            listing_age=listing_age(generator.created_at),
        )


@router.get("/{generator_id}", response_model=GeneratorPublicResponse)
async def get_generator(
    generator_id: str,
    background_tasks: BackgroundTasks,
    service: GeneratorService = Depends(get_generator_service),
):
    """Get a listing that is for sale"""
    if not ObjectId.is_valid(generator_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid generator ID format")

    generator = await service.get_generator(generator_id)
    if generator is None or generator.status != GeneratorStatus.FOR_SALE:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Generator not found")

    # Counted after the response is sent; a crash may lose the view
    background_tasks.add_task(service.increment_views, generator_id)

    return GeneratorPublicResponse.from_generator(generator)


@router.post("/{generator_id}/contact-click")
async def track_contact_click(
    generator_id: str,
    service: GeneratorService = Depends(get_generator_service),
):
    """Count a click on the seller's WhatsApp contact button"""
    if not ObjectId.is_valid(generator_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid generator ID format")

    clicks = await service.increment_whatsapp_clicks(generator_id)
    if clicks is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Generator not found")

    return {"success": True, "whatsapp_clicks": clicks}
