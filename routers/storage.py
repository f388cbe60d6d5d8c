"""
Public download URLs for stored document files, and the stored subscription status.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import ResourceNotFoundException
from core.security import get_current_active_user
from core.storage import LocalObjectStorage, get_storage
from core.file_utils import guess_mime_type
from db_config import get_async_db
from models.models import User
from schemas.subscription import SubscriptionStatusRead
from services.subscription_service import get_subscriber, status_from_row

router = APIRouter(prefix="/storage", tags=["Storage"])
subscriptions_router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


@router.get("/{bucket}/{path:path}")
async def download_object(bucket: str, path: str, storage: LocalObjectStorage = Depends(get_storage)):
    """Serve a stored object; this is what ``Document.url`` points to."""
    if bucket != settings.storage_bucket:
        raise ResourceNotFoundException("Fichier introuvable")
    file_path = storage.local_path(bucket, path)
    return FileResponse(file_path, media_type=guess_mime_type(path, None), filename=file_path.name)


@subscriptions_router.get("/me", response_model=SubscriptionStatusRead)
async def get_my_subscription(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    """Last known billing status, without contacting Stripe."""
    subscriber = await get_subscriber(db, current_user.email)
    return SubscriptionStatusRead.model_validate(status_from_row(subscriber))
