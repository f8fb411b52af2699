# src/credenciales/api/settings.py
from fastapi import APIRouter, Depends, File, Request, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from credenciales.core import errors
from credenciales.core.db import get_session
from credenciales.core.storage import content_type_for, read_image_upload
from credenciales.crud import settings as crud_settings
from credenciales.deps.auth import get_current_admin
from credenciales.schemas.member import UploadResult
from credenciales.schemas.settings import SettingsEnvelope, SettingsRead, SettingsUpdate

router = APIRouter(prefix="/settings", tags=["settings"], dependencies=[Depends(get_current_admin)])

PRESIDENT_SIGNATURE_NAME = "assets/president-signature"


@router.get("", response_model=SettingsEnvelope)
async def get_settings(db: AsyncSession = Depends(get_session)):
    settings = await crud_settings.get_or_create_settings(db)
    return SettingsEnvelope(settings=SettingsRead.model_validate(settings))


@router.put("", response_model=SettingsEnvelope)
async def put_settings(body: SettingsUpdate, db: AsyncSession = Depends(get_session)):
    settings = await crud_settings.update_settings(db, body)
    return SettingsEnvelope(settings=SettingsRead.model_validate(settings), message="Settings updated")


@router.post("/president-signature", response_model=UploadResult)
async def upload_president_signature(
    request: Request,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_session),
):
    data, extension = await read_image_upload(file, request.app.state.settings.MAX_UPLOAD_BYTES)
    relative_path = f"{PRESIDENT_SIGNATURE_NAME}.{extension}"
    await request.app.state.storage.save(relative_path, data, file.content_type)
    await crud_settings.set_president_signature(db, relative_path)
    return UploadResult(path=relative_path, message="President signature updated")


@router.get("/president-signature")
async def get_president_signature(request: Request, db: AsyncSession = Depends(get_session)):
    settings = await crud_settings.get_or_create_settings(db)
    if not settings.president_signature_path:
        raise errors.NotFound("President signature not found")
    data = await request.app.state.storage.load(settings.president_signature_path)
    if data is None:
        raise errors.NotFound("President signature file not found")
    return Response(
        content=data,
        media_type=content_type_for(settings.president_signature_path),
        headers={"Cache-Control": "no-cache"},
    )
