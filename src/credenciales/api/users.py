# src/credenciales/api/users.py
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Request, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from credenciales.core import errors
from credenciales.core.db import get_session
from credenciales.core.storage import content_type_for, member_file_path, read_image_upload
from credenciales.crud import member as crud_member
from credenciales.crud.settings import get_or_create_settings
from credenciales.deps.auth import get_current_admin
from credenciales.models.member import Address, Member
from credenciales.schemas.member import (
    AddressRead,
    CardEnvelope,
    MemberCreate,
    MemberDetail,
    MemberEnvelope,
    MemberRead,
    MemberSearchResult,
    MemberUpdate,
    UploadResult,
    VigencyApply,
    VigencyEventEnvelope,
    VigencyEventList,
    VigencyEventRead,
)
from credenciales.service.card import build_card

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(get_current_admin)])

FILE_ATTRIBUTES = {
    "photo": ("photo_path", "photos"),
    "signature": ("signature_path", "signatures"),
}


def _member_read(member: Member, address: Optional[Address], schema=MemberRead, **extra):
    payload = MemberRead.model_validate(member).model_dump()
    payload["address"] = AddressRead.model_validate(address) if address else None
    return schema(**payload, **extra)


async def _member_detail(db: AsyncSession, member: Member, address: Optional[Address]) -> MemberDetail:
    events = await crud_member.list_vigency_events(db, member.id, limit=crud_member.RECENT_EVENTS)
    return _member_read(
        member,
        address,
        schema=MemberDetail,
        vigency_events=[VigencyEventRead.model_validate(e) for e in events],
    )


@router.get("", response_model=MemberSearchResult)
async def search_users(
    query: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_session),
):
    members = await crud_member.search_members(db, query)
    addresses = await crud_member.get_addresses(db, [m.id for m in members])
    return MemberSearchResult(users=[_member_read(m, addresses.get(m.id)) for m in members])


@router.post("", response_model=MemberEnvelope, status_code=201)
async def create_user(body: MemberCreate, db: AsyncSession = Depends(get_session)):
    member, address = await crud_member.create_member(db, body)
    return MemberEnvelope(
        user=await _member_detail(db, member, address),
        message="Member created",
    )


@router.get("/{member_id}", response_model=MemberEnvelope)
async def get_user(member_id: str, db: AsyncSession = Depends(get_session)):
    member = await crud_member.get_member(db, member_id)
    address = await crud_member.get_address(db, member_id)
    return MemberEnvelope(user=await _member_detail(db, member, address))


@router.patch("/{member_id}", response_model=MemberEnvelope)
async def update_user(member_id: str, body: MemberUpdate, db: AsyncSession = Depends(get_session)):
    member, address = await crud_member.update_member(db, member_id, body)
    return MemberEnvelope(
        user=await _member_detail(db, member, address),
        message="Member updated",
    )


# Vigency
@router.post("/{member_id}/vigency", response_model=VigencyEventEnvelope)
async def apply_vigency(
    member_id: str,
    body: Optional[VigencyApply] = None,
    db: AsyncSession = Depends(get_session),
):
    event = await crud_member.apply_vigency(db, member_id, body.note if body else None)
    return VigencyEventEnvelope(vigency_event=VigencyEventRead.model_validate(event))


@router.get("/{member_id}/vigency", response_model=VigencyEventList)
async def list_vigency(member_id: str, db: AsyncSession = Depends(get_session)):
    await crud_member.get_member(db, member_id)
    events = await crud_member.list_vigency_events(db, member_id)
    return VigencyEventList(vigency_events=[VigencyEventRead.model_validate(e) for e in events])


# Card
@router.get("/{member_id}/card", response_model=CardEnvelope)
async def get_card(member_id: str, request: Request, db: AsyncSession = Depends(get_session)):
    member = await crud_member.get_member(db, member_id)
    app_settings = await get_or_create_settings(db)
    card = build_card(
        member,
        app_settings,
        api_prefix=request.app.state.settings.API_V1_STR,
        public_app_url=request.app.state.settings.PUBLIC_APP_URL,
    )
    return CardEnvelope(card=card)


# Photo / signature files
async def _upload_member_file(
    kind: str, member_id: str, file: UploadFile, request: Request, db: AsyncSession
) -> UploadResult:
    attribute, folder = FILE_ATTRIBUTES[kind]
    data, extension = await read_image_upload(file, request.app.state.settings.MAX_UPLOAD_BYTES)
    member = await crud_member.get_member(db, member_id)

    relative_path = member_file_path(folder, member.id, extension)
    await request.app.state.storage.save(relative_path, data, file.content_type)
    await crud_member.set_member_file(db, member, attribute, relative_path)
    return UploadResult(path=relative_path, message=f"{kind.capitalize()} updated")


async def _download_member_file(kind: str, member_id: str, request: Request, db: AsyncSession) -> Response:
    attribute, _ = FILE_ATTRIBUTES[kind]
    member = await crud_member.get_member(db, member_id)
    relative_path = getattr(member, attribute)
    if not relative_path:
        raise errors.NotFound(f"{kind.capitalize()} not found")

    data = await request.app.state.storage.load(relative_path)
    if data is None:
        raise errors.NotFound(f"{kind.capitalize()} file not found")
    return Response(
        content=data,
        media_type=content_type_for(relative_path),
        headers={"Cache-Control": "public, max-age=3600"},
    )


@router.post("/{member_id}/photo", response_model=UploadResult)
async def upload_photo(
    member_id: str,
    request: Request,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_session),
):
    return await _upload_member_file("photo", member_id, file, request, db)


@router.get("/{member_id}/photo")
async def get_photo(member_id: str, request: Request, db: AsyncSession = Depends(get_session)):
    return await _download_member_file("photo", member_id, request, db)


@router.post("/{member_id}/signature", response_model=UploadResult)
async def upload_signature(
    member_id: str,
    request: Request,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_session),
):
    return await _upload_member_file("signature", member_id, file, request, db)


@router.get("/{member_id}/signature")
async def get_signature(member_id: str, request: Request, db: AsyncSession = Depends(get_session)):
    return await _download_member_file("signature", member_id, request, db)
