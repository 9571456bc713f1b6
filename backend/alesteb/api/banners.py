from fastapi import APIRouter, Depends, UploadFile, File, Form
from sqlmodel import Session, select
from typing import List, Optional
from alesteb.api.deps import get_db, admin_required, TokenClaims
from alesteb.core.errors import NotFoundError
from alesteb.db.session import transaction
from alesteb.models.banner import Banner
from alesteb.schemas.banner import BannerResponse
from alesteb.services.catalog import ImageUpload, validate_uploads, discard_objects
from alesteb.services.image_store import LocalImageStore, StoredImage, get_image_store

router = APIRouter(prefix="/api/banners", tags=["banners"])

BANNER_FOLDER = "banners"


def upload_banner_image(store: LocalImageStore, image: Optional[UploadFile]) -> Optional[StoredImage]:
    if image is None:
        return None
    upload = ImageUpload(filename=image.filename or "", content_type=image.content_type, content=image.file.read())
    validate_uploads([upload])
    return store.upload(upload.content, upload.filename, folder=BANNER_FOLDER)


@router.get("/active", response_model=List[BannerResponse])
def list_active_banners(db: Session = Depends(get_db)):
    return db.exec(select(Banner).where(Banner.is_active == True).order_by(Banner.id.desc())).all()


@router.get("/", response_model=List[BannerResponse])
def list_banners(
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    return db.exec(select(Banner).order_by(Banner.id.desc())).all()


@router.post("/", response_model=BannerResponse, status_code=201)
def create_banner(
    title: str = Form(..., min_length=1),
    description: Optional[str] = Form(None),
    button_text: Optional[str] = Form(None),
    button_link: Optional[str] = Form(None),
    is_active: bool = Form(True),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    store: LocalImageStore = Depends(get_image_store),
    _: TokenClaims = Depends(admin_required)
):
    stored = upload_banner_image(store, image)
    try:
        with transaction(db):
            banner = Banner(
                title=title,
                description=description,
                button_text=button_text,
                button_link=button_link,
                is_active=is_active,
                image_url=stored.url if stored else None,
                image_key=stored.key if stored else None,
            )
            db.add(banner)
    except Exception:
        if stored:
            discard_objects(store, [stored.key])
        raise

    db.refresh(banner)
    return banner


@router.put("/{banner_id}", response_model=BannerResponse)
def update_banner(
    banner_id: int,
    title: Optional[str] = Form(None, min_length=1),
    description: Optional[str] = Form(None),
    button_text: Optional[str] = Form(None),
    button_link: Optional[str] = Form(None),
    is_active: Optional[bool] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    store: LocalImageStore = Depends(get_image_store),
    _: TokenClaims = Depends(admin_required)
):
    """Update a banner; a new image replaces the old one once committed"""
    banner = db.get(Banner, banner_id)
    if not banner:
        raise NotFoundError("Banner")

    fields = {
        "title": title,
        "description": description,
        "button_text": button_text,
        "button_link": button_link,
        "is_active": is_active,
    }
    old_key = banner.image_key
    stored = upload_banner_image(store, image)

    try:
        with transaction(db):
            for key, value in fields.items():
                if value is not None:
                    setattr(banner, key, value)
            if stored:
                banner.image_url = stored.url
                banner.image_key = stored.key
            db.add(banner)
    except Exception:
        if stored:
            discard_objects(store, [stored.key])
        raise

    if stored and old_key:
        discard_objects(store, [old_key])

    db.refresh(banner)
    return banner


@router.delete("/{banner_id}")
def delete_banner(
    banner_id: int,
    db: Session = Depends(get_db),
    store: LocalImageStore = Depends(get_image_store),
    _: TokenClaims = Depends(admin_required)
):
    banner = db.get(Banner, banner_id)
    if not banner:
        raise NotFoundError("Banner")

    image_key = banner.image_key
    with transaction(db):
        db.delete(banner)

    if image_key:
        discard_objects(store, [image_key])
    return {"message": "Banner deleted"}
