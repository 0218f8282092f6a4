from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from controllers import image_controller

router = APIRouter(prefix="/api")

Status = Literal["candidate", "final", "reference"]


class ImageUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    theme: Optional[str] = None
    theme_description: Optional[str] = Field(None, alias="themeDescription")
    status: Optional[Status] = None
    tags: Optional[List[str]] = None
    mood: Optional[List[str]] = None
    prompt: Optional[str] = None
    memo: Optional[str] = None
    name: Optional[str] = None
    service: Optional[List[str]] = None
    service_images: Optional[Dict[str, str]] = Field(None, alias="serviceImages")
    assignees: Optional[List[str]] = None


class BulkStatusRequest(BaseModel):
    ids: List[int] = []
    status: Status


@router.get("/images")
async def get_images(request: Request):
    """Return every record as stored."""
    try:
        return await image_controller.list_images(request)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/images")
async def post_images(
    request: Request,
    files: List[UploadFile] = File(...),
    theme: Optional[str] = Form(None),
    merge: Optional[str] = Form(None),
):
    """Upload up to 20 images, classifying each and optionally merging by theme."""
    try:
        return await image_controller.upload_images(request, files, theme=theme, merge=merge == "true")
    except HTTPException:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.put("/images/bulk/status")
async def put_bulk_status(request: Request, payload: BulkStatusRequest):
    try:
        return await image_controller.bulk_update_status(request, payload.ids, payload.status)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.put("/images/{image_id}")
async def put_image(request: Request, image_id: int, payload: ImageUpdate):
    try:
        changes = payload.model_dump(by_alias=True, exclude_unset=True)
        return await image_controller.update_image(request, image_id, changes)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/images/{image_id}")
async def delete_image(request: Request, image_id: int):
    try:
        return await image_controller.delete_image(request, image_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/themes")
async def get_themes(request: Request):
    try:
        return await image_controller.list_themes(request)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/stats")
async def get_stats(request: Request):
    try:
        return await image_controller.get_stats(request)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/images/{image_id}/download")
async def download_image(
    request: Request,
    image_id: int,
    width: Optional[int] = None,
    height: Optional[int] = None,
    service: Optional[str] = None,
):
    """Download the original, a service variant, or a cover-resized PNG."""
    try:
        return await image_controller.download_image(request, image_id, width=width, height=height, service=service)
    except HTTPException:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/images/{image_id}/service-image")
async def post_service_image(
    request: Request,
    image_id: int,
    file: UploadFile = File(...),
    service: Optional[str] = Form(None),
):
    """Attach a per-service variant resized to that service's fixed dimensions."""
    try:
        return await image_controller.upload_service_image(request, image_id, file, service)
    except HTTPException:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
