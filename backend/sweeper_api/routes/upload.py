from fastapi import APIRouter, Depends, UploadFile, File, HTTPException, status
from starlette.concurrency import run_in_threadpool
from typing import Optional
import logging

from ..deps import get_store
from ..schemas import UploadResponse, ErrorResponse
from ..services.storage import ProjectDirectory, ProjectStore, StorageError
from ..settings import settings
from ..utils.validation import ValidationError, validate_kml_upload

router = APIRouter()
logger = logging.getLogger("targetsweeper")


def _store_upload(store: ProjectStore, base_name: str, filename: str, content: bytes) -> ProjectDirectory:
    # блокирующая часть: лок хранилища, очистка, mkdir и запись - не на event loop
    project = store.allocate(base_name)
    store.write(project, filename, content)
    return project


@router.post(
    "/kml/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_kml(file: Optional[UploadFile] = File(None), store: ProjectStore = Depends(get_store)):
    """Загрузить KML: отдельная папка проекта, один файл, в ответ публичная ссылка."""
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded.")

    content = await file.read()
    try:
        filename = validate_kml_upload(file.filename, file.content_type, len(content), settings.MAX_UPLOAD_BYTES)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    # имя папки строим из исходного имени файла (area.kml -> area_kml_<ms>_<token>)
    try:
        project = await run_in_threadpool(_store_upload, store, file.filename, filename, content)
    except StorageError:
        logger.exception("Upload of %s failed", filename)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to store uploaded file")

    logger.info("KML %s uploaded into %s (%d bytes)", filename, project.folder_name, len(content))
    return UploadResponse(name=filename, url=store.public_url(project, filename))


# старый путь из первой версии сервера
router.add_api_route(
    "/upload-kml",
    upload_kml,
    methods=["POST"],
    response_model=UploadResponse,
    include_in_schema=False,
)
