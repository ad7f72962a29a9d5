from fastapi import APIRouter, Depends, HTTPException, status
from pathlib import PurePath
import logging

from ..deps import get_generator, get_store
from ..schemas import GenerateRequest, GenerateResponse, ErrorResponse
from ..services.generator import GenerationError, run_generator
from ..services.storage import ProjectStore, StorageError
from ..utils.validation import ValidationError

router = APIRouter()
logger = logging.getLogger("targetsweeper")


@router.post(
    "/kml/generate",
    response_model=GenerateResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def generate_kml(
    body: GenerateRequest,
    store: ProjectStore = Depends(get_store),
    generate=Depends(get_generator),
):
    """
    Сгенерировать KML/CSV/KMZ для проекта

    - папка проекта создаётся из ProjectName
    - в ответе ссылки на kml/csv/kmz и summary от генератора
    """
    # отдельный проход очистки до генерации, allocate сделает ещё один
    store.enforce()

    request = body.model_dump()
    try:
        project = store.allocate(body.ProjectName)
        result = run_generator(generate, request)
        urls = {}
        for name, data in result.files.items():
            store.write(project, name, data)
            urls[name] = store.public_url(project, name)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except GenerationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Generation failed: {e}")
    except StorageError:
        logger.exception("Generation for %r could not be stored", body.ProjectName)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to store project files")

    # первый файл каждого типа -> kmlUrl / csvUrl / kmzUrl
    by_ext = {}
    for name, url in urls.items():
        ext = PurePath(name).suffix.lower().lstrip(".")
        by_ext.setdefault(ext, url)

    logger.info("Project %s generated: %s", project.folder_name, ", ".join(urls))
    return GenerateResponse(
        kmlUrl=by_ext.get("kml"),
        csvUrl=by_ext.get("csv"),
        kmzUrl=by_ext.get("kmz"),
        files=list(urls.values()),
        summary=result.summary,
    )


router.add_api_route(
    "/generate",
    generate_kml,
    methods=["POST"],
    response_model=GenerateResponse,
    include_in_schema=False,
)
