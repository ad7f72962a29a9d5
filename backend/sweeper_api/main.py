import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from prometheus_fastapi_instrumentator import Instrumentator

from .settings import settings
from .services.storage import build_store
from .services.generator import load_generator
from .utils.static import ProjectFiles

from .routes.upload import router as upload_router
from .routes.generate import router as generate_router

LOG_LEVEL = settings.LOG_LEVEL.upper()
logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("targetsweeper")

app = FastAPI(title="TargetSweeper API", version="0.1.0")

# CORS открыт для фронта (карта крутится на другом origin)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# хранилище и генератор - по одному на процесс, роуты берут их из app.state
app.state.store = build_store()
app.state.generator = load_generator(settings.GENERATOR)

# Маршруты API
app.include_router(upload_router, prefix="/api", tags=["kml"])
app.include_router(generate_router, prefix="/api", tags=["kml"])

Instrumentator().instrument(app).expose(app)

# папки проектов наружу только на чтение; корень может ещё не существовать
app.mount(
    app.state.store.public_prefix,
    ProjectFiles(directory=app.state.store.root, check_dir=False),
    name="downloads",
)

@app.on_event("startup")
def on_startup():
    store = app.state.store
    logger.info(
        "TargetSweeper started. STORE_ROOT=%s max_age=%ss max_count=%s",
        store.root,
        store.policy.max_age,
        store.policy.max_count,
    )
    evicted = store.enforce()
    if evicted:
        logger.info("Startup cleanup removed %d project folders", len(evicted))

@app.get("/health", response_class=HTMLResponse)
def health():
    return "<pre>OK</pre>"
