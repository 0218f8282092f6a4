import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from routes.image_route import router as image_router
from utils.storage_init import StorageInitializer, env_flag
from utils.upload_cleaner import UploadCleaner

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to prepare:
      - the data directory and library document (DATA_DIR/images.json)
      - the upload directory (UPLOAD_DIR)
    and optionally sweep uploads no record refers to.
    """
    storage_init: StorageInitializer = app.state.storage_init
    await storage_init.ensure_storage()

    if env_flag("PRUNE_ORPHANED_UPLOADS"):
        cleaner = UploadCleaner(storage_init.image_dal, storage_init.upload_storage)
        await cleaner.prune_orphaned_uploads()

    LOGGER.info("Image library ready (data=%s, uploads=%s)", storage_init.data_path, storage_init.upload_dir)
    yield


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render errors as `{"success": false, "error": <message>}`."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(status_code=400, content={"success": False, "error": "; ".join(messages)})


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    storage_init = StorageInitializer()
    app.state.storage_init = storage_init

    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Open to every origin
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    # Stored images are served straight from the upload directory
    app.mount("/uploads", StaticFiles(directory=storage_init.upload_dir, check_dir=False), name="uploads")

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        """
        Serve the frontend index page from the public directory.
        """
        index_path = PUBLIC_DIR / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Frontend not found")
        return FileResponse(index_path)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting where the library document and uploads live.
        """
        storage_init = request.app.state.storage_init
        return {
            "ok": True,
            "data_file_present": storage_init.data_path.exists(),
            "upload_dir_present": storage_init.upload_dir.is_dir(),
        }

    # Register application routers
    app.include_router(image_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3000")))
