"""Static media served from ``settings.media_root``."""

from pathlib import Path

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, Response

from edgeguard.app.api.dependencies import get_media_root
from edgeguard.app.core.logging import get_logger

router = APIRouter(tags=["media"])
logger = get_logger(__name__)

CACHE_CONTROL = "public, max-age=86400"


class MediaPathError(ValueError):
    """Requested name escapes its media directory."""


def resolve_media_path(root: Path, subdir: str, name: str, suffix: str) -> Path:
    """Resolve ``<root>/<subdir>/<name><suffix>``.

    Raises:
        MediaPathError: If the name is empty, unusable as a path, or resolves
            outside the directory
    """
    if not name:
        raise MediaPathError("empty file name")
    base = (root / subdir).resolve()
    try:
        target = (base / f"{name}{suffix}").resolve()
    except ValueError as e:
        # e.g. embedded null byte
        raise MediaPathError(f"invalid file name {name!r}: {e}") from e
    if not target.is_relative_to(base):
        raise MediaPathError(f"path escapes media directory: {name}")
    return target


def _serve(root: Path, subdir: str, name: str, suffix: str, media_type: str, label: str) -> Response:
    try:
        path = resolve_media_path(root, subdir, name, suffix)
    except MediaPathError as e:
        logger.warning(f"Rejected {label} request: {e}")
        return JSONResponse(status_code=400, content={"error": "Invalid file name"})

    if not path.is_file():
        logger.error(f"Error loading {label} {name}: file not found")
        return PlainTextResponse(f"Failed to load {label}", status_code=500)

    return FileResponse(
        path=path,
        media_type=media_type,
        headers={"Cache-Control": CACHE_CONTROL},
    )


@router.get("/api/images")
async def images(
    img: str = Query(""),
    root: Path = Depends(get_media_root),
) -> Response:
    return _serve(root, "images", img, ".png", "image/png", "image")


@router.get("/api/audio")
async def audio(
    audio: str = Query(""),
    root: Path = Depends(get_media_root),
) -> Response:
    return _serve(root, "audio", audio, ".mp3", "audio/mpeg", "audio")
