import os
import shutil
import uuid
from pathlib import Path
from typing import Any, Dict, List, Tuple
from fastapi import UploadFile
from loguru import logger
from app.core.config import settings


# Public disk for files attached to form submissions
UPLOAD_DIR = Path(settings.static_dir) / "uploads"
UPLOAD_URL_PREFIX = "/static/uploads"


def save_upload_file(upload_file: UploadFile) -> str:
    """
    Saves a binary UploadFile stream to the public uploads directory
    and returns the public URL.
    """
    os.makedirs(UPLOAD_DIR, exist_ok=True)

    # Preserve extension if possible, else default to .bin
    original_filename = upload_file.filename or "unknown"
    ext = original_filename.rsplit(
        ".", 1)[-1].lower() if "." in original_filename else "bin"

    unique_name = f"{uuid.uuid4()}.{ext}"
    file_path = UPLOAD_DIR / unique_name

    try:
        upload_file.file.seek(0)
        with open(file_path, "wb") as buffer:
            shutil.copyfileobj(upload_file.file, buffer)

        # e.g. http://localhost:8000/static/uploads/uuid.jpg
        url = f"{settings.public_url}{UPLOAD_URL_PREFIX}/{unique_name}"
        logger.info(f"Stored upload '{original_filename}' at {url}")
        return url

    except Exception as e:
        logger.error(f"Error saving upload '{original_filename}': {e}")
        raise e


def delete_stored_files(urls: List[str]) -> None:
    """Removes files previously returned by `save_upload_file`."""
    for url in urls:
        file_path = UPLOAD_DIR / url.rsplit("/", 1)[-1]
        try:
            file_path.unlink(missing_ok=True)
            logger.info(f"Discarded upload {file_path.name}")
        except OSError as e:
            logger.error(f"Could not discard upload {file_path.name}: {e}")


def attach_uploaded_files(
    form_data: Dict[str, Any],
    files: List[UploadFile]
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Stores every uploaded file referenced by the form data and swaps the
    reference (the file's original name) for its public URL.
    Each file is stored once, however many fields name it. Files not
    referenced by any field are ignored.

    Returns the new form data and the URLs of the files stored.
    """
    if not files:
        return form_data, []

    file_map = {f.filename: f for f in files if f.filename}
    stored: Dict[str, str] = {}
    result = dict(form_data)

    try:
        for field_name, value in form_data.items():
            if not isinstance(value, str) or value not in file_map:
                continue
            if value not in stored:
                stored[value] = save_upload_file(file_map[value])
            result[field_name] = stored[value]
    except Exception:
        delete_stored_files(list(stored.values()))
        raise

    return result, list(stored.values())
