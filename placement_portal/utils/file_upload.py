"""
File Upload Utility - Validate and store uploaded PDF documents.

Used for:
- Student resumes  (<resume_storage_dir>/<roll>.pdf)
- Job application forms (<jaf_storage_dir>/<job_id>.pdf)

Max file size: settings.max_upload_size_mb (5MB by default)
"""

import logging
import os

from fastapi import UploadFile, HTTPException

from placement_portal.core.config import get_settings
from placement_portal.core.exceptions import InvalidInput

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'.pdf'}
PDF_MAGIC = b'%PDF'


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


async def read_pdf_upload(file: UploadFile) -> bytes:
    """
    Read and validate an uploaded PDF.

    Args:
        file: FastAPI UploadFile

    Returns:
        The file content

    Raises:
        HTTPException on validation errors
    """
    max_size_mb = get_settings().max_upload_size_mb

    # Validate filename
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = get_file_extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: PDF"
        )

    # Read content
    content = await file.read()

    # Check size
    if len(content) > max_size_mb * 1024 * 1024:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {max_size_mb}MB"
        )

    if not content.startswith(PDF_MAGIC):
        raise HTTPException(status_code=400, detail="File is not a valid PDF")

    return content


def save_file(content: bytes, directory: str, filename: str) -> str:
    """Write content to directory/filename, creating the directory. Returns the path."""
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, filename)
    root = os.path.realpath(directory)
    if os.path.dirname(os.path.realpath(path)) != root:
        logger.warning("Refusing to write %r outside %s", filename, root)
        raise InvalidInput(f"Invalid file name: {filename}")
    with open(path, 'wb') as f:
        f.write(content)
    logger.info("Stored %d bytes at %s", len(content), path)
    return path
