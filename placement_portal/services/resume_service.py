"""
Resume Service - store student resumes and bundle them for recruiters.
"""

import io
import logging
import os
import zipfile
from typing import Iterable, List, Optional

from placement_portal.core.config import get_settings
from placement_portal.core.exceptions import StudentNotFound
from placement_portal.services.placement_store import PlacementStore, get_placement_store
from placement_portal.utils.file_upload import save_file

logger = logging.getLogger(__name__)


def parse_rolls(rolls: str) -> List[str]:
    """'a, b,,a' -> ['a', 'b'] (order kept, duplicates dropped)."""
    seen = []
    for roll in rolls.split(","):
        roll = roll.strip()
        if roll and roll not in seen:
            seen.append(roll)
    return seen


class ResumeService:
    def __init__(self, store: Optional[PlacementStore] = None, storage_dir: Optional[str] = None):
        self.store = store or get_placement_store()
        self.storage_dir = storage_dir or get_settings().resume_storage_dir

    def save_resume(self, roll: str, content: bytes) -> str:
        student = self.store.get_student_by_roll(roll)
        if student is None:
            raise StudentNotFound()
        path = save_file(content, self.storage_dir, f"{roll}.pdf")
        self.store.update_student(student["id"], {"resume_path": path})
        return path

    def build_resume_zip(self, rolls: Iterable[str]) -> bytes:
        """
        Zip the resumes of the given students, one `<roll>.pdf` entry each.

        Every roll must exist (StudentNotFound otherwise). Students without
        an uploaded resume, or whose file went missing, are skipped.
        """
        paths = []
        for roll in rolls:
            student = self.store.get_student_by_roll(roll)
            if student is None:
                raise StudentNotFound(f"Student not found: {roll}")
            path = student.get("resume_path")
            if not path or not os.path.isfile(path):
                logger.info("No resume on file for %s, skipping", roll)
                continue
            paths.append((roll, path))

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for roll, path in paths:
                archive.write(path, arcname=f"{roll}.pdf")
        return buffer.getvalue()


def get_resume_service() -> ResumeService:
    return ResumeService()
