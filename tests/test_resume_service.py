"""ResumeService file handling with a dict-backed store."""

import io
import os
import zipfile

import pytest

from placement_portal.core.exceptions import InvalidInput, StudentNotFound
from placement_portal.services.resume_service import ResumeService, parse_rolls


class MemoryStore:
    def __init__(self, *rolls):
        self.students = {roll: {"id": i, "roll": roll} for i, roll in enumerate(rolls, start=1)}

    def get_student_by_roll(self, roll):
        return self.students.get(roll)

    def update_student(self, student_id, values):
        for row in self.students.values():
            if row["id"] == student_id:
                row.update(values)


@pytest.fixture
def storage(tmp_path):
    return tmp_path / "uploads" / "resumes"


def test_resume_saved_under_roll(storage):
    store = MemoryStore("210001")
    path = ResumeService(store, str(storage)).save_resume("210001", b"%PDF-1.4")

    assert path == os.path.join(str(storage), "210001.pdf")
    assert store.students["210001"]["resume_path"] == path


def test_traversal_roll_cannot_leave_storage(storage, tmp_path):
    roll = "../../escaped"
    store = MemoryStore(roll)

    with pytest.raises(InvalidInput):
        ResumeService(store, str(storage)).save_resume(roll, b"%PDF-1.4")

    assert not (tmp_path / "escaped.pdf").exists()
    assert "resume_path" not in store.students[roll]


def test_zip_skips_students_without_resume(storage):
    store = MemoryStore("210001", "210002")
    service = ResumeService(store, str(storage))
    service.save_resume("210001", b"%PDF-1.4 one")

    archive = zipfile.ZipFile(io.BytesIO(service.build_resume_zip(["210001", "210002"])))
    assert archive.namelist() == ["210001.pdf"]

    with pytest.raises(StudentNotFound):
        service.build_resume_zip(["nobody"])


def test_parse_rolls():
    assert parse_rolls(" 210001,,210002, 210001") == ["210001", "210002"]
