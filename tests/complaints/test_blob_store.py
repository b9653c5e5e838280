import io
import os

import pytest
from fastapi import UploadFile
from sqlalchemy.exc import OperationalError
from starlette.datastructures import Headers

from residence_service import complaints, models
from residence_service.errors import InternalError, ValidationError
from residence_service.storage import LocalBlobStore


def image_upload(data=b"\x89PNG\r\n\x1a\n" + b"\x00" * 16, filename="leak.png", content_type="image/png"):
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def store(tmp_path):
    return LocalBlobStore(str(tmp_path / "uploads"), "/uploads", max_bytes=1024)


def stored_files(store):
    return sorted(os.listdir(store.directory))


def test_save_and_delete(store):
    url = store.save(image_upload())
    assert url.startswith("/uploads/") and url.endswith(".png")
    assert len(stored_files(store)) == 1

    store.delete(url)
    assert stored_files(store) == []

    # unknown urls are ignored
    store.delete("/elsewhere/file.png")
    store.delete(url)


@pytest.mark.parametrize(
    "upload",
    [
        image_upload(content_type="application/pdf"),
        image_upload(data=b""),
        image_upload(data=b"x" * 2048),
    ],
)
def test_save_rejects_bad_uploads(store, upload):
    with pytest.raises(ValidationError):
        store.save(upload)
    assert stored_files(store) == []


def test_failed_commit_removes_the_stored_image(db, make_user, store, monkeypatch):
    category = models.ComplaintCategory(name="Plumbing", description="Pipes")
    db.add(category)
    db.commit()
    category_id = category.id
    resident = make_user()

    def failing_commit():
        raise OperationalError("INSERT INTO complaints", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", failing_commit)

    with pytest.raises(InternalError):
        complaints.create_complaint(
            db,
            resident,
            category_id,
            "Leaking kitchen tap",
            "Water drips all night long.",
            image=image_upload(),
            store=store,
        )

    assert stored_files(store) == []
