import os
import shutil

import pytest

from constants import UPLOAD_DIR


@pytest.fixture(autouse=True)
def upload_dir():
    shutil.rmtree(UPLOAD_DIR, ignore_errors=True)
    os.makedirs(UPLOAD_DIR)
    return UPLOAD_DIR


def test_upload_stores_file_and_returns_metadata(client, upload_dir):
    response = client.post("/upload", files={"file": ("notes.txt", b"hello world", "text/plain")})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    meta = body["file"]
    assert meta["name"] == "notes.txt"
    assert meta["mime_type"] == "text/plain"
    assert meta["size"] == 11
    assert meta["path"].startswith("/uploads/")
    assert meta["path"].endswith("-notes.txt")

    stored = os.path.join(upload_dir, meta["path"].rsplit("/", 1)[1])
    with open(stored, "rb") as f:
        assert f.read() == b"hello world"


def test_uploaded_file_is_served_back(client):
    meta = client.post("/upload", files={"file": ("photo.png", b"\x89PNG-bytes", "image/png")}).json()["file"]

    response = client.get(meta["path"])
    assert response.status_code == 200
    assert response.content == b"\x89PNG-bytes"
    assert client.get("/uploads/missing.png").status_code == 404


def test_upload_sanitizes_filename(client, upload_dir):
    response = client.post("/upload", files={"file": ("../../etc/evil.png", b"\x89PNG", "image/png")})
    assert response.status_code == 200
    stored_name = response.json()["file"]["path"].rsplit("/", 1)[1]
    assert "/" not in stored_name
    assert ".." not in stored_name
    assert os.listdir(upload_dir) == [stored_name]


def test_upload_rejects_disallowed_type(client, upload_dir):
    response = client.post("/upload", files={"file": ("run.sh", b"#!/bin/sh", "application/x-sh")})
    assert response.status_code == 400
    assert os.listdir(upload_dir) == []


def test_upload_rejects_mismatched_mime_type(client, upload_dir):
    response = client.post("/upload", files={"file": ("photo.png", b"data", "application/x-msdownload")})
    assert response.status_code == 400


def test_upload_rejects_oversized_file(client, upload_dir, monkeypatch):
    monkeypatch.setattr("routers.uploads.MAX_UPLOAD_SIZE", 4)
    response = client.post("/upload", files={"file": ("notes.txt", b"too large", "text/plain")})
    assert response.status_code == 413
    assert os.listdir(upload_dir) == []
