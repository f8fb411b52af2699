"""
Tests for photo, signature and president-signature uploads
"""

import pytest

USERS = "/api/v1/users"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64


def _stored_files(storage_root):
    if not storage_root.exists():
        return []
    return [p for p in storage_root.rglob("*") if p.is_file()]


@pytest.mark.parametrize("kind,field", [("photo", "photoPath"), ("signature", "signaturePath")])
class TestMemberFiles:
    """Test POST/GET /users/{id}/photo and /users/{id}/signature"""

    def test_upload_then_download(self, admin_client, create_member, kind, field):
        created = create_member()
        response = admin_client.post(
            f"{USERS}/{created['id']}/{kind}",
            files={"file": ("face.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 200
        path = response.json()["path"]
        assert path.startswith(f"{kind}s/{created['id']}-")
        assert path.endswith(".png")

        user = admin_client.get(f"{USERS}/{created['id']}").json()["user"]
        assert user[field] == path

        download = admin_client.get(f"{USERS}/{created['id']}/{kind}")
        assert download.status_code == 200
        assert download.content == PNG_BYTES
        assert download.headers["content-type"] == "image/png"
        assert download.headers["cache-control"] == "public, max-age=3600"

    def test_jpeg_gets_jpg_extension(self, admin_client, create_member, kind, field):
        created = create_member()
        response = admin_client.post(
            f"{USERS}/{created['id']}/{kind}",
            files={"file": ("face.jpeg", JPEG_BYTES, "image/jpeg")},
        )

        assert response.status_code == 200
        assert response.json()["path"].endswith(".jpg")
        download = admin_client.get(f"{USERS}/{created['id']}/{kind}")
        assert download.headers["content-type"] == "image/jpeg"

    def test_reupload_replaces_reference(self, admin_client, create_member, kind, field):
        created = create_member()
        url = f"{USERS}/{created['id']}/{kind}"
        first = admin_client.post(url, files={"file": ("a.png", PNG_BYTES, "image/png")}).json()["path"]
        second = admin_client.post(url, files={"file": ("b.jpg", JPEG_BYTES, "image/jpeg")}).json()["path"]

        assert first != second
        assert admin_client.get(url).content == JPEG_BYTES

    def test_oversized_file_is_rejected_before_writing(
        self, admin_client, create_member, storage_root, kind, field
    ):
        created = create_member()
        big = b"\x89PNG" + b"\x00" * (3 * 1024 * 1024)
        response = admin_client.post(
            f"{USERS}/{created['id']}/{kind}",
            files={"file": ("big.png", big, "image/png")},
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "upload_rejected"
        assert "2MB" in response.json()["error"]
        assert _stored_files(storage_root) == []
        assert admin_client.get(f"{USERS}/{created['id']}").json()["user"][field] is None

    @pytest.mark.parametrize("filename,content_type", [
        ("anim.gif", "image/gif"),
        ("anim.gif", "image/png"),
        ("doc.pdf", "application/pdf"),
    ])
    def test_other_types_are_rejected(
        self, admin_client, create_member, storage_root, kind, field, filename, content_type
    ):
        created = create_member()
        response = admin_client.post(
            f"{USERS}/{created['id']}/{kind}",
            files={"file": (filename, PNG_BYTES, content_type)},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Only PNG or JPEG files are allowed"
        assert _stored_files(storage_root) == []

    def test_empty_file_is_rejected(self, admin_client, create_member, kind, field):
        created = create_member()
        response = admin_client.post(
            f"{USERS}/{created['id']}/{kind}",
            files={"file": ("empty.png", b"", "image/png")},
        )
        assert response.status_code == 400

    def test_unknown_member_writes_nothing(self, admin_client, storage_root, kind, field):
        response = admin_client.post(
            f"{USERS}/missing/{kind}",
            files={"file": ("face.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 404
        assert _stored_files(storage_root) == []

    def test_download_without_file(self, admin_client, create_member, kind, field):
        created = create_member()

        assert admin_client.get(f"{USERS}/{created['id']}/{kind}").status_code == 404
        assert admin_client.get(f"{USERS}/missing/{kind}").status_code == 404

    def test_upload_requires_session(self, client, kind, field):
        response = client.post(
            f"{USERS}/anything/{kind}",
            files={"file": ("face.png", PNG_BYTES, "image/png")},
        )
        assert response.status_code == 401


class TestPresidentSignature:
    """Test the shared president signature"""

    URL = "/api/v1/settings/president-signature"

    def test_missing_before_upload(self, admin_client):
        assert admin_client.get(self.URL).status_code == 404

    def test_upload_then_download(self, admin_client, storage_root):
        response = admin_client.post(self.URL, files={"file": ("firma.png", PNG_BYTES, "image/png")})

        assert response.status_code == 200
        assert response.json()["path"] == "assets/president-signature.png"
        assert (storage_root / "assets" / "president-signature.png").read_bytes() == PNG_BYTES

        download = admin_client.get(self.URL)
        assert download.content == PNG_BYTES
        assert download.headers["content-type"] == "image/png"

        settings = admin_client.get("/api/v1/settings").json()["settings"]
        assert settings["presidentSignaturePath"] == "assets/president-signature.png"

    def test_rejects_non_images(self, admin_client):
        response = admin_client.post(self.URL, files={"file": ("x.txt", b"hello", "text/plain")})
        assert response.status_code == 400
