from pathlib import Path

from conftest import auth, register_user

from tableserve.core.config import get_settings

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


async def upload(client, token, content=PNG_BYTES, content_type="image/png"):
    return await client.post(
        "/api/uploads/images",
        files={"file": ("logo.png", content, content_type)},
        headers=auth(token),
    )


class TestUploads:
    async def test_upload_and_delete(self, client):
        user = await register_user(client, "Ulla Uploader", "ulla@example.com")

        response = await upload(client, user["token"])
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["filename"].endswith(".png")
        assert body["url"] == f"/uploads/{body['filename']}"
        assert body["size"] == len(PNG_BYTES)

        stored = Path(get_settings().upload_directory) / body["filename"]
        assert stored.read_bytes() == PNG_BYTES

        headers = auth(user["token"])
        assert (await client.delete(f"/api/uploads/images/{body['filename']}", headers=headers)).status_code == 204
        assert not stored.exists()
        assert (await client.delete(f"/api/uploads/images/{body['filename']}", headers=headers)).status_code == 404

    async def test_rejects_other_types(self, client):
        user = await register_user(client, "Ulla Uploader", "ulla@example.com")
        response = await upload(client, user["token"], b"hello", "text/plain")
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Invalid file type")

    async def test_rejects_empty_files(self, client):
        user = await register_user(client, "Ulla Uploader", "ulla@example.com")
        assert (await upload(client, user["token"], b"")).status_code == 400

    async def test_requires_authentication(self, client):
        response = await client.post("/api/uploads/images", files={"file": ("a.png", PNG_BYTES, "image/png")})
        assert response.status_code == 401
