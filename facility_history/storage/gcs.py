from __future__ import annotations

from datetime import datetime, timedelta

from google.api_core.exceptions import NotFound
from google.cloud import storage as gcs_storage

from facility_history.storage.base import StorageBackend

DEFAULT_URL_EXPIRATION = timedelta(hours=1)


class GCSStorage(StorageBackend):
    """Google Cloud Storage backend.

    Artifacts are served through V4 signed URLs, which requires
    credentials able to sign (a service-account key file, or a runtime
    identity with ``iam.serviceAccounts.signBlob``).
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        project: str | None = None,
        credentials_file: str | None = None,
    ) -> None:
        if credentials_file:
            self._client = gcs_storage.Client.from_service_account_json(
                credentials_file, project=project
            )
        else:
            self._client = gcs_storage.Client(project=project)
        self._bucket = self._client.bucket(bucket)
        self._prefix = prefix.rstrip("/") + "/" if prefix else ""

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    # ---- interface ----

    def write(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        blob = self._bucket.blob(self._full_key(key))
        blob.metadata = {"temporary": "true"}
        blob.upload_from_string(data, content_type=content_type)

    def read(self, key: str) -> bytes:
        blob = self._bucket.blob(self._full_key(key))
        try:
            return blob.download_as_bytes()
        except NotFound:
            raise FileNotFoundError(key) from None

    def list_keys(self, prefix: str) -> list[str]:
        full_prefix = self._full_key(prefix)
        blobs = self._client.list_blobs(self._bucket, prefix=full_prefix)
        # strip our root prefix so keys are relative
        strip = len(self._prefix)
        return sorted(blob.name[strip:] for blob in blobs)

    def exists(self, key: str) -> bool:
        blob = self._bucket.blob(self._full_key(key))
        return blob.exists()

    def delete(self, key: str) -> None:
        blob = self._bucket.blob(self._full_key(key))
        try:
            blob.delete()
        except NotFound:
            pass

    def created_at(self, key: str) -> datetime:
        blob = self._bucket.get_blob(self._full_key(key))
        if blob is None or blob.time_created is None:
            raise FileNotFoundError(key)
        return blob.time_created

    def resolve_uri(self, key: str, *, expires_in: timedelta | None = None) -> str:
        blob = self._bucket.blob(self._full_key(key))
        return blob.generate_signed_url(
            version="v4",
            expiration=expires_in or DEFAULT_URL_EXPIRATION,
            method="GET",
        )
