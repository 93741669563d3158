import logging
import os

import boto3
from botocore.exceptions import ClientError
from fastapi import HTTPException

from excel_analytics.config import settings
from excel_analytics.services.tabular_parser import EXTENSION_FORMATS

logger = logging.getLogger(__name__)


class StorageService:
    def __init__(self):
        self.s3_client = boto3.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT,
            aws_access_key_id=settings.S3_ACCESS_KEY,
            aws_secret_access_key=settings.S3_SECRET_KEY,
            region_name="us-east-1",
            use_ssl=settings.S3_USE_SSL,
        )
        self.bucket_name = settings.S3_BUCKET

    def validate_file(self, filename: str, file_size: int) -> dict:
        file_ext = os.path.splitext(filename or "")[1].lower()

        if file_ext not in EXTENSION_FORMATS:
            return {
                "valid": False,
                "status_code": 415,
                "error": f"File type '{file_ext}' not allowed. Only CSV, Excel and JSON files accepted.",
                "file_type": None,
                "file_size": file_size,
            }

        if file_size == 0:
            return {
                "valid": False,
                "status_code": 400,
                "error": "Uploaded file is empty or invalid.",
                "file_type": None,
                "file_size": 0,
            }

        max_size = settings.MAX_UPLOAD_BYTES
        if file_size > max_size:
            return {
                "valid": False,
                "status_code": 413,
                "error": f"File too large ({file_size / 1024 / 1024:.1f}MB). Maximum {max_size / 1024 / 1024:.0f}MB.",
                "file_type": None,
                "file_size": file_size,
            }

        return {
            "valid": True,
            "status_code": 200,
            "error": None,
            "file_type": EXTENSION_FORMATS[file_ext],
            "file_size": file_size,
        }

    def upload_bytes(self, content: bytes, filename: str, file_id: int, content_type: str | None = None) -> str:
        s3_key = f"uploads/{file_id}/{filename}"
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self.s3_client.put_object(Bucket=self.bucket_name, Key=s3_key, Body=content, **extra)
        except ClientError as e:
            raise HTTPException(status_code=500, detail=f"File upload failed: {str(e)}")
        logger.info("Stored %s (%d bytes) at %s", filename, len(content), s3_key)
        return f"s3://{self.bucket_name}/{s3_key}"

    @staticmethod
    def _split_path(file_path: str) -> tuple[str, str]:
        """``s3://bucket/uploads/1/a.csv`` -> ``("bucket", "uploads/1/a.csv")``."""
        bucket, _, key = file_path.removeprefix("s3://").partition("/")
        if not bucket or not key:
            raise ValueError(f"Not an object storage path: {file_path!r}")
        return bucket, key

    def download_file(self, file_path: str) -> bytes:
        bucket, key = self._split_path(file_path)
        try:
            response = self.s3_client.get_object(Bucket=bucket, Key=key)
        except ClientError as e:
            raise HTTPException(status_code=404, detail=f"Stored file missing: {e}")
        return response["Body"].read()

    def delete_file(self, file_path: str) -> bool:
        bucket, key = self._split_path(file_path)
        try:
            self.s3_client.delete_object(Bucket=bucket, Key=key)
        except ClientError as e:
            logger.warning("Could not delete %s from object storage: %s", file_path, e)
            return False
        return True


storage_service = StorageService()
