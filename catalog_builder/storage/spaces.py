"""
Object storage gateway for DigitalOcean Spaces (S3-compatible).

Lists the folder hierarchy of the asset bucket, creates folder markers and
reads the group/range/product asset layout. Folders are zero-byte objects
whose key ends with a slash; folders that only exist implicitly (because
objects live under them) are listed as well.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from catalog_builder.config import Config
from catalog_builder.storage.errors import GatewayError
from catalog_builder.utils.logging_utils import log_error, log_progress

ASSET_TYPES = ("images", "downloads")

_NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")


def get_spaces_client():
    """
    Get an S3 client pointed at the Spaces endpoint.

    Explicit Spaces keys win; otherwise the default boto3 credential chain
    is used (environment, profile, instance role).
    """
    if Config.SPACES_ACCESS_KEY and Config.SPACES_SECRET_KEY:
        session = boto3.session.Session(
            aws_access_key_id=Config.SPACES_ACCESS_KEY,
            aws_secret_access_key=Config.SPACES_SECRET_KEY,
            region_name=Config.SPACES_REGION,
        )
    elif os.getenv("AWS_PROFILE"):
        session = boto3.session.Session(profile_name=os.getenv("AWS_PROFILE"))
    else:
        session = boto3.session.Session()

    return session.client(
        "s3",
        region_name=Config.SPACES_REGION,
        endpoint_url=Config.SPACES_ENDPOINT,
    )


@dataclass(slots=True)
class FolderResult:
    """Outcome of a create_folder call."""

    path: str
    success: bool
    created: bool = False
    message: str = ""


def folder_prefixes(key: str) -> List[str]:
    """
    Every folder path implied by an object key.

    ``"Shelter/Peninsula/K301/images/a.jpg"`` yields ``Shelter``,
    ``Shelter/Peninsula``, ``Shelter/Peninsula/K301`` and
    ``Shelter/Peninsula/K301/images``. A key ending in a slash is itself a
    folder marker.
    """
    parts = key.split("/")
    directories = [part for part in parts[:-1] if part]
    return ["/".join(directories[: index + 1]) for index in range(len(directories))]


class SpacesGateway:
    """
    Folder-level access to the Spaces asset bucket.

    Args:
        bucket_name: Bucket to operate on, defaults to SPACES_BUCKET_NAME
        client: Pre-built S3 client (tests pass a MagicMock)
        endpoint: Public endpoint used to build object URLs
    """

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        client: Any = None,
        endpoint: Optional[str] = None,
    ) -> None:
        self.bucket_name = bucket_name or Config.SPACES_BUCKET_NAME
        self.endpoint = (endpoint or Config.SPACES_ENDPOINT).rstrip("/")
        self._client = client
        self._folder_cache: Optional[List[str]] = None

    @property
    def client(self):
        if self._client is None:
            self._client = get_spaces_client()
        return self._client

    def object_url(self, key: str) -> str:
        return f"{self.endpoint}/{self.bucket_name}/{key.lstrip('/')}"

    def list_all_folders(self, force_refresh: bool = False) -> List[str]:
        """
        List every folder path in the bucket.

        The listing is cached on the gateway until ``force_refresh`` is set
        or a folder is created through it.

        Args:
            force_refresh: Ignore the cached listing

        Returns:
            Folder paths without trailing slash, in first-seen order

        Raises:
            GatewayError: If the bucket cannot be listed
        """
        if self._folder_cache is not None and not force_refresh:
            return list(self._folder_cache)

        folders: Dict[str, None] = {}
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            pages = paginator.paginate(Bucket=self.bucket_name)
            object_count = 0
            for page in pages:
                for obj in page.get("Contents", []):
                    object_count += 1
                    for folder in folder_prefixes(obj["Key"]):
                        folders.setdefault(folder, None)
        except (ClientError, BotoCoreError) as e:
            log_error("Spaces Folder Listing", f"Failed to list bucket {self.bucket_name}: {e}")
            raise GatewayError("list_all_folders", str(e), e) from e

        self._folder_cache = list(folders)
        log_progress(
            "Spaces Folder Listing",
            f"Found {len(self._folder_cache)} folders across {object_count} objects",
        )
        return list(self._folder_cache)

    def create_folder(self, path: str) -> FolderResult:
        """
        Create a folder marker object, doing nothing if it already exists.

        Args:
            path: Folder path such as "Shelter/Peninsula"

        Returns:
            FolderResult describing what happened; failures are reported in
            the result rather than raised
        """
        segments = [segment for segment in (path or "").split("/") if segment.strip()]
        if not segments:
            return FolderResult(path=path, success=False, message="Empty folder path")

        folder = "/".join(segments)
        key = f"{folder}/"

        try:
            self.client.head_object(Bucket=self.bucket_name, Key=key)
            return FolderResult(path=folder, success=True, message="Folder already exists")
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") not in _NOT_FOUND_CODES:
                log_error("Spaces Folder Creation", f"Failed to check {key}: {e}")
                return FolderResult(path=folder, success=False, message=str(e))
        except BotoCoreError as e:
            log_error("Spaces Folder Creation", f"Failed to check {key}: {e}")
            return FolderResult(path=folder, success=False, message=str(e))

        try:
            self.client.put_object(Bucket=self.bucket_name, Key=key, Body=b"")
        except (ClientError, BotoCoreError) as e:
            log_error("Spaces Folder Creation", f"Failed to create {key}: {e}")
            return FolderResult(path=folder, success=False, message=str(e))

        if self._folder_cache is not None:
            for prefix in folder_prefixes(key):
                if prefix not in self._folder_cache:
                    self._folder_cache.append(prefix)

        log_progress("Spaces Folder Creation", f"Created folder {folder}")
        return FolderResult(
            path=folder, success=True, created=True, message="Folder created successfully"
        )

    def fetch_objects_structured(self, prefix: str = "") -> Dict[str, Any]:
        """
        Read the asset layout as a nested Group → Range → Product map.

        Objects are expected at ``group/range/code/(images|downloads)/filename``.
        Deeper keys keep their sub-path as the filename; empty key segments
        are ignored.
        Empty product folders still appear with empty asset lists.

        Args:
            prefix: Optional key prefix to restrict the listing

        Returns:
            Dict of group → range → code → {"images": [...], "downloads": [...]}
            where each file is {filename, url, size, modified}

        Raises:
            GatewayError: If the bucket cannot be listed
        """
        structured: Dict[str, Any] = {}
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            pages = paginator.paginate(Bucket=self.bucket_name, Prefix=prefix or "")
            for page in pages:
                for obj in page.get("Contents", []):
                    self._place_object(structured, obj)
        except (ClientError, BotoCoreError) as e:
            log_error("Spaces Asset Listing", f"Failed to list {prefix or 'bucket'}: {e}")
            raise GatewayError("fetch_objects_structured", str(e), e) from e

        return structured

    def _place_object(self, structured: Dict[str, Any], obj: Dict[str, Any]) -> None:
        key = obj["Key"]
        # Empty segments from doubled or leading slashes carry no level
        segments = [part for part in key.split("/") if part]
        directories = segments if key.endswith("/") else segments[:-1]

        level = structured
        for depth, name in enumerate(directories[:3], start=1):
            default = {"images": [], "downloads": []} if depth == 3 else {}
            level = level.setdefault(name, default)

        if key.endswith("/") or len(segments) < 5 or segments[3] not in ASSET_TYPES:
            return

        group, product_range, code, asset_type = segments[:4]
        # Keys nested below the asset folder keep their sub-path
        filename = "/".join(segments[4:])
        modified = obj.get("LastModified")
        if isinstance(modified, datetime):
            modified = modified.isoformat()

        assets = structured[group][product_range][code]
        assets[asset_type].append(
            {
                "filename": filename,
                "url": self.object_url(key),
                "size": obj.get("Size", 0),
                "modified": modified,
            }
        )
