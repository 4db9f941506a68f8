"""
Persistence gateways for the wizard document.

Three backends share the same ``load``/``save`` interface:

- ``S3DocumentStore``: JSON object in the Spaces bucket
- ``RestDocumentStore``: the site's REST endpoint, authenticated with ``x-api-key``
- ``FileDocumentStore``: local JSON file for development and tests

A document that does not exist yet loads as an empty six-step document.
"""

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import requests
from botocore.exceptions import BotoCoreError, ClientError

from catalog_builder.config import Config
from catalog_builder.document.schema import BUILDER_STATE_KEY, new_document
from catalog_builder.storage.errors import GatewayError
from catalog_builder.storage.spaces import get_spaces_client
from catalog_builder.utils.logging_utils import log_error, log_progress

RETRYABLE_STATUS_CODES = (500, 502, 503, 504)

# Field the REST backend wraps the document in
REST_PAYLOAD_KEY = "stepper_form_data"


@dataclass(slots=True)
class SaveAck:
    """Acknowledgement returned by a successful save."""

    success: bool
    location: str
    message: str = ""


class S3DocumentStore:
    """
    Stores the document as a JSON object in the bucket.

    Args:
        bucket_name: Bucket holding the document, defaults to SPACES_BUCKET_NAME
        key: Object key, defaults to ``Config.get_document_key()``
        client: Pre-built S3 client
    """

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        key: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.bucket_name = bucket_name or Config.SPACES_BUCKET_NAME
        self.key = key or Config.get_document_key()
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_spaces_client()
        return self._client

    @property
    def location(self) -> str:
        return f"s3://{self.bucket_name}/{self.key}"

    def load(self) -> Dict[str, Any]:
        try:
            response = self.client.get_object(Bucket=self.bucket_name, Key=self.key)
            document = json.loads(response["Body"].read().decode("utf-8"))
        except ClientError as e:
            if e.response["Error"]["Code"] in ("NoSuchKey", "404"):
                # First run, nothing saved yet
                log_progress("Document Store", f"No document at {self.location}, starting empty")
                return new_document()
            log_error("Document Store", f"Failed to load {self.location}: {e}")
            raise GatewayError("load", str(e), e) from e
        except BotoCoreError as e:
            log_error("Document Store", f"Failed to load {self.location}: {e}")
            raise GatewayError("load", str(e), e) from e
        except ValueError as e:
            log_error("Document Store", f"Invalid JSON at {self.location}: {e}")
            raise GatewayError("load", f"invalid JSON at {self.location}", e) from e

        log_progress("Document Store", f"Loaded document from {self.location}")
        return document

    def save(self, document: Dict[str, Any]) -> SaveAck:
        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=self.key,
                Body=json.dumps(document, indent=2).encode("utf-8"),
                ContentType="application/json",
            )
        except (ClientError, BotoCoreError) as e:
            log_error("Document Store", f"Failed to save {self.location}: {e}")
            raise GatewayError("save", str(e), e) from e

        log_progress("Document Store", f"Saved document to {self.location}")
        return SaveAck(success=True, location=self.location, message="Document saved")


class RestDocumentStore:
    """
    Loads and saves the document through the site's REST endpoint.

    GET returns the document, optionally wrapped in ``stepper_form_data``
    (as an object or a JSON string) and optionally inside an API Gateway
    proxy ``body``. POST sends ``{"stepper_form_data": document}`` with the
    entity state split out beside it as ``stepper_data_builder``; load
    merges it back into the document.
    Transient 5xx responses are retried with exponential backoff.

    Args:
        url: Endpoint URL, defaults to DOCUMENT_API_URL
        api_key: Value of the ``x-api-key`` header, defaults to DOCUMENT_API_KEY
        session: Pre-built requests session
        max_retries: Attempts per request
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        max_retries: Optional[int] = None,
        timeout: Optional[int] = None,
    ) -> None:
        self.url = url or Config.DOCUMENT_API_URL
        self.max_retries = max(1, max_retries or Config.API_MAX_RETRIES)
        self.timeout = timeout or Config.API_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self.session.headers.update(
            {"Content-Type": "application/json", "x-api-key": api_key or Config.DOCUMENT_API_KEY}
        )

    def load(self) -> Dict[str, Any]:
        response = self._request("GET", accept_status=(404,))
        if response.status_code == 404:
            log_progress("Document Store", f"No document at {self.url}, starting empty")
            return new_document()

        try:
            data = response.json()
            # API Gateway Lambda proxy response format
            if isinstance(data, dict) and isinstance(data.get("body"), str):
                data = json.loads(data["body"])
            builder_state = None
            if isinstance(data, dict) and REST_PAYLOAD_KEY in data:
                builder_state = data.get(BUILDER_STATE_KEY)
                data = data[REST_PAYLOAD_KEY]
            if isinstance(data, str):
                data = json.loads(data)
            if isinstance(builder_state, str):
                builder_state = json.loads(builder_state)
        except ValueError as e:
            log_error("Document Store", f"Invalid JSON from {self.url}: {e}")
            raise GatewayError("load", f"invalid JSON from {self.url}", e) from e

        if not data:
            return new_document()
        if not isinstance(data, dict):
            raise GatewayError("load", f"unexpected document type {type(data).__name__}")
        if isinstance(builder_state, dict):
            data[BUILDER_STATE_KEY] = builder_state

        log_progress("Document Store", f"Loaded document from {self.url}")
        return data

    def save(self, document: Dict[str, Any]) -> SaveAck:
        form = {key: value for key, value in document.items() if key != BUILDER_STATE_KEY}
        payload = {REST_PAYLOAD_KEY: form}
        if BUILDER_STATE_KEY in document:
            payload[BUILDER_STATE_KEY] = document[BUILDER_STATE_KEY]
        response = self._request("POST", json=payload)
        message = ""
        try:
            body = response.json()
            if isinstance(body, dict):
                message = str(body.get("message", ""))
        except ValueError:
            message = response.text or ""

        log_progress("Document Store", f"Saved document to {self.url}")
        return SaveAck(success=True, location=self.url, message=message or "Document saved")

    def _request(
        self, method: str, accept_status: Iterable[int] = (), **kwargs: Any
    ) -> requests.Response:
        """
        Send a request, retrying transient failures.

        Args:
            method: HTTP method
            accept_status: Non-2xx status codes returned to the caller instead of raising
            **kwargs: Passed through to ``Session.request``

        Returns:
            The final response

        Raises:
            GatewayError: On a non-retryable error or once retries are exhausted
        """
        accept_status = tuple(accept_status)
        retry_delay = 1

        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            try:
                response = self.session.request(method, self.url, timeout=self.timeout, **kwargs)

                if response.status_code in RETRYABLE_STATUS_CODES and not last_attempt:
                    wait_time = retry_delay * (2**attempt)
                    log_progress(
                        "Document Store",
                        f"{method} {self.url} returned {response.status_code}, retrying in "
                        f"{wait_time}s (attempt {attempt + 1}/{self.max_retries})",
                    )
                    time.sleep(wait_time)
                    continue

                if response.status_code in accept_status:
                    return response
                response.raise_for_status()
                return response

            except requests.exceptions.HTTPError as e:
                log_error("Document Store", f"{method} {self.url} failed: {e}")
                raise GatewayError(method.lower(), str(e), e) from e
            except requests.exceptions.RequestException as e:
                if last_attempt:
                    log_error("Document Store", f"{method} {self.url} failed: {e}")
                    raise GatewayError(method.lower(), str(e), e) from e
                wait_time = retry_delay * (2**attempt)
                log_progress(
                    "Document Store",
                    f"{method} {self.url} raised {type(e).__name__}, retrying in "
                    f"{wait_time}s (attempt {attempt + 1}/{self.max_retries})",
                )
                time.sleep(wait_time)

        raise GatewayError(method.lower(), f"failed after {self.max_retries} attempts")


class FileDocumentStore:
    """Keeps the document in a local JSON file."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = Path(path or Config.DOCUMENT_FILE_PATH)

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            log_progress("Document Store", f"No document at {self.path}, starting empty")
            return new_document()
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, ValueError) as e:
            log_error("Document Store", f"Failed to load {self.path}: {e}")
            raise GatewayError("load", str(e), e) from e

    def save(self, document: Dict[str, Any]) -> SaveAck:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2)
        except OSError as e:
            log_error("Document Store", f"Failed to save {self.path}: {e}")
            raise GatewayError("save", str(e), e) from e

        log_progress("Document Store", f"Saved document to {self.path}")
        return SaveAck(success=True, location=str(self.path), message="Document saved")


def get_document_store(backend: Optional[str] = None, client: Any = None):
    """
    Build the document store selected by DOCUMENT_BACKEND.

    Args:
        backend: Override for ``Config.DOCUMENT_BACKEND``
        client: S3 client passed to the s3 backend

    Returns:
        S3DocumentStore, RestDocumentStore or FileDocumentStore

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = (backend or Config.DOCUMENT_BACKEND).lower()
    if backend == "s3":
        return S3DocumentStore(client=client)
    if backend == "rest":
        return RestDocumentStore()
    if backend == "file":
        return FileDocumentStore()
    raise ValueError(f"Unknown document backend: {backend}")
