"""
Bill Upload Flow

Flow per file:
1. Validate (extension, size, image files must decode)
2. Upload to the bills bucket at {user_id}/{epoch_millis}.{ext}
3. Record a Bill row for the person

Files are independent: one failure marks that file only, and files
already uploaded are skipped when the batch is retried.
"""

import time
from enum import Enum
from io import BytesIO
from typing import Callable, Optional

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, Field

from finance_tracker.audit import AuditLogger, create_correlation_id, get_logger
from finance_tracker.config import AppSettings, get_settings
from finance_tracker.models.auth import Identity
from finance_tracker.models.finance import Bill
from finance_tracker.pages.transactions import FormValidationError
from finance_tracker.services.backend import (
    FileStorageInterface,
    FinanceStorageInterface,
    TransportError,
)


logger = get_logger(__name__)

UPLOAD_FAILED_MESSAGE = "Upload failed"

MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "pdf": "application/pdf",
}
IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif"}


class BillFileStatus(str, Enum):
    PENDING = "pending"
    UPLOADED = "uploaded"
    ERROR = "error"


class PendingBill(BaseModel):
    """A file picked by the user, plus its upload state."""

    filename: str
    content: bytes = Field(repr=False)
    status: BillFileStatus = BillFileStatus.PENDING
    error: Optional[str] = None
    path: Optional[str] = None
    bill_id: Optional[str] = None

    @property
    def extension(self) -> str:
        if "." not in self.filename:
            return ""
        return self.filename.rsplit(".", 1)[-1].lower()

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    @property
    def mime_type(self) -> str:
        return MIME_TYPES.get(self.extension, "application/octet-stream")

    @property
    def is_image(self) -> bool:
        return self.extension in IMAGE_EXTENSIONS


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class BillUploadFlow:
    """
    Backs the Upload Bills page.

    Usage:
        flow = BillUploadFlow(file_storage, storage)
        files = await flow.upload_all(context.identity, files)
    """

    def __init__(
        self,
        file_storage: FileStorageInterface,
        storage: FinanceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        clock: Callable[[], int] = _epoch_millis,
    ):
        self._files = file_storage
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or get_settings().app
        self._clock = clock
        self._last_millis = 0

    @property
    def accepted_extensions(self) -> list[str]:
        return self._settings.supported_bill_formats_list

    @property
    def max_size_bytes(self) -> int:
        return self._settings.max_bill_size_bytes

    def validate(self, file: PendingBill) -> None:
        """
        Raises:
            FormValidationError: With a message naming the problem
        """
        if file.extension not in self.accepted_extensions:
            accepted = ", ".join(ext.upper() for ext in self.accepted_extensions)
            raise FormValidationError(f"Unsupported file type. Accepted: {accepted}")
        if file.size_bytes == 0:
            raise FormValidationError("The file is empty")
        if file.size_bytes > self.max_size_bytes:
            raise FormValidationError(
                f"File is larger than {self._settings.max_bill_size_mb}MB"
            )

        if file.is_image:
            try:
                with Image.open(BytesIO(file.content)) as img:
                    img.verify()
            except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
                raise FormValidationError(f"Could not read image: {e}")
        elif file.extension == "pdf" and not file.content.startswith(b"%PDF"):
            raise FormValidationError("Could not read PDF: missing PDF header")

    def object_path(self, user_id: str, extension: str) -> str:
        """Unique per flow even when two files land in the same millisecond."""
        millis = max(self._clock(), self._last_millis + 1)
        self._last_millis = millis
        return f"{user_id}/{millis}.{extension}"

    async def upload_all(
        self,
        identity: Optional[Identity],
        files: list[PendingBill],
    ) -> list[PendingBill]:
        """
        Upload every pending file. Returns the files with updated status;
        the input list is not modified.
        """
        if identity is None or not files:
            return list(files)

        correlation_id = create_correlation_id()
        results = []
        person = None

        for file in files:
            if file.status == BillFileStatus.UPLOADED:
                results.append(file)
                continue

            try:
                self.validate(file)
            except FormValidationError as e:
                self._audit.log_bill_upload_failed(
                    filename=file.filename,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                results.append(file.model_copy(update={
                    "status": BillFileStatus.ERROR,
                    "error": str(e),
                }))
                continue

            try:
                if person is None:
                    person = await self._storage.ensure_person(
                        identity.email, identity.display_name
                    )
                path = self.object_path(identity.id, file.extension)
                await self._files.upload(
                    self._settings.bills_bucket,
                    path,
                    file.content,
                    file.mime_type,
                )
                bill = await self._storage.save_bill(Bill(
                    person_id=person.id,
                    name=file.filename,
                    path=path,
                    mime_type=file.mime_type,
                    extension=file.extension,
                    size_bytes=file.size_bytes,
                ))
            except TransportError as e:
                logger.error("bill_upload_failed", filename=file.filename, error=e.message)
                self._audit.log_bill_upload_failed(
                    filename=file.filename,
                    error_message=e.message,
                    correlation_id=correlation_id,
                )
                results.append(file.model_copy(update={
                    "status": BillFileStatus.ERROR,
                    "error": UPLOAD_FAILED_MESSAGE,
                }))
                continue

            self._audit.log_bill_uploaded(
                bill_id=bill.id,
                path=path,
                size_bytes=bill.size_bytes,
                correlation_id=correlation_id,
            )
            results.append(file.model_copy(update={
                "status": BillFileStatus.UPLOADED,
                "error": None,
                "path": path,
                "bill_id": bill.id,
            }))

        return results

    async def list_bills(self, identity: Identity) -> list[Bill]:
        person = await self._storage.get_person_by_email(identity.email)
        if person is None:
            return []
        return await self._storage.list_bills(person.id)
