"""
file_store.py
-------------
Storage for documents uploaded as answers to "document" questions.

Uploads land in a temp area first (guest requests are not confirmed yet) and
are promoted to <BOOKING_UPLOAD_DIR>/<window_id>/ once the booking exists.
Paths are storage names relative to Django's default_storage.

Only files staged here may be promoted: a path must sit directly in the temp
area, with no ".." segments.
"""

import logging
import os
import posixpath
import uuid

from django.conf import settings
from django.core.files.storage import default_storage
from django.utils.text import get_valid_filename

from ..exceptions import FilePromotionError, NotFound

logger = logging.getLogger(__name__)


class FileStore:
    def __init__(self, storage=None):
        self.storage = storage or default_storage

    @property
    def root(self):
        return settings.BOOKING_UPLOAD_DIR

    def is_temp(self, path) -> bool:
        if not path or "\\" in path:
            return False
        parts = path.split("/")
        if ".." in parts or posixpath.normpath(path) != path:
            return False
        return posixpath.dirname(path) == f"{self.root}/temp"

    def stage_temp(self, uploaded_file) -> str:
        """Save an uploaded file under a random name in the temp area."""
        _, ext = os.path.splitext(uploaded_file.name or "")
        secure_name = f"{uuid.uuid4().hex}{get_valid_filename(ext) if ext else ''}"
        return self.storage.save(f"{self.root}/temp/{secure_name}", uploaded_file)

    def promote(self, temp_path, window_id) -> str:
        """Move a staged file into the window's folder and return the new path."""
        if not self.is_temp(temp_path):
            raise FilePromotionError(f"Not a staged upload: {temp_path}")
        if not self.storage.exists(temp_path):
            raise FilePromotionError(f"Uploaded file is missing: {temp_path}")
        target = f"{self.root}/{window_id}/{posixpath.basename(temp_path)}"
        try:
            with self.storage.open(temp_path, "rb") as src:
                final_path = self.storage.save(target, src)
            self.storage.delete(temp_path)
        except OSError as e:
            logger.error("Moving %s to %s failed: %s", temp_path, target, e)
            raise FilePromotionError() from e
        return final_path

    def open(self, path):
        """Open a stored document for reading; NotFound when it is gone."""
        if not path or not self.storage.exists(path):
            raise NotFound("File not found on server.")
        return self.storage.open(path, "rb")

    def cleanup(self, paths) -> None:
        """Best-effort removal; failures are logged only."""
        for path in paths or []:
            try:
                if path and self.storage.exists(path):
                    self.storage.delete(path)
            except OSError as e:
                logger.warning("Could not remove upload %s: %s", path, e)
