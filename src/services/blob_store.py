# src/services/blob_store.py
# -----------------------------------------------------------------------------
# Хранилище файлов документов как внедряемая зависимость.
# -----------------------------------------------------------------------------
# Сервисы удаления получают BlobStore параметром, а не собирают клиент из
# окружения на месте вызова. В тестах подставляется фейк.
#   BLOB_STORE=local — файлы под MEDIA_ROOT (по умолчанию)
#   BLOB_STORE=none  — ничего не удаляем
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional, Protocol, Tuple

from src.services.errors import BlobNotFound, BlobTransientError
from src.utils.media import key_to_media_local_path, pick_media_root, url_to_media_key

log = logging.getLogger(__name__)


class BlobStore(Protocol):
    def delete(self, key: str) -> None:
        """Удаляет объект. BlobNotFound — объекта нет; BlobTransientError — повторить можно позже."""
        ...


class NullBlobStore:
    def delete(self, key: str) -> None:
        return None


class LocalMediaBlobStore:
    def __init__(self, root: Optional[Path] = None, allowed_subdirs: Optional[Tuple[str, ...]] = None):
        self.root = root or pick_media_root()
        self.allowed_subdirs = allowed_subdirs

    def delete(self, key: str) -> None:
        path = key_to_media_local_path(self.root, key, allowed_subdirs=self.allowed_subdirs)
        if path is None or not path.exists():
            raise BlobNotFound(f"Blob not found: {key}")
        try:
            path.unlink()
        except OSError as e:
            raise BlobTransientError(f"Failed to delete blob {key}", details=str(e)) from e


def delete_documents_by_urls(store: BlobStore, urls: Iterable[str]) -> int:
    """
    Удаляет файлы документов по их URL. Ошибки хранилища логируем и идём дальше —
    удаление записей в БД от них не зависит. Возвращает число удалённых файлов.
    """
    deleted = 0
    for url in urls:
        key = url_to_media_key(url)
        if not key:
            continue
        try:
            store.delete(key)
            deleted += 1
        except BlobNotFound:
            log.info("blob already gone: %s", key)
        except BlobTransientError:
            log.exception("failed to delete blob: %s", key)
    return deleted


def get_blob_store() -> BlobStore:
    """FastAPI-зависимость: в тестах переопределяется через app.dependency_overrides."""
    kind = (os.getenv("BLOB_STORE") or "local").strip().lower()
    if kind == "none":
        return NullBlobStore()
    return LocalMediaBlobStore()
