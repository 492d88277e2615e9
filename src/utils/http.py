# src/utils/http.py
# Ответы об ошибках для роутеров импорта/экспорта: {"error": ..., "details"?: ...}
# и чтение загруженного файла с лимитом размера.

from __future__ import annotations

import os
from typing import Optional

from fastapi import UploadFile
from fastapi.responses import JSONResponse

from src.services.errors import SplittoError

# общий лимит размера импорта (можно переопределить env-переменной MAX_IMPORT_MB)
MAX_IMPORT_MB = int(os.getenv("MAX_IMPORT_MB", "20"))
MAX_IMPORT_BYTES = MAX_IMPORT_MB * 1024 * 1024
CHUNK_SIZE = 1024 * 1024  # 1MB


class UploadTooLarge(SplittoError):
    status_code = 413


def json_error(message: str, status_code: int = 400, details: Optional[str] = None) -> JSONResponse:
    body = {"error": message}
    if details:
        body["details"] = details
    return JSONResponse(body, status_code=status_code)


def error_response(exc: SplittoError) -> JSONResponse:
    return json_error(exc.message, exc.status_code, exc.details)


async def read_upload(file: UploadFile) -> bytes:
    """Читает UploadFile кусками, контролируя общий размер; файл закрывается в любом случае."""
    total = 0
    chunks = []
    try:
        while True:
            chunk = await file.read(CHUNK_SIZE)
            if not chunk:
                break
            total += len(chunk)
            if total > MAX_IMPORT_BYTES:
                raise UploadTooLarge(f"File too large (>{MAX_IMPORT_MB} MB)")
            chunks.append(chunk)
    finally:
        await file.close()
    return b"".join(chunks)
