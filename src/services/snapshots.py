# src/services/snapshots.py
# Разбор загруженных файлов в снимки. Любая проблема формата — ImportFormatError (400),
# распакованный backup.json больше лимита загрузки — UploadTooLarge (413); всё
# до обращения к БД.

from __future__ import annotations

import io
import json
import zipfile
from typing import Any

from pydantic import ValidationError

from src.schemas.snapshot import BackupData, JSONImportData
from src.services.errors import ImportFormatError
from src.utils import http as http_utils
from src.utils.http import UploadTooLarge

BACKUP_ENTRY = "backup.json"


def _load_json(raw: bytes | str, what: str) -> Any:
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise ImportFormatError(f"Invalid {what}: not valid JSON", details=str(e)) from e


def _read_entry(zf: zipfile.ZipFile, name: str) -> bytes:
    """Распаковывает запись с тем же лимитом, что и у загрузки: маленький zip не должен раздуться в памяти."""
    limit = http_utils.MAX_IMPORT_BYTES
    too_large = UploadTooLarge(f"Backup file too large when unpacked (>{http_utils.MAX_IMPORT_MB} MB)")
    info = zf.getinfo(name)
    if info.file_size > limit:
        raise too_large

    total = 0
    chunks = []
    with zf.open(info) as fh:
        while True:
            chunk = fh.read(http_utils.CHUNK_SIZE)
            if not chunk:
                break
            total += len(chunk)
            if total > limit:
                raise too_large
            chunks.append(chunk)
    return b"".join(chunks)


def parse_backup_archive(content: bytes) -> BackupData:
    try:
        with zipfile.ZipFile(io.BytesIO(content)) as zf:
            if BACKUP_ENTRY not in zf.namelist():
                raise ImportFormatError("Invalid backup file: backup.json not found")
            raw = _read_entry(zf, BACKUP_ENTRY)
    except zipfile.BadZipFile as e:
        raise ImportFormatError("Invalid backup file: not a zip archive", details=str(e)) from e

    payload = _load_json(raw, "backup file")
    if not isinstance(payload, dict) or not payload.get("version") or not payload.get("group") or not payload.get("exportedAt"):
        raise ImportFormatError("Invalid backup file format")
    try:
        return BackupData.model_validate(payload)
    except ValidationError as e:
        raise ImportFormatError("Invalid backup file format", details=str(e)) from e


def parse_json_export(content: bytes) -> JSONImportData:
    payload = _load_json(content, "JSON file")
    if not isinstance(payload, dict) or not all(payload.get(k) is not None for k in ("id", "name", "participants", "expenses")):
        raise ImportFormatError(
            "Invalid JSON file format. Expected export format with id, name, participants, and expenses."
        )
    try:
        return JSONImportData.model_validate(payload)
    except ValidationError as e:
        raise ImportFormatError("Invalid JSON file format", details=str(e)) from e
