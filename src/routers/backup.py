# src/routers/backup.py
# -----------------------------------------------------------------------------
# РОУТЕР: Полный бэкап группы (zip)
# -----------------------------------------------------------------------------
#  • GET  /groups/{group_id}/backup/export — скачать zip (backup.json + metadata.json)
#  • POST /groups/backup/import            — multipart: file + action
#        action=analyze  → сравнение версий и дифф, БД не меняется
#        action=restore  → create (группы нет) или update (бэкап новее)
#        action=rollback → стереть данные группы и проиграть бэкап
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from src.db import get_db
from src.services.differences import diff_backup
from src.services.errors import ImportFormatError, SplittoError
from src.services.export import backup_filename, build_backup, build_backup_archive, content_disposition
from src.services.restore import check_url_exists, restore_backup
from src.services.snapshots import parse_backup_archive
from src.services.versions import comparison_payload, compare_backup, derive_restore_mode, load_live_summary
from src.utils.http import error_response, json_error, read_upload

log = logging.getLogger(__name__)

router = APIRouter()

_MODE_DONE = {"create": "created", "update": "updated", "rollback": "rolled back"}


def get_url_probe():
    """Зависимость: проверка доступности документов (в тестах подменяется)."""
    return check_url_exists


def _drop_none(d: dict) -> dict:
    return {k: v for k, v in d.items() if v is not None}


@router.get("/groups/{group_id}/backup/export")
def export_backup(group_id: str, db: Session = Depends(get_db)):
    backup = build_backup(db, group_id)
    if backup is None:
        return json_error("Invalid group ID", 404)

    archive = build_backup_archive(backup)
    filename = backup_filename(backup["group"]["name"])
    log.info("backup exported: group=%s expenses=%d", group_id, len(backup["expenses"]))
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": content_disposition(filename)},
    )


@router.post("/groups/backup/import")
async def import_backup(
    file: Optional[UploadFile] = File(None),
    action: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    probe=Depends(get_url_probe),
):
    try:
        if file is None:
            raise ImportFormatError("No file provided")
        data = parse_backup_archive(await read_upload(file))

        live = load_live_summary(db, data.group.id)
        comparison = compare_backup(data, live)

        if action == "analyze":
            payload = comparison_payload(comparison, snapshot_key="backupExportedAt")
            if live is not None:
                payload["differences"] = diff_backup(data, live).as_dict()
            return {
                "success": True,
                "comparison": _drop_none(payload),
                "groupName": data.group.name,
            }

        if action in ("restore", "rollback"):
            mode = derive_restore_mode(comparison, action, label="Backup")
            result = restore_backup(db, data, mode, probe=probe)
            db.commit()
            return _drop_none({
                "success": True,
                "message": f"Group {_MODE_DONE[mode]} successfully",
                "groupId": data.group.id,
                "mode": mode,
                "warnings": result.warnings or None,
            })

        return json_error('Invalid action. Use "analyze", "restore", or "rollback"', 400)

    except SplittoError as e:
        db.rollback()
        return error_response(e)
    except Exception as e:
        db.rollback()
        log.exception("backup restore error")
        return JSONResponse(
            {"error": "Failed to process backup file", "details": str(e) or "Unknown error"},
            status_code=500,
        )
