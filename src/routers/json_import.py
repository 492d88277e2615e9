# src/routers/json_import.py
# -----------------------------------------------------------------------------
# РОУТЕР: Лёгкий JSON-экспорт/импорт группы
# -----------------------------------------------------------------------------
#  • GET  /groups/{group_id}/expenses/export/json — скачать JSON
#  • POST /groups/json/import — multipart: file + action (analyze | restore | rollback)
# В формате нет id расходов, журнала, заметок и вложений: при анализе
# возвращаем список этих ограничений как warnings.
# -----------------------------------------------------------------------------

from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from src.db import get_db
from src.services.differences import diff_json
from src.services.errors import ImportFormatError, SplittoError
from src.services.export import build_json_export, content_disposition
from src.services.restore import restore_json
from src.services.snapshots import parse_json_export
from src.services.versions import comparison_payload, compare_json, derive_restore_mode, load_live_summary
from src.utils.http import error_response, json_error, read_upload

log = logging.getLogger(__name__)

router = APIRouter()

JSON_IMPORT_WARNINGS = [
    "JSON import has limitations:",
    "• Activity history is not preserved, it will be regenerated",
    "• Document attachments will not be imported",
    "• Notes on expenses will not be imported",
    "• Recurring expense links will not be imported",
    "• Only basic expense data will be restored",
]

_MODE_DONE = {"create": "created", "update": "updated", "rollback": "rolled back"}


@router.get("/groups/{group_id}/expenses/export/json")
def export_json(group_id: str, db: Session = Depends(get_db)):
    data = build_json_export(db, group_id)
    if data is None:
        return json_error("Invalid group ID", 404)

    slug = data["name"].lower().replace(" ", "-")
    return Response(
        content=json.dumps(data, ensure_ascii=False, indent=2),
        media_type="application/json",
        headers={"Content-Disposition": content_disposition(f"{slug}.json")},
    )


@router.post("/groups/json/import")
async def import_json(
    file: Optional[UploadFile] = File(None),
    action: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    try:
        if file is None:
            raise ImportFormatError("No file provided")
        data = parse_json_export(await read_upload(file))

        live = load_live_summary(db, data.id)
        comparison = compare_json(data, live)

        if action == "analyze":
            payload = comparison_payload(comparison, snapshot_key="jsonExportedAt")
            if live is not None:
                payload["differences"] = diff_json(data, live).as_dict()
            return {
                "success": True,
                "comparison": {k: v for k, v in payload.items() if v is not None},
                "groupName": data.name,
                "warnings": JSON_IMPORT_WARNINGS,
            }

        if action in ("restore", "rollback"):
            mode = derive_restore_mode(comparison, action, label="JSON export")
            restore_json(db, data, mode)
            db.commit()
            return {
                "success": True,
                "message": f"Group {_MODE_DONE[mode]} successfully",
                "groupId": data.id,
                "mode": mode,
            }

        return json_error('Invalid action. Use "analyze", "restore", or "rollback"', 400)

    except SplittoError as e:
        db.rollback()
        return error_response(e)
    except Exception as e:
        db.rollback()
        log.exception("JSON import error")
        return JSONResponse(
            {"error": "Failed to process JSON file", "details": str(e) or "Unknown error"},
            status_code=500,
        )
