# src/main.py
# Главная точка входа FastAPI для сервиса бэкапов Splitto.
#  • /api/groups/{id}/backup/export, /api/groups/backup/import — полный бэкап (zip)
#  • /api/groups/{id}/expenses/export/json, /api/groups/json/import — лёгкий JSON
#  • /api/groups/{id}/data/delete, /api/groups/{id}/has-import-marker — undo импорта
#  • /api/groups/{id}, /api/groups/{id}/expenses/{eid}, /api/groups/{id}/documents/count

from __future__ import annotations

import logging
import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dotenv import load_dotenv
load_dotenv()

from src.db import engine  # инициализация БД/пула соединений

from src.routers.backup import router as backup_router
from src.routers.json_import import router as json_import_router
from src.routers.group_data import router as group_data_router
from src.routers.groups import router as groups_router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Splitto Backup",
    description="Экспорт/импорт групп Splitto: полный бэкап, лёгкий JSON, откат последнего импорта.",
)

# --- CORS (дополнительные домены — через CORS_ORIGINS, через запятую) ---
_extra_origins = [o.strip() for o in (os.getenv("CORS_ORIGINS") or "").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
        "https://splitto.app",
        "https://www.splitto.app",
        *_extra_origins,
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Подключение роутеров ---
app.include_router(backup_router,      prefix="/api", tags=["Бэкап"])
app.include_router(json_import_router, prefix="/api", tags=["JSON-импорт"])
app.include_router(group_data_router,  prefix="/api", tags=["Данные группы"])
app.include_router(groups_router,      prefix="/api", tags=["Группы"])

@app.get("/")
def root():
    """Простой healthcheck."""
    return {"message": "Splitto backup работает!", "docs": "/docs"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("src.main:app", host="0.0.0.0", port=8000, reload=False)
