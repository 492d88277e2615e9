# backend/src/utils/media.py
# -----------------------------------------------------------------------------
# Общие утилиты для работы с медиа: выбор MEDIA_ROOT и разрешение URL документа
# в локальный путь внутри MEDIA_ROOT (с защитой от выхода за корень).
# -----------------------------------------------------------------------------

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import urlparse


# ===== MEDIA ROOT ==============================================================

def pick_media_root() -> Path:
    """
    Выбираем корень хранения:
      1) SPLITTO_MEDIA_ROOT (в проде укажи /data/uploads)
      2) иначе пробуем /data/uploads
      3) если нет прав/папки — локальный ./var/uploads
    """
    primary = Path(os.getenv("SPLITTO_MEDIA_ROOT") or "/data/uploads")
    try:
        primary.mkdir(parents=True, exist_ok=True)
        return primary
    except OSError:
        fallback = Path(os.getenv("SPLITTO_MEDIA_FALLBACK") or os.path.abspath("./var/uploads"))
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback


# ===== URL -> ключ / локальный путь ===========================================

def _extract_path(s: str) -> str:
    if s.startswith("http://") or s.startswith("https://"):
        parsed = urlparse(s)
        return parsed.path or ""
    return s


def url_to_media_key(url: Optional[str]) -> Optional[str]:
    """
    Ключ объекта в хранилище = путь после /media/ (напр. documents/2025/10/abcd.jpg).
    Для URL без /media/ берём последний сегмент пути.
    """
    if not url:
        return None
    raw = _extract_path(str(url).strip())
    if not raw:
        return None
    if "/media/" in raw:
        return raw.split("/media/", 1)[1] or None
    return raw.rstrip("/").rsplit("/", 1)[-1] or None


def key_to_media_local_path(
    root: Path,
    key: Optional[str],
    *,
    allowed_subdirs: Optional[Tuple[str, ...]] = None,
) -> Optional[Path]:
    """
    Преобразует ключ в локальный путь внутри root.
    Если задан allowed_subdirs — ключ должен начинаться с одного из них.
    """
    if not key:
        return None

    if allowed_subdirs:
        ok = any(key.startswith(prefix.rstrip("/") + "/") for prefix in allowed_subdirs)
        if not ok:
            return None

    local = root / key
    try:
        local.resolve().relative_to(root.resolve())  # гарантия, что внутри root
    except ValueError:
        return None
    return local
