from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

DEFAULT_FRONTEND_ORIGINS = (
    "https://dinevalley-frontend.onrender.com",
    "https://dinevalley.netlify.app",
    "http://localhost:5173",
    "http://localhost:5174",
)


def parse_origins(raw: str | None) -> tuple[str, ...]:
    origins = tuple(o.strip() for o in (raw or "").split(",") if o.strip())
    return origins or DEFAULT_FRONTEND_ORIGINS


@dataclass(frozen=True)
class AppConfig:
    session_secret: str = os.getenv("SESSION_SECRET", "dinevalley-secret-change-in-production")
    frontend_origins: tuple[str, ...] = field(
        default_factory=lambda: parse_origins(os.getenv("FRONTEND_ORIGINS"))
    )


DEFAULT_APP_CONFIG = AppConfig()
