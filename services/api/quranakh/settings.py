# services/api/quranakh/settings.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field, field_validator
import base64
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    # Storage settings
    # sqlite for a single instance; sheets for the shared school spreadsheet;
    # json for demos (STORAGE_BACKEND=json)
    storage_backend: str = "sqlite"
    db_url: str = "sqlite:///data/quranakh.db"
    json_data_dir: str = "data/json"
    google_sa_json: str = ""
    google_sa_json_base64: str = ""
    sheets_spreadsheet_id: str = ""

    # CORS settings
    allowed_origins: str = "http://localhost:3000,http://localhost:3001"

    # Highlights
    # Color a highlight turns into once the student has fixed the mistake.
    resolved_highlight_color: str = Field(
        default="gold",
        description="Terminal color of a resolved highlight",
    )
    auto_create_assignments: bool = True

    # Voice notes on highlights can be deleted by their author for this long
    voice_note_delete_window_minutes: int = Field(default=5, ge=0)

    # Pen annotations
    # Short cache for page loads; cleared on every save for that page.
    annotation_cache_ttl_seconds: int = 5
    annotation_cache_size: int = 256

    @field_validator("resolved_highlight_color")
    @classmethod
    def normalize_resolved_color(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if not v:
            raise ValueError("RESOLVED_HIGHLIGHT_COLOR must not be empty")
        return v

    model_config = ConfigDict(
        # Always load .env from the same folder as this settings.py
        env_file=str(Path(__file__).resolve().parent / ".env"),
        extra="ignore",
    )

    def resolved_google_sa_json(self) -> str:
        """
        Return the path to the service account JSON.
        If GOOGLE_SA_JSON_BASE64 is set, decode it to a temp file.
        Otherwise return GOOGLE_SA_JSON path.
        """
        if self.google_sa_json_base64:
            import tempfile

            decoded = base64.b64decode(self.google_sa_json_base64)
            temp_file = tempfile.NamedTemporaryFile(mode='w', delete=False, suffix='.json')
            temp_file.write(decoded.decode('utf-8'))
            temp_file.close()
            return temp_file.name

        return self.google_sa_json

    def get_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


_settings_instance = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
