"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. All secrets are injected via environment — never
hard-coded.

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── CORS ──────────────────────────────────────────────────────
    # Comma-separated allowed origins for the map UI.
    cors_origins_str: str = "http://localhost:5173,http://localhost:3000"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    # ─── Hex grid ──────────────────────────────────────────────────
    # Global for the whole process: every cached analysis shares it.
    # 7 ≈ 5 km² per cell, a good balance for a state-level view.
    h3_resolution: int = 7

    # ─── Upstream map services ─────────────────────────────────────
    # Geocoding queries are sent as "<region> State, <country>".
    country: str = "Nigeria"
    nominatim_url: str = "https://nominatim.openstreetmap.org/search"
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    overpass_timeout_s: int = 60   # embedded in the Overpass QL query
    http_timeout_s: float = 90.0   # httpx client timeout, > overpass_timeout_s
    # Nominatim's usage policy requires an identifying User-Agent.
    http_user_agent: str = "store-density-analyzer/0.1"

    # ─── AI ────────────────────────────────────────────────────────
    # Get from https://aistudio.google.com/
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"

    # When True, all AI calls return canned mock responses.
    # Always True in tests; set False in production with a real key.
    ai_mock_mode: bool = True

    # Upper bound on coordinates sent in a hotspot prompt.
    hotspot_sample_size: int = 500
    hotspot_sample_seed: int = 0

    # ─── Session ───────────────────────────────────────────────────
    # Comma-separated regions analysed at startup, e.g. "Lagos,Rivers".
    preload_regions_str: str = ""

    @property
    def preload_regions(self) -> list[str]:
        return [r.strip() for r in self.preload_regions_str.split(",") if r.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
    )


# Module-level singleton — import this everywhere instead of instantiating Settings()
settings = Settings()
