from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CONVEXGEN_", env_file=".env", extra="ignore")

    generator_name: str = "convexgen"
    log_level: str = "INFO"

    skip_modules: List[str] = ["_generated", "auth", "auth.config", "http", "schema", "testauth"]

    default_page_size: int = 50
    search_page_size: int = 20
    indent_width: int = 4

    # Raise on a synthesized name reused with a different shape instead of warning
    strict_names: bool = False


settings = Settings()
