from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_title: str = Field("Image Hosting Service")

    # Storage locations
    upload_dir: Path = Field(Path("uploads"))
    metadata_file: Path = Field(Path("images_meta.json"))

    # When unset, record URLs are built from the host of the upload request
    public_base_url: Optional[str] = Field(None)

    # Upload limits
    max_file_size: int = Field(10 * 1024 * 1024)
    max_files_per_upload: int = Field(10)
    allowed_mime_types: List[str] = Field(
        default_factory=lambda: [
            "image/jpeg",
            "image/jpg",
            "image/png",
            "image/gif",
            "image/webp",
        ]
    )
    verify_image_content: bool = Field(False)

    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field("INFO")

    host: str = Field("0.0.0.0")
    port: int = Field(3000)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="allow",  # tolerate unknown vars if needed
    )

settings = Settings()
