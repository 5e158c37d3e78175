"""API Endpoints for server information and configuration."""

from importlib.metadata import PackageNotFoundError, version

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from quickstage.config import Settings, get_settings, validate_settings
from quickstage.connections import s3_enabled

app_info = APIRouter(tags=["informational"])


class HealthResponse(BaseModel):
    ok: bool = True
    service: str = "quickstage-hosting"


class ConfigResponse(BaseModel):
    """Public configuration of this QuickStage instance."""

    base_domain: str = Field(..., description="Sites are served at https://<project>.<base_domain>/")
    spa_fallback: bool = Field(..., description="Whether unmatched paths are served the project's index.html")
    max_upload_mb: int = Field(..., description="Maximum size of an uploaded zip file")
    s3_enabled: bool = Field(..., description="Whether object storage is configured")
    warnings: list[str] = Field(..., description="A list of configuration warnings.")
    api_version: str = Field(..., description="The version of the QuickStage API.")


def api_version() -> str:
    try:
        return version("quickstage")
    except PackageNotFoundError:
        return "unknown"


def info_text(base_domain: str) -> str:
    return (
        "QuickStage Hosting API\n"
        "- /api/projects  (create)\n"
        "- /api/projects/:slug/upload (zip upload)\n"
        "- /api/domains/verify?domain=example.com (DNS check)\n"
        "\n"
        "If you're trying to view a hosted site, visit:\n"
        f"https://<project>.{base_domain}/\n"
    )


@app_info.get("/health")
async def health() -> HealthResponse:
    """Health check endpoint for monitoring and load balancers."""
    return HealthResponse()


@app_info.get("/config")
async def get_config(settings: Settings = Depends(get_settings)) -> ConfigResponse:
    """Get the public configuration of this QuickStage instance."""
    return ConfigResponse(
        base_domain=settings.base_domain,
        spa_fallback=settings.spa_fallback,
        max_upload_mb=settings.max_upload_mb,
        s3_enabled=s3_enabled(settings),
        warnings=validate_settings(settings),
        api_version=api_version(),
    )
