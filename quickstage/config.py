"""
QuickStage Configuration

We read configuration from 2 sources, in order of precedence (higher is more priority)
- Environment variables
- A .env file, either in the current working directory or in a location specified
  by the QUICKSTAGE_ENV_FILE environment variable

The settings object is frozen: it is built once at startup and handed to the components that need it.
"""

import functools
from pathlib import Path
from typing import Annotated

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "quickstage_"

DEFAULT_MAIN_HOSTS = "quick-stage.app,www.quick-stage.app,quickstage.app,www.quickstage.app"


def _split_csv(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


class Settings(BaseSettings):
    env_file: Annotated[
        Path,
        Field(
            description="Location of a .env file (if used) relative to working directory",
        ),
    ] = Path(".env")

    base_domain: Annotated[
        str,
        Field(
            description="Hosting base domain, sites are served at https://<project>.<base_domain>/",
        ),
    ] = "quick-stage.app"

    main_hosts: Annotated[
        str,
        Field(
            description="Comma-separated hosts that serve the API and are never resolved to a project",
        ),
    ] = DEFAULT_MAIN_HOSTS

    spa_fallback: Annotated[
        bool,
        Field(
            description="Serve the project's index.html for unmatched paths (client-side routed apps)",
        ),
    ] = True

    max_upload_mb: Annotated[int, Field(description="Maximum size of an uploaded zip file in megabytes", gt=0)] = 50

    max_unpacked_mb: Annotated[
        int,
        Field(
            description="Maximum total uncompressed size of all files in an uploaded zip, in megabytes",
            gt=0,
        ),
    ] = 500

    allowed_origins: Annotated[
        str | None,
        Field(
            description="Comma-separated origins allowed to call the API (default: https://<base_domain>)",
        ),
    ] = None

    oauth_me_url: Annotated[
        str | None,
        Field(
            description="OAuth 'me' endpoint used to validate bearer tokens, e.g. https://quick-stage.app/api/auth/me",
        ),
    ] = None

    oauth_timeout: Annotated[float, Field(description="Timeout in seconds for token validation calls", gt=0)] = 5.0

    s3_host: Annotated[
        str | None,
        Field(description="S3-compatible object storage endpoint (derived from s3_account_id for Cloudflare R2)"),
    ] = None
    s3_account_id: Annotated[str | None, Field(description="Cloudflare R2 account id")] = None
    s3_access_key: Annotated[str | None, Field(description="S3 access key")] = None
    s3_secret_key: Annotated[str | None, Field(description="S3 secret key")] = None
    s3_bucket: Annotated[str | None, Field(description="Bucket holding the hosted sites and project metadata")] = None
    s3_region: Annotated[str, Field(description="S3 region name")] = "auto"
    s3_timeout: Annotated[float, Field(description="Timeout in seconds for a single object storage call", gt=0)] = 30.0

    doh_url: Annotated[
        str,
        Field(
            description="DNS-over-HTTPS endpoint (JSON API) used for domain verification",
        ),
    ] = "https://cloudflare-dns.com/dns-query"

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, frozen=True)

    @property
    def main_host_list(self) -> list[str]:
        return [h.lower() for h in _split_csv(self.main_hosts)]

    @property
    def allowed_origin_list(self) -> list[str]:
        if self.allowed_origins is None:
            return [f"https://{self.base_domain}"]
        return _split_csv(self.allowed_origins)

    @property
    def s3_endpoint(self) -> str | None:
        if self.s3_host:
            return self.s3_host
        if self.s3_account_id:
            return f"https://{self.s3_account_id}.r2.cloudflarestorage.com"
        return None

    def site_url(self, slug: str) -> str:
        return f"https://{slug}.{self.base_domain}/"


@functools.lru_cache()
def get_settings() -> Settings:
    # Settings are read twice: the first pass only tells us where the .env file lives
    temp = Settings()
    load_dotenv(temp.env_file, override=False)
    return Settings()


def validate_settings(settings: Settings | None = None) -> list[str]:
    """Return a list of human readable configuration warnings (empty if all is well)"""
    settings = settings or get_settings()
    warnings = []
    if not all([settings.s3_endpoint, settings.s3_access_key, settings.s3_secret_key, settings.s3_bucket]):
        warnings.append(
            "Object storage is not configured. Set QUICKSTAGE_S3_ACCOUNT_ID (or QUICKSTAGE_S3_HOST), "
            "QUICKSTAGE_S3_BUCKET, QUICKSTAGE_S3_ACCESS_KEY and QUICKSTAGE_S3_SECRET_KEY."
        )
    if not settings.oauth_me_url:
        warnings.append("QUICKSTAGE_OAUTH_ME_URL is not set, all authenticated API calls will be refused.")
    return warnings


if __name__ == "__main__":
    # Echo the settings
    for k, v in get_settings().model_dump().items():
        print(f"{ENV_PREFIX.upper()}{k.upper()}={v}")
