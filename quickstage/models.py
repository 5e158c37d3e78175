from pydantic import BaseModel, EmailStr, Field


class User(BaseModel):
    """For internal use only. Represents a user authenticated by the external identity service."""

    id: str | None = None
    email: EmailStr | None = None
    name: str | None = None

    @property
    def owner(self) -> str:
        return self.id or self.email or "unknown"


class ProjectMeta(BaseModel):
    slug: str = Field(description="Project slug, used as subdomain and storage namespace")
    name: str = Field(description="Human readable project name")
    createdAt: str = Field(description="Creation time (ISO 8601, UTC)")
    owner: str = Field(description="Id or email of the user that created the project")
    hostingUrl: str = Field(description="URL at which the site is served")


class CreateProjectBody(BaseModel):
    name: str = Field(min_length=1, description="Name of the new project")
    desiredSlug: str | None = Field(None, description="Preferred slug (default: derived from the name)")


class ProjectResponse(BaseModel):
    ok: bool = True
    project: ProjectMeta


class UploadResponse(BaseModel):
    ok: bool = True
    message: str = "Uploaded to storage"
    uploaded: int = Field(description="Number of files written")
    skipped: int = Field(description="Number of entries skipped (directories and unsafe paths)")
    url: str = Field(description="URL of the deployed site")


class DomainRecords(BaseModel):
    CNAME: list[str]
    A: list[str]
    AAAA: list[str]


class DomainVerifyResponse(BaseModel):
    ok: bool = True
    domain: str
    records: DomainRecords
    hint: str
