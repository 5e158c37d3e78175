"""API Endpoints for checking the DNS records of custom domains."""

from fastapi import APIRouter, Depends, Query

from quickstage.api.auth import authenticated_user
from quickstage.config import Settings, get_settings
from quickstage.dns import lookup_records
from quickstage.errors import ValidationError
from quickstage.models import DomainRecords, DomainVerifyResponse, User

app_domains = APIRouter(prefix="/api/domains", tags=["domains"])


@app_domains.get("/verify", response_model=DomainVerifyResponse)
async def verify_domain(
    domain: str = Query("", description="The domain to look up"),
    _user: User = Depends(authenticated_user),
    settings: Settings = Depends(get_settings),
):
    """
    Look up the CNAME, A and AAAA records of a domain, to help pointing it at a hosted site.
    """
    domain = domain.strip().lower()
    if len(domain) < 3:
        raise ValidationError("domain is required")

    records = await lookup_records(settings.doh_url, domain)
    return DomainVerifyResponse(
        domain=domain,
        records=DomainRecords(**records),
        hint=f"For a custom domain, set CNAME {domain} -> <project>.{settings.base_domain}",
    )
