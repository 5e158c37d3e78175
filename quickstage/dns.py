"""Read-only DNS lookups through a DNS-over-HTTPS JSON endpoint (e.g. Cloudflare)."""

import logging

import httpx

from quickstage.errors import UpstreamError

logger = logging.getLogger("quickstage.dns")

DOH_TIMEOUT = httpx.Timeout(10.0, connect=5.0)


async def lookup(doh_url: str, name: str, rtype: str = "A") -> list[str]:
    """Return the data of all answers of the given record type for name (empty if there are none)"""
    try:
        async with httpx.AsyncClient(timeout=DOH_TIMEOUT) as client:
            r = await client.get(doh_url, params={"name": name, "type": rtype}, headers={"accept": "application/dns-json"})
            r.raise_for_status()
            data = r.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"dns.lookup.error name={name} type={rtype} err={type(e).__name__}")
        raise UpstreamError(f"DNS lookup failed for {name} ({rtype})") from e
    return [str(answer.get("data")) for answer in data.get("Answer") or []]


async def lookup_records(doh_url: str, name: str) -> dict[str, list[str]]:
    return {rtype: await lookup(doh_url, name, rtype) for rtype in ("CNAME", "A", "AAAA")}
