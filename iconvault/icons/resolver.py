"""Origin resolver -- discover and download the best favicon for a URL.

Candidates are tried in order and the first usable image wins:

1. ``<link>`` hints in the origin's root document, richest first
   (apple-touch-icon, then icon / shortcut icon, then web-manifest icons);
2. ``/favicon.ico`` at the origin, then on the ``www.``-toggled host;
3. any configured fallback icon services.

In direct mode the given URL is fetched as-is.  Every request carries a
short timeout, and exhausting the candidates yields a single ``NotFound``
result rather than an exception.
"""

from __future__ import annotations

import asyncio
import ipaddress
import json
import logging
import re
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from urllib.parse import urljoin, urlsplit

from aiohttp import ClientError, ClientResponse, ClientSession, ClientTimeout
from bs4 import BeautifulSoup

from ..config.settings import cfg
from ..media import is_image_type, is_loose_type, sniff_image
from ..util.async_helpers import run_sync
from ..util.result import Result
from .errors import IconError, IconPipelineError

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_SIZE_RE = re.compile(r"(\d+)\s*[xX]\s*(\d+)")
_MAX_ICON_BYTES = 2 * 1024 * 1024
_MAX_PAGE_BYTES = 1024 * 1024

_TOUCH_RELS = frozenset({"apple-touch-icon", "apple-touch-icon-precomposed"})


@dataclass(frozen=True)
class FetchedIcon:
    url: str
    domain: str
    data: bytes
    content_type: str


@dataclass(frozen=True)
class IconHint:
    url: str
    rank: int
    size: int = 0


def normalize_url(url: str) -> str:
    """Prepend ``https://`` when *url* has no scheme."""
    url = (url or "").strip()
    if not url:
        raise ValueError("URL is required")
    if url.startswith("//"):
        return "https:" + url
    if not _SCHEME_RE.match(url):
        return "https://" + url
    return url


def domain_of(url: str) -> str:
    """Hostname of *url* without a leading ``www.``."""
    parts = urlsplit(normalize_url(url))
    host = parts.hostname
    if not host:
        raise ValueError(f"No host in URL: {url!r}")
    # .port raises ValueError for non-numeric or out-of-range ports
    parts.port
    return host[4:] if host.startswith("www.") else host


async def _read_capped(resp: ClientResponse, limit: int) -> bytes:
    """Read the body until EOF or until more than *limit* bytes arrived."""
    buf = bytearray()
    async for chunk in resp.content.iter_chunked(64 * 1024):
        buf += chunk
        if len(buf) > limit:
            break
    return bytes(buf)


def _www_toggled(host: str) -> str | None:
    if "." not in host:
        return None
    try:
        ipaddress.ip_address(host)
        return None
    except ValueError:
        pass
    return host[4:] if host.startswith("www.") else f"www.{host}"


def _declared_size(sizes: str) -> int:
    if sizes.strip().lower() == "any":
        return 1024
    found = [int(w) for w, _h in _SIZE_RE.findall(sizes)]
    return max(found, default=0)


def parse_icon_links(html: str, page_url: str) -> tuple[list[IconHint], str | None]:
    """Return ``(hints, manifest_url)`` found in an HTML document."""
    soup = BeautifulSoup(html, "html.parser")
    base_tag = soup.find("base", href=True)
    base = urljoin(page_url, base_tag["href"]) if base_tag else page_url

    hints: list[IconHint] = []
    manifest: str | None = None
    for link in soup.find_all("link", href=True):
        href = link["href"].strip()
        if not href or href.startswith("data:"):
            continue
        rels = {r.lower() for r in link.get("rel") or []}
        target = urljoin(base, href)
        size = _declared_size(link.get("sizes") or "")
        if rels & _TOUCH_RELS:
            hints.append(IconHint(target, 0, size))
        elif "icon" in rels:
            hints.append(IconHint(target, 1, size))
        elif "manifest" in rels and manifest is None:
            manifest = target
    return hints, manifest


def parse_manifest_icons(manifest: dict, manifest_url: str) -> list[IconHint]:
    icons = manifest.get("icons") if isinstance(manifest, dict) else None
    if not isinstance(icons, list):
        return []
    hints = []
    for icon in icons:
        if not isinstance(icon, dict) or not icon.get("src"):
            continue
        hints.append(IconHint(
            urljoin(manifest_url, str(icon["src"])), 2, _declared_size(str(icon.get("sizes", "")))
        ))
    return hints


@asynccontextmanager
async def client_session(
    session: ClientSession | None = None,
    user_agent: str | None = None,
) -> AsyncIterator[ClientSession]:
    """Yield *session*, or a short-lived one carrying the icon user agent."""
    if session is not None:
        yield session
        return
    async with ClientSession(headers={"User-Agent": user_agent or cfg.icon_user_agent}) as s:
        yield s


class OriginResolver:
    """Finds and downloads a favicon for an arbitrary website URL."""

    def __init__(
        self,
        *,
        timeout: float | None = None,
        min_bytes: int | None = None,
        fallback_services: tuple[str, ...] | None = None,
    ) -> None:
        self._timeout = ClientTimeout(
            total=timeout if timeout is not None else cfg.icon_fetch_timeout
        )
        self._min_bytes = min_bytes if min_bytes is not None else cfg.icon_min_bytes
        self._fallbacks = (
            fallback_services if fallback_services is not None else cfg.icon_fallback_services
        )

    @property
    def timeout(self) -> ClientTimeout:
        return self._timeout

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def candidates(self, url: str, session: ClientSession) -> list[str]:
        """Ordered, de-duplicated candidate icon URLs for *url*'s origin."""
        parts = urlsplit(normalize_url(url))
        origin = f"{parts.scheme}://{parts.netloc}"
        hints = await self._discover(origin + "/", session)

        urls = [h.url for h in sorted(hints, key=lambda h: (h.rank, -h.size))]
        urls.append(f"{origin}/favicon.ico")
        toggled = _www_toggled(parts.hostname or "")
        if toggled:
            port = f":{parts.port}" if parts.port else ""
            urls.append(f"{parts.scheme}://{toggled}{port}/favicon.ico")
        domain = domain_of(url)
        urls.extend(t.format(domain=domain) for t in self._fallbacks)
        return list(dict.fromkeys(urls))

    async def _discover(self, page_url: str, session: ClientSession) -> list[IconHint]:
        try:
            async with session.get(page_url, timeout=self._timeout) as resp:
                if resp.status >= 300:
                    logger.debug("Root document %s returned HTTP %d", page_url, resp.status)
                    return []
                raw = (await _read_capped(resp, _MAX_PAGE_BYTES))[:_MAX_PAGE_BYTES]
                final_url = str(resp.url)
                charset = resp.charset or "utf-8"
        except (ClientError, asyncio.TimeoutError) as exc:
            logger.debug("Root document %s unreachable: %s", page_url, exc)
            return []

        html = raw.decode(charset, errors="replace")
        hints, manifest_url = parse_icon_links(html, final_url)
        if manifest_url:
            hints.extend(await self._manifest_hints(manifest_url, session))
        logger.debug("Discovered %d icon hint(s) on %s", len(hints), page_url)
        return hints

    async def _manifest_hints(self, manifest_url: str, session: ClientSession) -> list[IconHint]:
        try:
            async with session.get(manifest_url, timeout=self._timeout) as resp:
                if resp.status >= 300:
                    return []
                manifest = json.loads(await _read_capped(resp, _MAX_PAGE_BYTES))
        except (ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.debug("Manifest %s unusable: %s", manifest_url, exc)
            return []
        return parse_manifest_icons(manifest, manifest_url)

    # ------------------------------------------------------------------
    # Download
    # ------------------------------------------------------------------

    async def resolve(
        self,
        url: str,
        *,
        direct: bool = False,
        convert: Callable[[bytes], bytes] | None = None,
        session: ClientSession | None = None,
    ) -> Result:
        """Fetch the first usable icon for *url*.

        *convert* runs in the executor on each downloaded payload; raising
        :class:`IconPipelineError` rejects the candidate and moves on.
        Returns ``Result.ok(value=FetchedIcon)`` or a ``NotFound`` failure.
        """
        try:
            target = normalize_url(url)
            domain = domain_of(target)
        except ValueError as exc:
            return Result.fail(str(exc), error=IconError.NOT_FOUND)

        last_error = "No favicon found"
        async with client_session(session) as s:
            candidates = [target] if direct else await self.candidates(target, s)
            for candidate in candidates:
                try:
                    data, content_type = await self.download(candidate, s)
                    if convert is not None:
                        data = await run_sync(convert, data)
                except IconPipelineError as exc:
                    logger.debug("Candidate %s rejected: %s", candidate, exc.message)
                    last_error = exc.message
                    continue
                logger.info("Fetched favicon for %s from %s", domain, candidate)
                return Result.ok(
                    f"Fetched from {candidate}",
                    value=FetchedIcon(candidate, domain, data, content_type),
                )

        logger.info("No favicon found for %s (%s)", domain, last_error)
        return Result.fail(last_error, error=IconError.NOT_FOUND)

    async def download(self, url: str, session: ClientSession) -> tuple[bytes, str]:
        """GET one image URL; raises IconPipelineError on any rejection."""
        try:
            async with session.get(
                url, timeout=self._timeout, headers={"Accept": "image/*,*/*;q=0.8"},
            ) as resp:
                if resp.status >= 300:
                    raise IconPipelineError(
                        f"HTTP {resp.status} from {url}", error=IconError.NOT_FOUND,
                    )
                if (resp.content_length or 0) > _MAX_ICON_BYTES:
                    raise IconPipelineError(f"Icon too large at {url}", error=IconError.NOT_FOUND)
                content_type = resp.headers.get("Content-Type", "")
                data = await _read_capped(resp, _MAX_ICON_BYTES)
        except (ClientError, asyncio.TimeoutError) as exc:
            raise IconPipelineError(
                f"Fetch failed for {url}: {str(exc) or type(exc).__name__}",
                error=IconError.NETWORK_ERROR,
            ) from exc

        if len(data) > _MAX_ICON_BYTES:
            raise IconPipelineError(f"Icon too large at {url}", error=IconError.NOT_FOUND)
        if not is_image_type(content_type):
            sniffed = sniff_image(data) if is_loose_type(content_type) else None
            if not sniffed:
                raise IconPipelineError(
                    f"Not an image ({content_type or 'no content type'}) at {url}",
                    error=IconError.NOT_FOUND,
                )
            content_type = sniffed
        if len(data) < self._min_bytes:
            raise IconPipelineError(
                f"Response too small ({len(data)} bytes) at {url}", error=IconError.NOT_FOUND,
            )
        return data, content_type
