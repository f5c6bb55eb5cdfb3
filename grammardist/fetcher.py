"""HTTP download of build dependencies."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urljoin
from urllib.request import HTTPRedirectHandler, Request, build_opener

from .logging import get_logger

_REDIRECT_CODES = {301, 302, 303, 307, 308}
_CHUNK_SIZE = 1024 * 1024

Opener = Callable[..., Any]


class DownloadError(RuntimeError):
    """Raised when a file cannot be downloaded."""


class _NoRedirectHandler(HTTPRedirectHandler):
    """Surface redirects as HTTPError so hops can be counted explicitly."""

    def redirect_request(self, req, fp, code, msg, headers, newurl):  # type: ignore[no-untyped-def]
        return None


def _default_opener() -> Opener:
    return build_opener(_NoRedirectHandler()).open


class Fetcher:
    """Downloads single files, following a bounded number of redirects."""

    USER_AGENT = "grammardist"

    def __init__(
        self,
        *,
        timeout: Optional[float] = 60.0,
        max_redirects: int = 5,
        opener: Opener | None = None,
    ) -> None:
        self.timeout = timeout
        self.max_redirects = max_redirects
        self._open = opener or _default_opener()
        self.logger = get_logger("fetcher")

    def download(self, url: str, dest: Path) -> Path:
        """Stream ``url`` into ``dest``; raises DownloadError on any failure."""
        current = url
        hops = 0
        while True:
            request = Request(current, headers={"User-Agent": self.USER_AGENT})
            try:
                response = self._open(request, timeout=self.timeout)
            except HTTPError as exc:
                if exc.code not in _REDIRECT_CODES:
                    raise DownloadError(
                        f"Download of {current} failed with status {exc.code}"
                    ) from exc
                location = exc.headers.get("Location") if exc.headers else None
                exc.close()
                if not location:
                    raise DownloadError(
                        f"Redirect from {current} (status {exc.code}) has no Location header"
                    ) from exc
                hops += 1
                if hops > self.max_redirects:
                    raise DownloadError(
                        f"Download of {url} exceeded {self.max_redirects} redirects"
                    ) from exc
                current = urljoin(current, location)
                self.logger.debug("Following redirect to %s", current)
                continue
            except URLError as exc:
                raise DownloadError(f"Download of {current} failed: {exc.reason}") from exc
            except TimeoutError as exc:
                raise DownloadError(
                    f"Download of {current} timed out after {self.timeout}s"
                ) from exc
            break

        with response:
            status = getattr(response, "status", 200)
            if not 200 <= status < 300:
                raise DownloadError(f"Download of {current} failed with status {status}")
            self._write(response, dest)
        return dest

    def _write(self, response: Any, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        partial = dest.with_name(dest.name + ".part")
        try:
            with partial.open("wb") as handle:
                shutil.copyfileobj(response, handle, _CHUNK_SIZE)
        except (OSError, URLError) as exc:
            partial.unlink(missing_ok=True)
            raise DownloadError(f"Download to {dest} failed: {exc}") from exc
        partial.replace(dest)


__all__ = ["DownloadError", "Fetcher"]
