"""Blocking HTTP fetches for the norlys and NOAA feeds."""

import logging
import urllib.error
import urllib.request

logger = logging.getLogger(__name__)

USER_AGENT = "norlys-core"


class FetchError(RuntimeError):
    pass


def fetch_bytes(url: str, timeout: float = 10.0) -> bytes:
    """
    GET url and return the complete response body.

    Raises:
        FetchError if the host is unreachable, the request times out, or
        the server answers with a non-2xx status.
    """
    request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(request, timeout=timeout) as resp:
            status = resp.status
            body = resp.read()
    except urllib.error.HTTPError as e:
        raise FetchError(f"HTTP {e.code} from {url}") from e
    except (urllib.error.URLError, OSError) as e:
        raise FetchError(f"Cannot reach {url}: {e}") from e

    if not 200 <= status < 300:
        raise FetchError(f"HTTP {status} from {url}")

    logger.info("Fetched %d bytes from %s (HTTP %d)", len(body), url, status)
    return body
