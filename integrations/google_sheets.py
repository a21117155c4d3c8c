"""
Google Sheets integration for downloading shared price/cost lists.

Works with sheets shared as "Anyone with the link". The share URL is
rewritten to the CSV export endpoint of the same sheet/tab.
"""

from typing import Optional
from urllib.parse import urlparse, parse_qs, urlencode
import re
import requests
import structlog

from config import settings
from exceptions import InvalidSheetUrlError, SheetFetchError

logger = structlog.get_logger(__name__)

EXPORT_URL_TEMPLATE = "https://docs.google.com/spreadsheets/d/{sheet_id}/export"

_LOGIN_FORM = re.compile(
    r"<form[^>]*action=[\"']?https?://accounts\.google\.com/",
    re.IGNORECASE
)


def to_csv_export_url(share_url: Optional[str]) -> Optional[str]:
    """
    Convert a Google Sheets share URL to its CSV export URL.

    Supported:
        https://docs.google.com/spreadsheets/d/<id>/edit#gid=<gid>
        https://docs.google.com/spreadsheets/d/<id>/view?gid=<gid>
        https://docs.google.com/spreadsheets/d/<id>

    Returns:
        Export URL, or None if this is not a Google Sheets link
    """
    if not share_url:
        return None

    try:
        url = urlparse(share_url.strip())
    except ValueError:
        return None

    if url.scheme not in ("http", "https") or "docs.google.com" not in (url.hostname or ""):
        return None

    parts = [p for p in url.path.split("/") if p]
    if "d" not in parts:
        return None
    d_index = parts.index("d")
    if d_index + 1 >= len(parts):
        return None
    sheet_id = parts[d_index + 1]

    # gid can live in the query string or the fragment
    gid = parse_qs(url.query).get("gid", [None])[0]
    if gid is None and url.fragment:
        gid = parse_qs(url.fragment).get("gid", [None])[0]

    params = {"format": "csv"}
    if gid is not None:
        params["gid"] = gid

    return f"{EXPORT_URL_TEMPLATE.format(sheet_id=sheet_id)}?{urlencode(params)}"


def fetch_sheet_csv(share_url: str, timeout: Optional[float] = None) -> str:
    """
    Download a shared sheet as CSV text.

    Args:
        share_url: Google Sheets share link
        timeout: Seconds before giving up (defaults to settings)

    Returns:
        CSV text

    Raises:
        InvalidSheetUrlError: If the URL is not a Google Sheets link
        SheetFetchError: On network errors, HTTP errors, or a login wall
    """
    export_url = to_csv_export_url(share_url)
    if not export_url:
        raise InvalidSheetUrlError(share_url)

    timeout = timeout or settings.sheet_fetch_timeout_seconds
    logger.info("fetching_sheet_csv", export_url=export_url, timeout=timeout)

    try:
        response = requests.get(
            export_url,
            headers={"Accept": "text/csv, text/plain;q=0.9, */*;q=0.8"},
            timeout=timeout,
            allow_redirects=True,
        )
    except requests.Timeout as e:
        logger.error("sheet_fetch_timeout", export_url=export_url)
        raise SheetFetchError(
            message=f"Sheet download timed out after {timeout}s",
            details={"url": share_url}
        ) from e
    except requests.RequestException as e:
        logger.error("sheet_fetch_failed", export_url=export_url, error=str(e))
        raise SheetFetchError(
            message="Could not download the sheet",
            details={"url": share_url, "original_error": str(e)}
        ) from e

    if not response.ok:
        logger.error(
            "sheet_fetch_http_error",
            export_url=export_url,
            status_code=response.status_code
        )
        raise SheetFetchError(
            message=(
                f"Could not download the sheet (HTTP {response.status_code}). "
                "Check that it is shared as 'Anyone with the link'."
            ),
            details={"url": share_url, "status_code": response.status_code}
        )

    content_type = response.headers.get("content-type", "")
    text = response.text
    if "text/html" in content_type and _LOGIN_FORM.search(text):
        logger.warning("sheet_requires_login", export_url=export_url)
        raise SheetFetchError(
            message=(
                "Google requires sign-in for this sheet. Share it as "
                "'Anyone with the link (viewer)'."
            ),
            details={"url": share_url}
        )

    logger.info("sheet_csv_fetched", bytes=len(text))
    return text
