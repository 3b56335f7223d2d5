"""WebDAV storage gateway for the Nextcloud file service.

Speaks the handful of WebDAV verbs the contract needs (PROPFIND, PUT, GET,
DELETE, MKCOL) over httpx. All paths are resolved against the user's DAV
root, e.g. ``https://cloud.example.com/remote.php/dav/files/<user>``; hrefs
coming back from the server are translated to backend-relative paths before
they leave this module.
"""

import logging
import xml.etree.ElementTree as ET
from email.utils import parsedate_to_datetime
from typing import BinaryIO, List, Optional
from urllib.parse import quote, unquote, urlparse

import httpx

from ponyknows.core.config import Settings

from .base import (
    EntryType,
    FileEntry,
    StorageError,
    StorageGateway,
    basename_of,
    normalize_path,
    sort_entries,
)

logger = logging.getLogger(__name__)

DAV_NS = "{DAV:}"

PROPFIND_BODY = b"""<?xml version="1.0" encoding="utf-8"?>
<d:propfind xmlns:d="DAV:">
  <d:prop>
    <d:getlastmodified/>
    <d:getcontentlength/>
    <d:resourcetype/>
    <d:getetag/>
  </d:prop>
</d:propfind>"""


def _parse_lastmod(value: Optional[str]) -> Optional[str]:
    """RFC 1123 date from the server to ISO 8601."""
    if not value:
        return None
    try:
        return parsedate_to_datetime(value).isoformat()
    except (TypeError, ValueError):
        return None


class WebDAVGateway(StorageGateway):
    """Storage gateway over a WebDAV collection."""

    def __init__(self, client: httpx.Client, root_path: str):
        """
        Args:
            client: httpx client whose base_url is the DAV root
            root_path: URL path of the DAV root, used to strip hrefs
        """
        self._client = client
        self._root_path = "/" + unquote(root_path).strip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebDAVGateway":
        root = settings.nextcloud_dav_root
        client = httpx.Client(
            base_url=root,
            auth=(settings.nextcloud_username, settings.nextcloud_app_password),
            timeout=settings.nextcloud_timeout,
        )
        return cls(client, urlparse(root).path)

    @property
    def backend_name(self) -> str:
        return "nextcloud"

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _url(path: str, collection: bool = False) -> str:
        """Relative request URL for a normalized path."""
        url = quote(path.lstrip("/"), safe="/")
        if collection and url:
            url += "/"
        return url

    def _relative(self, href: str) -> Optional[str]:
        """Translate a server href into a backend-relative path."""
        href_path = unquote(urlparse(href).path).rstrip("/")
        if href_path == self._root_path:
            return "/"
        if not href_path.startswith(self._root_path + "/"):
            return None
        return href_path[len(self._root_path):]

    def _request(self, operation: str, path: str, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", operation, path, exc)
            raise StorageError(operation, path) from exc

    def _fail(self, operation: str, path: str, response: httpx.Response) -> StorageError:
        logger.error("%s %s failed with HTTP %d", operation, path, response.status_code)
        return StorageError(operation, path, f"HTTP {response.status_code}")

    def list(self, path: str = "/") -> List[FileEntry]:
        path = normalize_path(path)
        response = self._request(
            "list", path, "PROPFIND", self._url(path, collection=True),
            headers={"Depth": "1", "Content-Type": "application/xml"},
            content=PROPFIND_BODY,
        )
        if response.status_code != 207:
            raise self._fail("list", path, response)

        try:
            root = ET.fromstring(response.content)
        except ET.ParseError as exc:
            logger.error("Malformed PROPFIND response for %s: %s", path, exc)
            raise StorageError("list", path, "malformed response") from exc

        entries = []
        for node in root.findall(f"{DAV_NS}response"):
            relative = self._relative(node.findtext(f"{DAV_NS}href", default=""))
            if relative is None or relative == path:
                continue
            try:
                entries.append(self._entry(relative, node))
            except ValueError as exc:
                logger.error("Malformed PROPFIND entry %s: %s", relative, exc)
                raise StorageError("list", path, "malformed response") from exc

        return sort_entries(entries)

    def _entry(self, relative: str, node: ET.Element) -> FileEntry:
        prop = None
        for propstat in node.findall(f"{DAV_NS}propstat"):
            status = propstat.findtext(f"{DAV_NS}status", default="")
            if " 200 " in status:
                prop = propstat.find(f"{DAV_NS}prop")
                break
        if prop is None:
            prop = ET.Element("prop")

        resourcetype = prop.find(f"{DAV_NS}resourcetype")
        is_dir = resourcetype is not None and resourcetype.find(f"{DAV_NS}collection") is not None

        size_text = prop.findtext(f"{DAV_NS}getcontentlength")
        etag = prop.findtext(f"{DAV_NS}getetag")

        return FileEntry(
            filename=relative,
            basename=basename_of(relative),
            lastmod=_parse_lastmod(prop.findtext(f"{DAV_NS}getlastmodified")),
            size=0 if is_dir or not size_text else int(size_text),
            type=EntryType.DIRECTORY if is_dir else EntryType.FILE,
            etag=etag.strip('"') if etag else None,
        )

    def upload(self, stream: BinaryIO, path: str, content_type: Optional[str] = None) -> None:
        path = normalize_path(path)
        if path == "/":
            raise StorageError("upload", path, "cannot upload to the root")

        data = stream.read()
        headers = {"Content-Type": content_type or "application/octet-stream"}
        response = self._request("upload", path, "PUT", self._url(path), content=data, headers=headers)
        if response.status_code not in (200, 201, 204):
            raise self._fail("upload", path, response)
        logger.info("Uploaded %s (%d bytes)", path, len(data))

    def download(self, path: str) -> bytes:
        path = normalize_path(path)
        response = self._request("download", path, "GET", self._url(path))
        if response.status_code != 200:
            raise self._fail("download", path, response)
        return response.content

    def delete(self, path: str) -> None:
        path = normalize_path(path)
        if path == "/":
            raise StorageError("delete", path, "cannot delete the root")

        response = self._request("delete", path, "DELETE", self._url(path))
        if response.status_code == 404:
            return
        if response.status_code not in (200, 204):
            raise self._fail("delete", path, response)
        logger.info("Deleted %s", path)

    def create_folder(self, path: str) -> None:
        path = normalize_path(path)
        if path == "/":
            return

        response = self._request("create_folder", path, "MKCOL", self._url(path, collection=True))
        # 405 means the collection already exists
        if response.status_code in (201, 405):
            return
        raise self._fail("create_folder", path, response)
