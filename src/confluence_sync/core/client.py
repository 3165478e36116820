import logging
import os
import threading
from typing import Any, Callable, Protocol

import requests

from ..config import Config
from ..errors import (
    AuthenticationError,
    ConfluenceAPIError,
    MalformedQueryError,
    NetworkError,
    PermissionDeniedError,
    RateLimitError,
)
from ..sync.models import Attachment, RemoteDocument
from .retry import refresh_on_auth_failure

logger = logging.getLogger(__name__)

SEARCH_EXPAND = ",".join(
    [
        "body.storage",
        "version",
        "space",
        "history",
        "metadata.labels",
        "ancestors",
    ]
)


class RemoteClient(Protocol):
    """Capability the sync engine needs from a remote page source."""

    def search_pages(
        self, cql: str = "type = page", limit: int = 50
    ) -> list[RemoteDocument]: ...

    def get_attachments(self, page_id: str) -> list[Attachment]: ...

    def download_attachment(self, url: str) -> bytes: ...

    def validate_connection(self) -> str: ...

    def is_connected(self) -> bool: ...


def _env_token_refresher() -> str | None:
    return os.getenv("CONFLUENCE_API_TOKEN")


class ConfluenceClient:
    """Confluence Cloud REST client.

    Authenticates with e-mail + API token (HTTP basic). A 401 response is
    retried exactly once after calling ``token_refresher``, which returns
    the replacement token (or None to keep the current one).
    """

    def __init__(
        self,
        config: Config,
        token_refresher: Callable[[], str | None] | None = _env_token_refresher,
        log: logging.Logger | None = None,
    ):
        self.config = config
        self.logger = log or logger
        self._token_refresher = token_refresher
        self._thread_local = threading.local()
        self._api_token = config.api_token
        self._connected = False
        self.refresh_credentials = (
            self._refresh_credentials if token_refresher else None
        )

    @property
    def base_url(self) -> str:
        return f"{self.config.confluence_url.rstrip('/')}/wiki"

    @property
    def session(self) -> requests.Session:
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.auth = (self.config.email, self._api_token)
        session.verify = not self.config.insecure
        session.headers["Accept"] = "application/json"
        return session

    def _refresh_credentials(self) -> None:
        token = self._token_refresher() if self._token_refresher else None
        if token:
            self._api_token = token
        # Drop the cached session so the next request re-authenticates
        if hasattr(self._thread_local, "session"):
            self._thread_local.session.close()
            del self._thread_local.session

    def _absolute(self, path_or_url: str) -> str:
        if path_or_url.startswith(("http://", "https://")):
            return path_or_url
        if path_or_url.startswith("/wiki/"):
            return f"{self.config.confluence_url.rstrip('/')}{path_or_url}"
        return f"{self.base_url}/{path_or_url.lstrip('/')}"

    @refresh_on_auth_failure("refresh_credentials")
    def _request(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> requests.Response:
        """GET *path* and map failures to the error taxonomy."""
        url = self._absolute(path)
        try:
            response = self._get_session().get(
                url, params=params, timeout=(10, 60)
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise NetworkError(
                f"Could not reach Confluence at {self.config.confluence_url}: {e}",
                {"url": url},
            ) from e
        except requests.RequestException as e:
            raise NetworkError(f"Request to {url} failed: {e}", {"url": url}) from e

        self._raise_for_status(response)
        self._connected = True
        return response

    @staticmethod
    def _error_text(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict):
            return str(body.get("message") or body.get("reason") or body)[:200]
        return str(body)[:200]

    def _raise_for_status(self, response: requests.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        text = self._error_text(response)
        match status:
            case 401:
                raise AuthenticationError(
                    f"Authentication failed: {text}", {"status_code": 401}
                )
            case 403:
                raise PermissionDeniedError(
                    f"Permission denied: {text}", {"status_code": 403}
                )
            case 400:
                raise MalformedQueryError(
                    f"Query rejected: {text}", {"status_code": 400}
                )
            case 429:
                raw = response.headers.get("Retry-After", "0")
                try:
                    retry_after = float(raw)
                except ValueError:
                    retry_after = 0.0
                raise RateLimitError(
                    f"Rate limited by Confluence: {text}",
                    retry_after=retry_after,
                )
            case _:
                raise ConfluenceAPIError(
                    f"Confluence API error {status}: {text}",
                    status_code=status,
                )

    def search_pages(
        self, cql: str = "type = page", limit: int = 50
    ) -> list[RemoteDocument]:
        """
        Run a CQL search and return up to *limit* pages with storage bodies.
        Pages are requested in batches of ``config.page_size``.
        """
        pages: list[RemoteDocument] = []
        start = 0
        while len(pages) < limit:
            batch = min(self.config.page_size, limit - len(pages))
            data = self._request(
                "/rest/api/content/search",
                {
                    "cql": cql,
                    "start": start,
                    "limit": batch,
                    "expand": SEARCH_EXPAND,
                },
            ).json()
            results = data.get("results", [])
            pages.extend(self._parse_page(item) for item in results)
            self.logger.debug(
                "CQL search returned %d results (start=%d)", len(results), start
            )
            if len(results) < batch or not data.get("_links", {}).get("next"):
                break
            start += len(results)
        return pages

    def _parse_page(self, item: dict[str, Any]) -> RemoteDocument:
        version = item.get("version") or {}
        history = item.get("history") or {}
        links = item.get("_links") or {}
        labels = (
            (item.get("metadata") or {}).get("labels", {}).get("results", [])
        )
        ancestors = item.get("ancestors") or []
        author = (version.get("by") or {}).get("displayName") or (
            (history.get("createdBy") or {}).get("displayName", "")
        )
        webui = links.get("webui", "")
        return RemoteDocument(
            id=str(item["id"]),
            title=item.get("title", ""),
            space_key=(item.get("space") or {}).get("key", ""),
            content=(item.get("body") or {})
            .get("storage", {})
            .get("value", ""),
            version=int(version.get("number", 1)),
            last_modified=version.get("when") or history.get("createdDate", ""),
            author=author,
            url=self._absolute(webui) if webui else "",
            labels=[label["name"] for label in labels if "name" in label],
            parent_id=str(ancestors[-1]["id"]) if ancestors else None,
            created=history.get("createdDate"),
        )

    def get_attachments(self, page_id: str) -> list[Attachment]:
        """
        List the attachments of a page.
        """
        data = self._request(
            f"/rest/api/content/{page_id}/child/attachment",
            {"limit": 200},
        ).json()
        attachments = []
        for item in data.get("results", []):
            extensions = item.get("extensions") or {}
            attachments.append(
                Attachment(
                    id=str(item["id"]),
                    title=item.get("title", ""),
                    media_type=extensions.get(
                        "mediaType", "application/octet-stream"
                    ),
                    file_size=int(extensions.get("fileSize", 0)),
                    download_url=self._absolute(
                        (item.get("_links") or {}).get("download", "")
                    ),
                    page_id=page_id,
                )
            )
        return attachments

    def download_attachment(self, url: str) -> bytes:
        """
        Download an attachment and return its bytes.
        """
        return self._request(url).content

    def validate_connection(self) -> str:
        """
        Validate credentials by fetching the current user.
        Returns the user's display name if successful.
        """
        data = self._request("/rest/api/user/current").json()
        return str(data.get("displayName") or data.get("accountId") or "")

    def is_connected(self) -> bool:
        """True once any request has succeeded on this client."""
        return self._connected
