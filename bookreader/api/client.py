"""HTTP client for the document (book) service."""

import logging
from typing import Optional
from urllib.parse import quote, urljoin

import requests

from ..config import FETCH_MODES

logger = logging.getLogger(__name__)


class AcquisitionError(Exception):
    """Raised when document bytes cannot be fetched."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DocumentClient:
    """Client fetching raw document bytes by identifier."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        fetch_mode: str = "download",
        auth_scheme: str = "",
        chunk_size: int = 64 * 1024,
    ):
        """Initialize document client.

        Args:
            base_url: Base URL of the service (e.g., "https://api.example.com/")
            timeout: Request timeout in seconds
            fetch_mode: "download" reads the body at once, "stream" in chunks
            auth_scheme: Optional Authorization prefix such as "Bearer"
            chunk_size: Chunk size in bytes for stream mode
        """
        if fetch_mode not in FETCH_MODES:
            raise ValueError(f"Invalid fetch mode: {fetch_mode}")
        self.base_url = base_url.rstrip('/') + '/'
        self.timeout = timeout
        self.fetch_mode = fetch_mode
        self.auth_scheme = auth_scheme
        self.chunk_size = chunk_size
        self.session = requests.Session()
        self.session.headers.update({'Accept': 'application/pdf'})

    def document_url(self, document_id: str) -> str:
        return urljoin(self.base_url, f"books/{quote(str(document_id), safe='')}/get_book/")

    def _auth_header(self, access_token: str) -> str:
        if self.auth_scheme:
            return f"{self.auth_scheme} {access_token}"
        return access_token

    def fetch_document(self, document_id: str, access_token: str) -> bytes:
        """Fetch document bytes.

        Args:
            document_id: Identifier of the document
            access_token: Opaque access token sent in the Authorization header

        Returns:
            Raw document bytes (possibly empty; decoding is not checked here)

        Raises:
            AcquisitionError: If the request fails, times out or returns an error status
        """
        url = self.document_url(document_id)
        headers = {'Authorization': self._auth_header(access_token)}
        stream = self.fetch_mode == "stream"

        try:
            response = self.session.get(url, headers=headers, timeout=self.timeout, stream=stream)
            response.raise_for_status()
            if stream:
                with response:
                    data = b"".join(
                        chunk for chunk in response.iter_content(chunk_size=self.chunk_size) if chunk
                    )
            else:
                data = response.content
        except requests.exceptions.Timeout:
            raise AcquisitionError(f"Request to {url} timed out after {self.timeout}s")
        except requests.exceptions.ConnectionError as e:
            raise AcquisitionError(f"Failed to connect to {url}: {e}")
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise AcquisitionError(f"Server returned {status} for {url}", status_code=status)
        except requests.exceptions.RequestException as e:
            raise AcquisitionError(f"Request to {url} failed: {e}")

        logger.info(f"Fetched document {document_id} ({len(data)} bytes)")
        return data
