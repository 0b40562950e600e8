"""
Share pipeline: image hosts, share composers, and the upload thread.

An ``ImageHost`` turns PNG bytes into a public URL; a ``ShareComposer``
hands that URL plus a caption to the social client.  Both are fallible
collaborators: failures surface as HostUploadError / ComposerError, a
dismissed composer as ComposerCancelled, and none of them touch the crop
state, so a failed share can simply be retried with the same bytes.
"""

import json
import logging
from abc import ABC, abstractmethod
from urllib.parse import quote

from PyQt6.QtCore import QByteArray, QEventLoop, QThread, QTimer, QUrl, pyqtSignal
from PyQt6.QtGui import QDesktopServices
from PyQt6.QtNetwork import QHttpMultiPart, QHttpPart, QNetworkAccessManager, QNetworkReply, QNetworkRequest

from kroppit.config import (
    CLOUDINARY_CLOUD_NAME, CLOUDINARY_FOLDER, CLOUDINARY_UPLOAD_PRESET, CLOUDINARY_UPLOAD_URL,
    COMPOSE_URL, UPLOAD_TIMEOUT_S,
)
from kroppit.errors import ComposerCancelled, ComposerError, HostUploadError, KroppitError
from kroppit.size_guard import ensure_shareable

logger = logging.getLogger(__name__)


# =============================================================================
# Image hosts
# =============================================================================

class ImageHost(ABC):
    """Accepts encoded image bytes and returns a public URL."""

    name = "host"

    @abstractmethod
    def upload(self, data: bytes, mime_type: str) -> str:
        """Upload and return the public URL. Raises HostUploadError."""


def _form_part(name: str, value: bytes, filename: str = "", content_type: str = "") -> QHttpPart:
    part = QHttpPart()
    disposition = f'form-data; name="{name}"'
    if filename:
        disposition += f'; filename="{filename}"'
    part.setHeader(QNetworkRequest.KnownHeaders.ContentDispositionHeader, disposition)
    if content_type:
        part.setHeader(QNetworkRequest.KnownHeaders.ContentTypeHeader, content_type)
    part.setBody(QByteArray(value))
    return part


class CloudinaryHost(ImageHost):
    """Unsigned upload to Cloudinary.

    Blocks the calling thread on a local event loop, so it must run on a
    worker thread (see ShareThread), never on the GUI thread.
    """

    name = "cloudinary"

    def __init__(
        self,
        cloud_name: str = CLOUDINARY_CLOUD_NAME,
        upload_preset: str = CLOUDINARY_UPLOAD_PRESET,
        folder: str = CLOUDINARY_FOLDER,
        timeout_s: float = UPLOAD_TIMEOUT_S,
        upload_url: str = CLOUDINARY_UPLOAD_URL,
    ):
        self._cloud_name = cloud_name
        self._upload_preset = upload_preset
        self._folder = folder
        self._timeout_s = timeout_s
        self._upload_url = upload_url

    @property
    def endpoint(self) -> str:
        return self._upload_url.format(cloud_name=self._cloud_name)

    def upload(self, data: bytes, mime_type: str) -> str:
        extension = mime_type.split("/")[-1] or "png"
        multipart = QHttpMultiPart(QHttpMultiPart.ContentType.FormDataType)
        multipart.append(_form_part("upload_preset", self._upload_preset.encode()))
        multipart.append(_form_part("folder", self._folder.encode()))
        multipart.append(_form_part("file", data, f"kroppit.{extension}", mime_type))

        request = QNetworkRequest(QUrl(self.endpoint))
        timeout_ms = int(self._timeout_s * 1000)
        # Stalled transfers fail fast; the deadline below caps slow ones
        request.setTransferTimeout(timeout_ms)

        manager = QNetworkAccessManager()
        logger.info("Uploading %d bytes to %s", len(data), self.endpoint)
        reply = manager.post(request, multipart)
        loop = QEventLoop()
        reply.finished.connect(loop.quit)
        deadline = QTimer()
        deadline.setSingleShot(True)
        deadline.timeout.connect(reply.abort)
        deadline.start(timeout_ms)
        if not reply.isFinished():
            loop.exec()
        deadline.stop()

        try:
            error = reply.error()
            if error in (QNetworkReply.NetworkError.OperationCanceledError,
                         QNetworkReply.NetworkError.TimeoutError):
                raise HostUploadError(f"Upload timed out after {self._timeout_s:g}s")
            if error != QNetworkReply.NetworkError.NoError:
                raise HostUploadError(f"Upload failed: {reply.errorString()}")
            body = bytes(reply.readAll())
        finally:
            reply.deleteLater()

        return self.parse_response(body)

    @staticmethod
    def parse_response(body: bytes) -> str:
        """Pull ``secure_url`` out of an upload response body."""
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise HostUploadError("Upload failed: unreadable response from image host") from exc
        url = payload.get("secure_url") if isinstance(payload, dict) else None
        if not isinstance(url, str) or not url:
            raise HostUploadError("Upload failed: image host returned no URL")
        return url


# =============================================================================
# Share composers
# =============================================================================

class ShareComposer(ABC):
    """Opens a post composer with a caption and embedded image URLs."""

    @abstractmethod
    def compose(self, text: str, image_urls: list[str]) -> None:
        """Raises ComposerCancelled if dismissed, ComposerError on failure."""


def build_compose_url(text: str, image_urls: list[str]) -> str:
    """Warpcast compose deep link: ``?text=…&embeds[]=…``."""
    params = [f"text={quote(text, safe='')}"]
    params += [f"embeds[]={quote(url, safe='')}" for url in image_urls]
    return f"{COMPOSE_URL}?{'&'.join(params)}"


class WarpcastComposer(ShareComposer):
    """Opens the Warpcast web composer in the user's browser.

    ``edit_caption`` is called with the proposed caption before anything
    is opened; returning None means the user dismissed the share.
    """

    def __init__(self, edit_caption=None, open_url=None):
        self._edit_caption = edit_caption
        self._open_url = open_url or (lambda url: QDesktopServices.openUrl(QUrl(url)))

    def compose(self, text: str, image_urls: list[str]) -> None:
        if self._edit_caption is not None:
            edited = self._edit_caption(text)
            if edited is None:
                raise ComposerCancelled("Share cancelled")
            text = edited
        url = build_compose_url(text, image_urls)
        logger.info("Opening composer: %s", url)
        if not self._open_url(url):
            raise ComposerError("Could not open the Farcaster composer")


# =============================================================================
# Upload thread
# =============================================================================

class ShareThread(QThread):
    """Size-guards and uploads a crop off the GUI thread."""
    uploaded = pyqtSignal(str)
    error = pyqtSignal(object)  # KroppitError

    def __init__(self, host: ImageHost, data: bytes, mime_type: str = "image/png", parent=None):
        super().__init__(parent)
        self._host = host
        self._data = data
        self._mime_type = mime_type

    def run(self):
        try:
            ensure_shareable(self._data, self._mime_type)
            url = self._host.upload(self._data, self._mime_type)
        except KroppitError as e:
            self.error.emit(e)
            return
        except Exception as e:
            logger.exception("Unexpected error uploading to %s", self._host.name)
            self.error.emit(HostUploadError(f"Upload failed: {e}"))
            return
        logger.info("Uploaded to %s: %s", self._host.name, url)
        self.uploaded.emit(url)
