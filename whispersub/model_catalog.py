"""Catalog of downloadable Whisper checkpoints and the downloader for them."""

import hashlib
import logging
import os
from typing import Iterator, List, Optional

import requests
import whisper

from .cancellation import CancellationToken
from .exceptions import ModelUnavailableError
from .models import ModelDescriptor
from .utils import ensure_dir_exists

logger = logging.getLogger(__name__)


def _sha256_from_url(url: str) -> Optional[str]:
    # Published checkpoint URLs look like .../models/<sha256>/<name>.pt
    parts = url.rstrip('/').split('/')
    if len(parts) >= 2 and len(parts[-2]) == 64:
        return parts[-2]
    return None


def _checkpoint_url(name: str) -> str:
    """Download URL of a published checkpoint, read from openai-whisper's model table."""
    # openai-whisper exposes the table only as the private `_MODELS` dict
    urls = getattr(whisper, "_MODELS", None)
    if not isinstance(urls, dict) or name not in urls:
        raise ModelUnavailableError(
            f"The installed openai-whisper does not publish a download URL for model '{name}'."
        )
    return urls[name]


class ModelCatalog:
    """Ordered list of the Whisper models that can be used or downloaded."""

    def __init__(self, models_dir: str):
        self.models_dir = models_dir

    def list_models(self) -> List[ModelDescriptor]:
        """Builds a fresh descriptor for every published checkpoint."""
        descriptors = []
        for name in whisper.available_models():
            url = _checkpoint_url(name)
            descriptor = ModelDescriptor(
                name=name,
                url=url,
                path=os.path.join(self.models_dir, os.path.basename(url)),
                sha256=_sha256_from_url(url),
            )
            descriptor.refresh()
            descriptors.append(descriptor)
        return descriptors

    def find(self, reference: Optional[str]) -> Optional[ModelDescriptor]:
        """Looks a model up by catalog name ("base") or checkpoint file name ("base.pt")."""
        if not reference:
            return None
        wanted = os.path.basename(reference)
        for descriptor in self.list_models():
            if wanted in (descriptor.name, os.path.basename(descriptor.path)):
                return descriptor
        return None


class ModelDownloader:
    """Fetches a model file over HTTP, reporting progress as percentages."""

    def __init__(self, timeout: float = 60, chunk_size: int = 1024 * 1024):
        self.timeout = timeout
        self.chunk_size = chunk_size

    def download(self, descriptor: ModelDescriptor,
                 cancel_token: Optional[CancellationToken] = None) -> Iterator[float]:
        """
        Downloads the descriptor's file to its local path.

        The data is streamed into a `.part` file that is renamed into place
        only after the checksum (when known) matches. The caller drives the
        download by iterating; each step yields the completed percentage.

        Yields:
            Percentages from 0.0 to 100.0.

        Raises:
            ModelUnavailableError: On network, IO or checksum failure.
            OperationCancelledError: If the token is cancelled mid-download.
        """
        ensure_dir_exists(os.path.dirname(os.path.abspath(descriptor.path)))
        part_path = descriptor.path + ".part"
        logger.info(f"Downloading model '{descriptor.name}' from {descriptor.url}")

        completed = False
        try:
            digest = hashlib.sha256()
            with requests.get(descriptor.url, stream=True, timeout=self.timeout) as r:
                r.raise_for_status()
                total = int(r.headers.get("Content-Length") or 0)
                received = 0
                yield 0.0
                with open(part_path, 'wb') as output:
                    for chunk in r.iter_content(chunk_size=self.chunk_size):
                        if cancel_token is not None:
                            cancel_token.raise_if_cancelled(f"Download of '{descriptor.name}' cancelled")
                        if not chunk:
                            continue
                        output.write(chunk)
                        digest.update(chunk)
                        received += len(chunk)
                        if total:
                            yield min(100.0, received * 100.0 / total)

            if total and received < total:
                raise ModelUnavailableError(
                    f"Download of model '{descriptor.name}' ended after {received} of {total} bytes."
                )
            if descriptor.sha256 and digest.hexdigest() != descriptor.sha256:
                raise ModelUnavailableError(
                    f"Checksum mismatch for model '{descriptor.name}'; the download is corrupt."
                )
            os.replace(part_path, descriptor.path)
            completed = True
            yield 100.0
        except (requests.RequestException, OSError, ValueError) as e:
            logger.error(f"Download of model '{descriptor.name}' failed: {e}", exc_info=True)
            raise ModelUnavailableError(f"Could not download model '{descriptor.name}': {e}") from e
        finally:
            if not completed and os.path.exists(part_path):
                try:
                    os.remove(part_path)
                except OSError:
                    logger.warning(f"Could not remove partial download: {part_path}")
            descriptor.refresh()

        logger.info(f"Model '{descriptor.name}' saved to {descriptor.path}")
