"""Resolves a model reference to a local model file, downloading it when needed."""

import logging
import os
from typing import Callable, List, Optional

from .cancellation import CancellationToken
from .exceptions import ModelSelectionRequired, ModelUnavailableError
from .models import ModelDescriptor

logger = logging.getLogger(__name__)

ModelSelector = Callable[[List[ModelDescriptor]], Optional[ModelDescriptor]]
ProgressCallback = Callable[[float], None]


class ModelLocator:
    """Turns a model name or path into a usable local model file path."""

    def __init__(self, catalog, downloader):
        """
        Args:
            catalog: Object with `list_models()` and `find(reference)`.
            downloader: Object whose `download(descriptor, cancel_token)`
                        yields progress percentages until the file is local.
        """
        self.catalog = catalog
        self.downloader = downloader

    def resolve(
        self,
        reference: Optional[str],
        selector: Optional[ModelSelector] = None,
        cancel_token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """
        Returns the local path of the requested model.

        An existing file path is returned unchanged without consulting the
        catalog. Otherwise the reference is matched against the catalog; if
        it matches nothing, `selector` is asked to choose from the catalog.
        A chosen model that is not on disk yet is downloaded first.

        Args:
            reference: Model file path or catalog name, possibly empty.
            selector: Picks a descriptor from the catalog (interactive in the CLI).
            cancel_token: Cancels a download in progress.
            on_progress: Receives download percentages.

        Returns:
            Path to an existing model file.

        Raises:
            ModelSelectionRequired: No match and no selector to ask.
            ModelUnavailableError: The model is still missing after the download attempt.
            OperationCancelledError: The download was cancelled.
        """
        if reference and os.path.isfile(reference):
            logger.info(f"Using local model file: {reference}")
            return reference

        descriptor = self.catalog.find(reference)
        if descriptor is None:
            descriptors = self.catalog.list_models()
            if selector is None:
                raise ModelSelectionRequired(
                    f"Model '{reference}' is not a file or a known model name.", choices=descriptors
                )
            descriptor = selector(descriptors)
            if descriptor is None:
                raise ModelUnavailableError("No model was selected.")

        if descriptor.exists:
            logger.info(f"Model '{descriptor.name}' already present at {descriptor.path}")
            return descriptor.path

        logger.info(f"Model '{descriptor.name}' not found locally. Downloading...")
        for percent in self.downloader.download(descriptor, cancel_token):
            if on_progress is not None:
                on_progress(percent)

        if not descriptor.refresh():
            raise ModelUnavailableError(
                f"Model '{descriptor.name}' is not available at {descriptor.path} after download."
            )
        return descriptor.path
