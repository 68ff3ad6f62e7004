"""
Error kinds raised by the silhouette pipeline.

Only DecodeError and EncodeError ever reach the caller. Every BackendError
is absorbed by the mask generator, which falls through to the next backend.
"""


class SilhouetteError(Exception):
    """Base class for all pipeline errors."""


class DecodeError(SilhouetteError):
    """Source bytes are not a valid image, or the locator is not a local file."""


class EncodeError(SilhouetteError):
    """Final raster could not be built, encoded or written."""


RenderError = EncodeError


class BackendError(SilhouetteError):
    """A segmentation backend could not produce a mask."""


class BackendUnavailable(BackendError):
    """Capability is absent on this platform or failed to initialise."""


class InvalidSourceReference(BackendError):
    """Source locator cannot be handed to the native capability."""


class NoSubjectFound(BackendError):
    """Native backend ran but found no person."""


class ProcessingError(BackendError):
    """Native backend failed while processing or rendering the mask."""


class ModelUnavailable(BackendError):
    """On-device model asset is missing or failed to load."""


class InferenceError(BackendError):
    """Inference raised, or produced output of the wrong shape."""
