TRANSPARENT_IMAGE_MESSAGE = (
    "Transparent images are not supported due to rendering bugs. "
    "Please upload an image with a solid background."
)
EXHAUSTED_MESSAGE = "Failed to generate valid image after multiple attempts"


class PlateError(Exception):
    """Base class for everything the plates app raises on purpose."""
    code = "plate_error"


class ConfigurationError(PlateError):
    """Service credentials are missing; raised before any network call."""
    code = "configuration"


class TransparentImageError(PlateError, ValueError):
    code = "transparent_image"

    def __init__(self, message: str = TRANSPARENT_IMAGE_MESSAGE):
        super().__init__(message)


class PlateDetectedSignal(PlateError):
    """
    Not a failure: ADD mode found a plate already on the car. The caller
    either confirms (re-run with skip_detection) or switches to REPLACE.
    """
    code = "plate_detected"

    def __init__(self, message: str = "A license plate is already visible on this car."):
        super().__init__(message)


class GenerationError(PlateError):
    """A single attempt failed. Never leaves the retry loop."""
    code = "generation"


class ExhaustedRetriesError(PlateError):
    code = "exhausted"

    def __init__(self, message: str = EXHAUSTED_MESSAGE):
        super().__init__(message)


class InvalidImageError(ValueError):
    pass
