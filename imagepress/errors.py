"""Error taxonomy for the compression pipeline."""

from typing import Optional


class ImagePressError(Exception):
    """Base class for every classified pipeline failure."""


class DecodeError(ImagePressError):
    """The input could not be turned into a canonical image."""


class UnsupportedFormat(DecodeError):
    """No decoder, universal or specialized, accepts the input."""


class MalformedInput(DecodeError):
    """A decoder recognized the format but the content is invalid."""


class ConfigError(ImagePressError):
    """The resolved configuration cannot produce an encoder."""


class UnknownEncoder(ConfigError):
    """The selected encoder name is not registered."""


class NoEncoderSelected(ConfigError):
    """No encoder was selected at all."""


class PipelineError(ImagePressError):
    """An operation could not be built from the configuration."""


class OperationApplicationError(PipelineError):
    """An operation cannot apply to the image in its current state."""


class EncodeError(ImagePressError):
    """The encoder rejected the canonical image."""


class UnsupportedColorspace(EncodeError):
    """The image colorspace has no representation in the target codec."""


class NativeCodecFailure(ImagePressError):
    """A wrapped native codec library faulted during decode or encode."""

    def __init__(self, message: str, codec: Optional[str] = None) -> None:
        super().__init__(message, codec)
        self.message = message
        self.codec = codec

    def __str__(self) -> str:
        if self.codec:
            return f"{self.codec}: {self.message}"
        return self.message
