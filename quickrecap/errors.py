"""Exception hierarchy shared by the QuickRecap modules."""


class QuickRecapError(Exception):
    """Base class for errors raised by QuickRecap."""


class AudioFormatError(QuickRecapError):
    """Audio could not be decoded into 16 kHz mono samples."""


class RecorderError(QuickRecapError):
    """The microphone recording could not be started or continued."""


class ModelLoadError(QuickRecapError):
    """A speech or summarisation model could not be located or loaded."""


class ModelNotLoadedError(QuickRecapError):
    """An operation needed a model that has not finished loading."""


class SummarizationError(QuickRecapError):
    """The encoder or decoder failed while producing a summary."""
