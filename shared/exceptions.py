"""
Exception taxonomy for the media-export pipeline.
"""


class PipelineError(Exception):
    """Base class for errors raised by pipeline components."""


class NotFoundError(PipelineError):
    """Project or slide does not exist, or the requester does not own it."""


class ProviderFailure(PipelineError):
    """The text or speech provider call failed or exceeded its deadline."""


class AssemblyFailure(PipelineError):
    """The video encoder was present but the encoding run failed."""


class StorageFailure(PipelineError):
    """An artifact could not be written to the artifact store."""


class InvalidJobTransition(PipelineError):
    """A state change was requested on a job that already reached a terminal state."""
