"""Exceptions raised by the positions pipeline.

Data-quality problems inside an export never raise; they are collected as
issue strings on the pipeline result. Only conditions that stop a load
entirely are exceptions.
"""


class PositionsError(RuntimeError):
    pass


class SourceReadError(PositionsError):
    """The export could not be read; nothing was parsed."""


class UploadInProgressError(PositionsError):
    """Another export is still being processed by the same session."""
