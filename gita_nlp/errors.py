"""
Error types raised by the pipeline stages.

Anything that would leave chapter/verse keys misaligned is raised and ends
the run; the driver reports it and exits non-zero.
"""


class PipelineError(Exception):
    """Base class for every failure the driver knows how to report."""


class SourceUnavailable(PipelineError):
    def __init__(self, chapter, reason):
        self.chapter = chapter
        self.reason = reason
        super().__init__(f"chapter {chapter} could not be retrieved: {reason}")


class InvalidInput(PipelineError):
    pass


class ModelFitFailure(PipelineError):
    pass
