"""
Exception types raised by the canvas core.

Invalid graph mutations (self-loops, duplicate edges, unknown ids) are never
errors - they are silently rejected by the graph store. Only malformed
snapshot documents and programming errors raise.
"""


class SkillCanvasError(Exception):
    """Base class for all canvas errors."""


class SnapshotError(SkillCanvasError):
    """A project document could not be loaded."""


class SnapshotFormatError(SnapshotError):
    """The document is not parseable or does not match the snapshot schema."""


class SnapshotVersionError(SnapshotError):
    """The document declares a snapshot version this build cannot read."""

    def __init__(self, version):
        self.version = version
        super().__init__(f"Unsupported snapshot version: {version!r}")


class DuplicateIdError(SkillCanvasError):
    """An id that is already in use was passed to a create operation."""
