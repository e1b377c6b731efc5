"""
Domain errors for highlights and notes.
Routers translate these into HTTP status codes.
"""


class HighlightError(Exception):
    """Base class for highlight / note rule violations."""


class InvalidCategory(HighlightError, ValueError):
    """A value outside the fixed mistake-category set."""

    def __init__(self, value):
        self.value = value
        super().__init__(
            f"Unknown mistake category {value!r} (expected recap, tajweed, haraka or letter)"
        )


class AlreadyResolved(HighlightError):
    """Highlight is already in the resolved color."""

    def __init__(self, highlight_id, color):
        self.highlight_id = highlight_id
        self.color = color
        super().__init__(f"Highlight {highlight_id} is already resolved ({color})")


class NotResolved(HighlightError):
    """Restore was requested on a highlight that was never resolved."""

    def __init__(self, highlight_id, color):
        self.highlight_id = highlight_id
        self.color = color
        super().__init__(f"Highlight {highlight_id} is not resolved (color={color})")


class NoteNotDeletable(HighlightError):
    pass
