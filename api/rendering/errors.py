"""Errors raised by renderer adapters."""


class RenderError(Exception):
    """A renderer could not produce output for an otherwise valid request."""
