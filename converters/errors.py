"""Exception hierarchy for HTML to Markdown conversion."""


class ConversionError(Exception):
    """Base exception for conversion failures."""
    pass


class ParseError(ConversionError):
    """Raised when the input is empty, not text, or not parseable as HTML."""
    pass


class MissingContentError(ConversionError):
    """Raised when no content container can be located in the document."""
    pass


__all__ = ['ConversionError', 'ParseError', 'MissingContentError']
