"""Trip bookkeeping for microscopic traffic simulation."""

__version__ = "0.1.0"
