"""CodeGraph CS: build a declaration graph from C# sources."""

__version__ = "0.3.0"
