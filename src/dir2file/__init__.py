"""Export a project's text files into a single Markdown document."""

__version__ = "0.1.0"
