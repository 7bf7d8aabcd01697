"""VectorLink: keep a vector store in sync with a Markdown vault and browse
conversations grounded on it."""

__version__ = "0.1.0"
