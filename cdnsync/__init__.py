"""cdn-sync: keeps a local directory in step with a hashed CDN manifest."""

__version__ = "1.0.0"
