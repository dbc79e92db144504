"""subportal - gated file submission portal with an admin view."""

__version__ = "0.1.0"
