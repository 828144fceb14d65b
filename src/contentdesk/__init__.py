"""contentdesk - one registry over a remote CMS and locally authored content."""

__version__ = "0.1.0"
