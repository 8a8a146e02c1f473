"""Tackle content pipeline: queued jobs -> validated JSON pages for the site."""

__version__ = "0.1.0"
