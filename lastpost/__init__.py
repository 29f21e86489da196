"""lastpost: resumable latest-post-date checker."""

__version__ = "0.1.0"
