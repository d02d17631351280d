"""Hiring Console: a server-side front end for an applicant tracking backend."""

__version__ = "1.0.0"
