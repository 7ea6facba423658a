"""Account consistency core and maintenance jobs for the loyalty club."""

__version__ = "0.1.0"
