"""Main entry point for the attachment organizer.

Usage:
    python -m attachment_organizer --vault ~/notes scan
    python -m attachment_organizer --help
"""

from .cli import main

if __name__ == "__main__":
    main()
