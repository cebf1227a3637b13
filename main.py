#!/usr/bin/env python3
"""
jsmap - Main Entry Point

A tool for discovering the JavaScript served by a site and extracting API
endpoints, URLs, secrets, email addresses and file references from it.
"""

from jsmap.cli import main


if __name__ == "__main__":
    main()
