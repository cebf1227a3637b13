"""
jsmap Package

A Python tool for discovering JavaScript assets reachable from a web page and
extracting security-relevant artifacts from them into one attributed report.
"""

__version__ = "1.0.0"
__description__ = "JavaScript asset discovery and artifact extraction tool"
