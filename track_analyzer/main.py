#!/usr/bin/env python
"""
Main entry point for Track Analyzer.
"""

from track_analyzer.cli import main

if __name__ == "__main__":
    main()
