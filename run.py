#!/usr/bin/env python3
"""
Statsor - Main Entry Point
Team dashboard service: plan-limited teams, players and matches with aggregate stats
"""

from statsor.main import main

if __name__ == '__main__':
    main()
