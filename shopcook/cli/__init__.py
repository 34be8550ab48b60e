"""Unified command-line interface for shopcook.

Usage:
    shopcook parse <file|-> [--json]
    shopcook scan <image> [--ocr-url URL] [--json]
    shopcook detect <file|->
    shopcook classify <name>...
    shopcook profiles
"""
