"""Supermarket receipt OCR text interpretation."""
