"""Proctored exam attempt lifecycle and results fetching."""
