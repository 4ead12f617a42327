"""Deterministic task templates.

The template catalog is the non-AI generator: when the language model is
unavailable or returns something unusable, the user's text is matched against
template keywords and a fixed task chain is produced instead.
"""
