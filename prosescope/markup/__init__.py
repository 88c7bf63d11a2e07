"""Markup pipeline: preprocess, convert, tokenize, classify."""
