"""Catalog — movies, genres and the cache policy around them."""
