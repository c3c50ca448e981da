"""Signed-URL gateway for private HLS and media objects."""
