"""Thin HTTP surface over the pricing core."""
