"""Souvenir shop checkout and order service."""
