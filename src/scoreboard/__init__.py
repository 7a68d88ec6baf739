"""Transactional data-access layer for games, teams and conferences."""

__version__ = "0.1.0"
