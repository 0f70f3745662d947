"""Raffle allocation and draw engine with a SQLAlchemy-backed raffle store."""

__version__ = "0.1.0"
