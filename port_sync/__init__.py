"""Sync Gluetun's forwarded port to qBittorrent's listen port."""

__version__ = "1.0.0"
