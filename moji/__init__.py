"""Async clients for Jackett, qBittorrent, Stash and rate-limited stash-box endpoints."""
