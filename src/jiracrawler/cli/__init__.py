"""CLI package for jiracrawler."""
