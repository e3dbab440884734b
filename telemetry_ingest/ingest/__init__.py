"""Ingest - utilidades compartidas del path de ingesta."""
