"""Core - modelos de dominio y taxonomía de errores."""
