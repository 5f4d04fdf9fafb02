"""Core cross-cutting helpers (exceptions)."""
