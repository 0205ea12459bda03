"""Cross-cutting helpers shared by every storage module."""
